"""Configuration for the memory store subprocess."""

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..core.constants import DEFAULT_COMMAND
from ..core.exceptions import ConfigError


def parse_args(raw: str | None) -> list[str]:
    """
    Parse subprocess arguments from an environment value.

    Accepts a JSON array of strings, e.g. '["--flag", "value"]'. Anything not
    starting with "[" is split on whitespace (no quoting support).
    """
    if not raw:
        return []

    stripped = raw.strip()
    if stripped.startswith("["):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ConfigError(f"MEMORY_MCP_ARGS is not valid JSON: {e}") from e
        if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
            raise ConfigError('MEMORY_MCP_ARGS must be a JSON array of strings, e.g. ["--flag","value"].')
        return parsed

    return raw.split()


@dataclass(frozen=True)
class StoreConfig:
    """How to launch the memory store subprocess."""
    command: str = DEFAULT_COMMAND
    args: list[str] = field(default_factory=list)
    cwd: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StoreConfig":
        """Create configuration from environment variables."""
        env = os.environ if environ is None else environ
        command = (env.get("MEMORY_MCP_COMMAND") or "").strip() or DEFAULT_COMMAND
        cwd = (env.get("MEMORY_MCP_CWD") or "").strip() or None
        return cls(
            command=command,
            args=parse_args(env.get("MEMORY_MCP_ARGS")),
            cwd=cwd,
        )

    def to_dict(self) -> dict:
        return {"command": self.command, "args": list(self.args), "cwd": self.cwd}
