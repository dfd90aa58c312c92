"""Tool invocation on the memory store with response unwrapping."""

import json
import logging
from enum import Enum
from typing import Any, Callable

from ..core.exceptions import ToolCallError
from .connection import ConnectionManager

logger = logging.getLogger(__name__)

_MISSING = object()


class ResultEncoding(str, Enum):
    """How a tool call response carried its value."""
    DIRECT = "direct"
    STRUCTURED = "structured"
    TEXT_JSON = "text_json"
    RAW = "raw"


def as_response_dict(response: Any) -> Any:
    """Plain-dict view of a CallToolResult (or pass through a mapping)."""
    if hasattr(response, "model_dump"):
        return response.model_dump(by_alias=True, exclude_none=True)
    return response


def _first_text(response: dict) -> str | None:
    content = response.get("content")
    if not isinstance(content, list):
        return None
    for block in content:
        if isinstance(block, dict) and block.get("type") == "text":
            return block.get("text")
    return None


def _direct(response: dict) -> Any:
    return response["toolResult"] if "toolResult" in response else _MISSING


def _structured(response: dict) -> Any:
    return response.get("structuredContent") or _MISSING


def _text_json(response: dict) -> Any:
    if "content" not in response:
        return _MISSING
    text = _first_text(response)
    if text:
        try:
            return json.loads(text)
        except (TypeError, ValueError):
            pass
    # Text content that is not JSON is returned as the raw response
    return response


EXTRACTORS: tuple[tuple[ResultEncoding, Callable[[dict], Any]], ...] = (
    (ResultEncoding.DIRECT, _direct),
    (ResultEncoding.STRUCTURED, _structured),
    (ResultEncoding.TEXT_JSON, _text_json),
)


def unwrap_result(response: Any) -> tuple[ResultEncoding, Any]:
    """Try each extractor in order; fall back to the raw response."""
    if isinstance(response, dict):
        for encoding, extract in EXTRACTORS:
            value = extract(response)
            if value is not _MISSING:
                return encoding, value
    return ResultEncoding.RAW, response


class ToolInvoker:
    """Calls store tools over the managed connection. No retries at this layer."""

    def __init__(self, connections: ConnectionManager):
        self.connections = connections

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        connection = await self.connections.acquire()
        response = as_response_dict(await connection.client.call_tool(name, arguments or {}))

        if isinstance(response, dict) and response.get("isError"):
            raise ToolCallError(name, _first_text(response) or "unknown error")

        encoding, value = unwrap_result(response)
        logger.debug(f"Tool '{name}' answered ({encoding.value})")
        return value
