"""
memory-bridge command line entry point.

Serves the HTTP facade for the MCP memory store. The store subprocess itself
is not started here; the first request that needs it spawns it.

Usage:
    memory-bridge [--port PORT] [--host HOST] [--log-level LEVEL]

Flags override the environment:
    MEMORY_BRIDGE_HTTP_PORT    bind port (default 8766)
    MEMORY_BRIDGE_HTTP_HOST    bind host (default 127.0.0.1)
    MEMORY_BRIDGE_LOG_LEVEL    log level (default INFO)

Store launch settings are read from MEMORY_MCP_COMMAND, MEMORY_MCP_ARGS and
MEMORY_MCP_CWD on every connect.
"""

import argparse
import os
import sys

from .core.constants import DEFAULT_HTTP_HOST, DEFAULT_HTTP_PORT
from .core.exceptions import ConfigError
from .mcp_client.config import StoreConfig


def _store_summary() -> str:
    try:
        config = StoreConfig.from_env()
    except ConfigError as e:
        return f"invalid store config ({e})"
    return " ".join([config.command, *config.args])


def main():
    """Parse flags, export them to the environment and serve the app with uvicorn."""
    parser = argparse.ArgumentParser(description="HTTP bridge to an MCP knowledge graph memory store")
    parser.add_argument("--port", type=int, default=None, help=f"Bind port (default: {DEFAULT_HTTP_PORT})")
    parser.add_argument("--host", default=None, help=f"Bind host (default: {DEFAULT_HTTP_HOST})")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")

    args = parser.parse_args()

    # The app module reads these at import time
    if args.port:
        os.environ["MEMORY_BRIDGE_HTTP_PORT"] = str(args.port)
    if args.host:
        os.environ["MEMORY_BRIDGE_HTTP_HOST"] = args.host
    if args.log_level:
        os.environ["MEMORY_BRIDGE_LOG_LEVEL"] = args.log_level.upper()

    port = int(os.getenv("MEMORY_BRIDGE_HTTP_PORT", str(DEFAULT_HTTP_PORT)))
    host = os.getenv("MEMORY_BRIDGE_HTTP_HOST", DEFAULT_HTTP_HOST)
    log_level = os.getenv("MEMORY_BRIDGE_LOG_LEVEL", "INFO").lower()

    print(f"memory-bridge listening on http://{host}:{port}/api")
    print(f"Memory store: {_store_summary()} (spawned on first use)")

    try:
        import uvicorn
        from .api.app import app

        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level=log_level,
        )
    except KeyboardInterrupt:
        print("\nmemory-bridge stopped")
    except Exception as e:
        print(f"memory-bridge failed to start: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
