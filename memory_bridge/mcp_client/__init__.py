"""Client-side components for the memory store subprocess."""

from .config import StoreConfig, parse_args
from .transport import StdioTransport
from .client import McpClient
from .connection import Connection, ConnectionManager, ConnectionStatus
from .invoker import ResultEncoding, ToolInvoker, unwrap_result

__all__ = [
    "StoreConfig",
    "parse_args",
    "StdioTransport",
    "McpClient",
    "Connection",
    "ConnectionManager",
    "ConnectionStatus",
    "ResultEncoding",
    "ToolInvoker",
    "unwrap_result",
]
