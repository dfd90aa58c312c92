"""Core memory bridge components."""

from .types import Entity, Relation, Graph
from .constants import *
from .exceptions import *
from .normalize import normalize_graph
from .utils import as_string, trimmed, clean_strings, string_items, error_message

__all__ = [
    # Types
    "Entity",
    "Relation",
    "Graph",
    # Constants
    "DEFAULT_COMMAND",
    "STDERR_TAIL_LINES",
    "STDERR_MAX_LINE_CHARS",
    "CLOSE_TIMEOUT_SECONDS",
    "CLIENT_NAME",
    "DEFAULT_HTTP_HOST",
    "DEFAULT_HTTP_PORT",
    "TOOL_READ_GRAPH",
    "TOOL_OPEN_NODES",
    "TOOL_SEARCH_NODES",
    "TOOL_CREATE_ENTITIES",
    "TOOL_DELETE_ENTITIES",
    "TOOL_CREATE_RELATIONS",
    "TOOL_DELETE_RELATIONS",
    "TOOL_ADD_OBSERVATIONS",
    "TOOL_DELETE_OBSERVATIONS",
    # Exceptions
    "BridgeError",
    "InvalidRequestError",
    "EntityNotFoundError",
    "EntityExistsError",
    "ConfigError",
    "UpstreamError",
    "ConnectionClosedError",
    "ToolCallError",
    "StepFailedError",
    # Normalizer
    "normalize_graph",
    # Utils
    "as_string",
    "trimmed",
    "clean_strings",
    "string_items",
    "error_message",
]
