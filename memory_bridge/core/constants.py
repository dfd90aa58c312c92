"""Constants for the memory bridge."""

# Store subprocess
DEFAULT_COMMAND = "memory-mcp"
STDERR_TAIL_LINES = 200
STDERR_MAX_LINE_CHARS = 8192
CLOSE_TIMEOUT_SECONDS = 2.0

# MCP client identity
CLIENT_NAME = "memory-mcp-client"

# HTTP server
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 8766

# Store tool names (MCP memory server)
TOOL_READ_GRAPH = "read_graph"
TOOL_OPEN_NODES = "open_nodes"
TOOL_SEARCH_NODES = "search_nodes"
TOOL_CREATE_ENTITIES = "create_entities"
TOOL_DELETE_ENTITIES = "delete_entities"
TOOL_CREATE_RELATIONS = "create_relations"
TOOL_DELETE_RELATIONS = "delete_relations"
TOOL_ADD_OBSERVATIONS = "add_observations"
TOOL_DELETE_OBSERVATIONS = "delete_observations"
