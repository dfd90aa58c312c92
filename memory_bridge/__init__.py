"""HTTP bridge to an MCP knowledge-graph memory server."""

from .version import __version__

__all__ = ["__version__"]
