"""General tools (greeting) for the MCP server."""

from .tools import GeneralTools

__all__ = ["GeneralTools"]
