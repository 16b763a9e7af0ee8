"""Item catalog tools for the MCP server."""

from .tools import ItemTools

__all__ = ["ItemTools"]
