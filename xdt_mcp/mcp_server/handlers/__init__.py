"""MCP protocol and tool handlers."""

from .registry import ToolRegistry
from .protocol import ProtocolHandlers

__all__ = ["ToolRegistry", "ProtocolHandlers"]
