"""MCP Server implementation for the XDT mini client."""

from .server import XdtMCPServer
from .container import ServiceContainer
from .utils import (
    MCPJSONEncoder,
    safe_json_dumps,
    sanitize_error
)

__all__ = [
    "XdtMCPServer",
    "ServiceContainer",
    "MCPJSONEncoder",
    "safe_json_dumps",
    "sanitize_error",
]
