"""
MCP Server Utilities Package

Modules:
    errors: Error message sanitization for tool results
"""

from .errors import sanitize_error
from ...utils.serialization import MCPJSONEncoder, safe_json_dumps

__all__ = [
    "MCPJSONEncoder",
    "safe_json_dumps",
    "sanitize_error"
]
