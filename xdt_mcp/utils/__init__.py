"""Shared utilities for the XDT Mini Client MCP server."""

from .request_context import (
    generate_request_id,
    generate_sub_request_id,
    get_request_id,
    set_request_id,
    format_request_id,
    ensure_request_id,
    with_request_id,
    run_in_executor_with_context,
)
from .serialization import MCPJSONEncoder, safe_json_dumps

__all__ = [
    "generate_request_id",
    "generate_sub_request_id",
    "get_request_id",
    "set_request_id",
    "format_request_id",
    "ensure_request_id",
    "with_request_id",
    "run_in_executor_with_context",
    "MCPJSONEncoder",
    "safe_json_dumps",
]
