"""Tool registry for MCP server - manages tool registration and dispatch."""

import inspect
import logging
from typing import Dict, List, Callable, Awaitable, Any, Optional

from mcp.types import Tool, TextContent
from mcp.server import Server

from ...utils.request_context import (
    generate_request_id,
    set_request_id,
)
from ...utils.serialization import safe_json_dumps
from ..utils.errors import sanitize_error

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Manages tool registration, discovery, and metadata for the MCP server.

    Handlers are async callables that take the tool arguments as keyword
    arguments and return either text or a JSON-serializable value.
    """

    def __init__(self):
        self._tools: Dict[str, Tool] = {}
        self._tool_handlers: Dict[str, Callable[..., Awaitable[Any]]] = {}
        self._tool_metadata: Dict[str, Dict[str, Any]] = {}

    def register_tool(self, name: str, tool: Tool, handler: Callable[..., Awaitable[Any]], metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Register a tool with its handler and optional metadata.

        Args:
            name: Tool name/identifier
            tool: MCP Tool definition
            handler: Async function to handle tool calls
            metadata: Optional metadata for the tool (category, source)
        """
        if name in self._tools:
            logger.warning(f"Tool '{name}' is already registered, overwriting")

        self._tools[name] = tool
        self._tool_handlers[name] = handler
        self._tool_metadata[name] = metadata or {}

        logger.debug(f"Registered tool: {name}")

    def get_tool_handler(self, name: str) -> Optional[Callable[..., Awaitable[Any]]]:
        return self._tool_handlers.get(name)

    def get_tool_metadata(self, name: str) -> Dict[str, Any]:
        return self._tool_metadata.get(name, {})

    def list_tools(self) -> List[Tool]:
        return list(self._tools.values())

    def list_tool_names(self) -> List[str]:
        return list(self._tools.keys())

    def get_tools_by_category(self, category: str) -> List[str]:
        return [
            name for name, metadata in self._tool_metadata.items()
            if metadata.get('category') == category
        ]

    def get_tool_count(self) -> int:
        return len(self._tools)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> List[TextContent]:
        """
        Run a tool handler under a fresh request ID.

        Returns:
            The handler result as a single text content block

        Raises:
            ValueError: If the tool is unknown or the arguments do not fit the handler
            RuntimeError: If the handler fails unexpectedly
        """
        request_id = generate_request_id()
        set_request_id(request_id)
        arguments = arguments or {}

        logger.info(f"[{request_id}] MCP tool call: {name} with arguments: {arguments}")

        handler = self.get_tool_handler(name)
        if not handler:
            raise ValueError(f"Unknown tool: {name}")

        try:
            inspect.signature(handler).bind(**arguments)
        except TypeError as e:
            logger.error(f"[{request_id}] Invalid arguments for tool {name}: {e}")
            raise ValueError(f"Invalid arguments for tool {name}: {e}")

        try:
            result = await handler(**arguments)
        except Exception as e:
            logger.exception(f"[{request_id}] Error calling tool {name}")
            raise RuntimeError(sanitize_error(e))

        logger.info(f"[{request_id}] MCP tool '{name}' completed")

        text = result if isinstance(result, str) else safe_json_dumps(result)
        return [TextContent(type="text", text=text)]

    def register_mcp_handlers(self, server: Server, services_check_func: Callable[[], bool]) -> None:
        """
        Register the list_tools and call_tool handlers with the server.

        Args:
            server: MCP server instance
            services_check_func: Function to check if services are initialized
        """

        @server.list_tools()
        async def list_tools() -> List[Tool]:
            return self.list_tools()

        @server.call_tool()
        async def call_tool(name: str, arguments: dict) -> List[TextContent]:
            if not services_check_func():
                raise RuntimeError("Services not initialized")
            return await self.call_tool(name, arguments)

    def clear_registry(self) -> None:
        """Clear all registered tools."""
        self._tools.clear()
        self._tool_handlers.clear()
        self._tool_metadata.clear()
        logger.debug("Cleared tool registry")
