"""MCP Server implementation for the XDT mini client.

This is the orchestration module that wires the service container, the tool
categories, the resources and the prompts into one MCP server.
"""

import logging
from typing import Dict, Any, List, Optional

from mcp.server import Server
from mcp.types import Resource, ResourceTemplate, Prompt, GetPromptResult
from mcp.server.models import InitializationOptions
from mcp.server.lowlevel.server import NotificationOptions
from pydantic import AnyUrl

from .. import __version__
from ..config import AppConfig
from ..utils.request_context import generate_request_id, set_request_id
from .container import ServiceContainer
from .handlers.registry import ToolRegistry
from .handlers.protocol import ProtocolHandlers
from .prompts.definitions import PromptDefinitions
from .tools import GeneralTools, CommandTools, ItemTools
from .utils.errors import sanitize_error

logger = logging.getLogger(__name__)

SERVER_NAME = "XDT-Mini-Client"


class XdtMCPServer:
    """XDT mini client MCP server.

    This server orchestrates:
    - Service container for dependency injection
    - Tool registry for managing tools
    - Protocol handlers for MCP resources and prompts
    """

    def __init__(self, config: AppConfig, container: Optional[ServiceContainer] = None):
        """Initialize the MCP server.

        Args:
            config: Application configuration
            container: Optional pre-built service container
        """
        self.config = config
        self.server: Server = Server(SERVER_NAME)

        self.container = container or ServiceContainer(config)
        self.tool_registry = ToolRegistry()
        self.protocol_handlers = ProtocolHandlers()

        self._tool_categories: Dict[str, Any] = {}
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the container and register tools, resources and prompts.

        Raises:
            StoreError: If the document store cannot be reached
            RuntimeError: If any other component fails to initialize
        """
        if self._initialized:
            return

        await self.container.initialize()

        try:
            self._initialize_tool_categories()
            self._register_all_tools()
            self.protocol_handlers.register_prompts(PromptDefinitions.get_all_prompts())
            self._register_mcp_handlers()
        except Exception as e:
            logger.exception("Failed to initialize MCP server")
            raise RuntimeError(f"Initialization failed: {str(e)}")

        self._initialized = True
        logger.info(
            f"XDT MCP Server initialized with {self.tool_registry.get_tool_count()} tools "
            f"and {len(self.protocol_handlers.list_prompts())} prompts"
        )

    def _initialize_tool_categories(self) -> None:
        """Create the tool category instances with their services."""
        dispatcher = self.container.get_service('dispatcher')
        command_service = self.container.get_service('command_service')
        item_service = self.container.get_service('item_service')

        self._tool_categories['general'] = GeneralTools()
        self._tool_categories['commands'] = CommandTools(dispatcher, command_service)
        self._tool_categories['items'] = ItemTools(item_service)

        logger.info(f"Initialized {len(self._tool_categories)} tool categories")

    def _register_all_tools(self) -> None:
        """Register all tools from all categories."""
        for category_name, category_instance in self._tool_categories.items():
            category_instance.register_tools()

            tools = category_instance.get_tools()
            handlers = category_instance.get_handlers()

            for tool_name, tool in tools.items():
                if tool_name in handlers:
                    metadata = {
                        'category': category_name,
                        'source': f'{category_instance.__class__.__module__}.{category_instance.__class__.__name__}'
                    }
                    self.tool_registry.register_tool(tool_name, tool, handlers[tool_name], metadata)
                else:
                    logger.warning(f"No handler found for tool '{tool_name}' in category '{category_name}'")

        self.tool_registry.register_mcp_handlers(self.server, self.container.is_initialized)

        logger.info(f"Registered {self.tool_registry.get_tool_count()} tools across all categories")

    def _register_mcp_handlers(self) -> None:
        """Register the resource and prompt handlers."""

        @self.server.list_resources()
        async def handle_list_resources() -> List[Resource]:
            return self.protocol_handlers.get_resources()

        @self.server.list_resource_templates()
        async def handle_list_resource_templates() -> List[ResourceTemplate]:
            return self.protocol_handlers.get_resource_templates()

        @self.server.read_resource()
        async def handle_read_resource(uri: AnyUrl) -> str:
            request_id = generate_request_id()
            set_request_id(request_id)

            try:
                return await self.protocol_handlers.handle_read_resource(
                    uri, self.container.get_all_services()
                )
            except ValueError:
                logger.warning(f"[{request_id}] Unknown resource {uri}")
                raise
            except Exception as e:
                logger.exception(f"[{request_id}] Error reading resource {uri}")
                raise RuntimeError(f"Failed to read resource: {sanitize_error(e)}")

        @self.server.list_prompts()
        async def handle_list_prompts() -> List[Prompt]:
            return self.protocol_handlers.list_prompts()

        @self.server.get_prompt()
        async def handle_get_prompt(name: str, arguments: Optional[Dict[str, str]] = None) -> GetPromptResult:
            request_id = generate_request_id()
            set_request_id(request_id)

            try:
                return await self.protocol_handlers.handle_get_prompt(name, arguments)
            except ValueError as e:
                logger.warning(f"[{request_id}] Invalid prompt request {name}: {e}")
                raise

        logger.info("MCP protocol handlers registered successfully")

    async def run(self, transport_type: str = "stdio") -> None:
        """Run the MCP server with the specified transport.

        Args:
            transport_type: Transport type to use (default: "stdio")
        """
        if not self._initialized:
            await self.initialize()

        if transport_type != "stdio":
            raise ValueError(f"Unsupported transport type: {transport_type}")

        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            logger.info("MCP server connected to stdio transport")
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                    instructions=(
                        "Tools for the XDT mini client: send commands to the running "
                        "bot, inspect recorded command results, and search or import "
                        "the game item catalog."
                    ),
                ),
            )

    async def shutdown(self) -> None:
        """Shut down the container and clear the registries.

        Raises:
            StoreError: If the store connection does not close cleanly
        """
        try:
            await self.container.shutdown()
        finally:
            self.tool_registry.clear_registry()
            self._tool_categories.clear()
            self._initialized = False

        logger.info("MCP server shutdown completed")

    def get_server_info(self) -> Dict[str, Any]:
        """Server information and statistics."""
        return {
            'initialized': self._initialized,
            'tool_count': self.tool_registry.get_tool_count(),
            'prompt_count': len(self.protocol_handlers.list_prompts()),
            'tool_categories': list(self._tool_categories.keys()),
            'server_name': SERVER_NAME,
            'server_version': __version__,
        }
