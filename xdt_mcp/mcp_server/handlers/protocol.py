"""MCP protocol handlers for resources and prompts."""

import logging
from typing import List, Dict, Optional, Any
from urllib.parse import unquote

from mcp.types import Resource, ResourceTemplate, Prompt, GetPromptResult
from pydantic import AnyUrl

from ...services.models.items import ItemCategory
from ...utils.serialization import safe_json_dumps
from ..prompts.handlers import PromptHandlers

logger = logging.getLogger(__name__)

HELLO_SCHEME = "hello://"
STORE_HEALTH_URI = "xdt://store/health"
ITEM_CATEGORIES_URI = "xdt://items/categories"


class ProtocolHandlers:
    """
    Handles MCP protocol-specific methods for resources and prompts.

    This class manages:
    - Static resources and the greeting resource template
    - Prompt definitions and generation
    """

    def __init__(self, prompt_handlers: Optional[PromptHandlers] = None):
        self._prompts: Dict[str, Prompt] = {}
        self.prompt_handlers = prompt_handlers or PromptHandlers()

    def register_prompts(self, prompts: Dict[str, Prompt]) -> None:
        self._prompts.update(prompts)
        logger.debug(f"Registered {len(prompts)} prompts")

    def list_prompts(self) -> List[Prompt]:
        return list(self._prompts.values())

    def get_resources(self) -> List[Resource]:
        """Static resource definitions."""
        return [
            Resource(
                uri=AnyUrl(STORE_HEALTH_URI),
                name="Store Health",
                description="Connection state of the MongoDB document store",
                mimeType="application/json",
            ),
            Resource(
                uri=AnyUrl(ITEM_CATEGORIES_URI),
                name="Item Categories",
                description="Item category values and names used by the catalog",
                mimeType="application/json",
            ),
        ]

    def get_resource_templates(self) -> List[ResourceTemplate]:
        return [
            ResourceTemplate(
                uriTemplate="hello://{name}",
                name="hello",
                description="Greeting for the given name",
                mimeType="text/plain",
            ),
        ]

    async def handle_read_resource(self, uri: AnyUrl, services: Dict[str, Any]) -> str:
        """
        Read a resource.

        Args:
            uri: Resource URI to read
            services: Services from the container, by name

        Returns:
            str: Resource content

        Raises:
            ValueError: If resource URI unknown
        """
        uri_str = str(uri)

        if uri_str.startswith(HELLO_SCHEME):
            name = unquote(uri_str[len(HELLO_SCHEME):].strip("/"))
            if not name:
                raise ValueError(f"Missing name in resource URI: {uri_str}")
            return f"你好，{name}！这是一个基本的 MCP 资源示例。"

        elif uri_str == STORE_HEALTH_URI:
            return safe_json_dumps(services["database"].health())

        elif uri_str == ITEM_CATEGORIES_URI:
            return safe_json_dumps([
                {"value": int(category), "name": category.name}
                for category in ItemCategory
                if category != ItemCategory.INVALID
            ])

        raise ValueError(f"Unknown resource URI: {uri_str}")

    async def handle_get_prompt(self, name: str, arguments: Optional[Dict[str, str]]) -> GetPromptResult:
        """
        Generate a prompt.

        Raises:
            ValueError: If the prompt is unknown or required arguments are missing
        """
        if name not in self._prompts:
            raise ValueError(f"Unknown prompt: {name}")

        args = arguments or {}
        missing = [
            argument.name for argument in self._prompts[name].arguments or []
            if argument.required and not args.get(argument.name)
        ]
        if missing:
            raise ValueError(f"Missing required arguments: {', '.join(missing)}")

        return await self.prompt_handlers.handle_prompt(name, args)
