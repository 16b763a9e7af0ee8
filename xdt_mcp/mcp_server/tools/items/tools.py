"""Item catalog tools for the XDT mini client MCP server."""

import logging
from typing import Any, Dict, TYPE_CHECKING
from mcp.types import Tool

from ....database import BatchCreateError
from ...utils.errors import sanitize_error

if TYPE_CHECKING:
    from ....services import ItemService

logger = logging.getLogger(__name__)


class ItemTools:
    """Item search and import tools for MCP server."""

    def __init__(self, item_service: "ItemService"):
        self.item_service = item_service
        self._tool_handlers: Dict[str, Any] = {}
        self._tools: Dict[str, Tool] = {}

    def get_tools(self) -> Dict[str, Tool]:
        """Get all item tool definitions."""
        return self._tools.copy()

    def get_handlers(self) -> Dict[str, Any]:
        """Get all item tool handlers."""
        return self._tool_handlers.copy()

    def register_tools(self) -> None:
        """Register all item tools and handlers."""

        self._tools["search_items"] = Tool(
            name="search_items",
            description="Search game items by name (case-insensitive substring match)",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Text the item name contains"},
                    "category": {
                        "type": "integer",
                        "description": "Item category value (see xdt://items/categories)",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of results",
                        "default": 10,
                    },
                },
                "required": ["name"],
            },
        )

        async def search_items(name, category=None, limit=10):
            result = await self.item_service.execute(
                lambda: self.item_service.search_by_name(name, category=category, limit=limit),
                "search items",
            )
            if not result.success:
                return {"success": False, "error": result.error}
            return {"success": True, "items": result.data, "count": len(result.data)}

        self._tool_handlers["search_items"] = search_items

        self._tools["get_item"] = Tool(
            name="get_item",
            description="Get a game item by its item id",
            inputSchema={
                "type": "object",
                "properties": {
                    "itemId": {"type": "integer", "description": "Game item id"},
                },
                "required": ["itemId"],
            },
        )

        async def get_item(itemId):
            result = await self.item_service.execute(
                lambda: self.item_service.find_by_item_id(itemId),
                "get item",
            )
            if not result.success:
                return {"success": False, "error": result.error}
            if result.data is None:
                return {"success": False, "error": f"Item {itemId} not found"}
            return {"success": True, "item": result.data}

        self._tool_handlers["get_item"] = get_item

        self._tools["import_bag_items"] = Tool(
            name="import_bag_items",
            description=(
                "Replace all bag items (category ITEM) with the items in a JSON file. "
                "The file must hold an array of objects with 'id' and 'name'."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "filePath": {"type": "string", "description": "Path to the JSON file"},
                },
                "required": ["filePath"],
            },
        )

        async def import_bag_items(filePath):
            try:
                result = await self.item_service.import_bag_items_from_json(filePath)
            except BatchCreateError as e:
                logger.error(f"Bag item import rolled back: {e}")
                return {"success": False, "error": str(e), "failures": e.failures}
            except Exception as e:
                logger.exception(f"Error importing bag items from {filePath}")
                return {"success": False, "error": sanitize_error(e)}

            return {
                "success": True,
                "imported": len(result.imported_items),
                "deleted": result.deleted_count,
                "failedItemIds": result.failed_item_ids,
            }

        self._tool_handlers["import_bag_items"] = import_bag_items
