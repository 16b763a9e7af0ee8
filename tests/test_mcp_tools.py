"""Tests for the MCP tool registry and tool categories."""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from bson import ObjectId
from mcp.types import TextContent, Tool

from xdt_mcp.database import BatchCreateError, StoreError
from xdt_mcp.mcp_server.handlers.registry import ToolRegistry
from xdt_mcp.mcp_server.tools import CommandTools, GeneralTools, ItemTools
from xdt_mcp.relay_client import RelayTransportError
from xdt_mcp.services.base import ServiceResult
from xdt_mcp.services.item_service import ImportFormatError
from xdt_mcp.services.models.commands import CommandStatus, DispatchResult
from xdt_mcp.services.models.items import ImportResult, Item


def registered(category):
    category.register_tools()
    registry = ToolRegistry()
    for name, tool in category.get_tools().items():
        registry.register_tool(name, tool, category.get_handlers()[name], {"category": "test"})
    return registry


async def call_text(registry, name, arguments=None):
    content = await registry.call_tool(name, arguments)
    assert len(content) == 1
    assert isinstance(content[0], TextContent)
    return content[0].text


class TestToolRegistry:
    """Test registration and dispatch."""

    @pytest.fixture
    def registry(self):
        registry = ToolRegistry()

        async def echo(text, upper=False):
            return text.upper() if upper else text

        async def explode():
            raise OSError("disk failure at /var/lib/xdt/items.json")

        async def structured():
            return {"count": 1, "_id": ObjectId("65f000000000000000000001")}

        for handler in (echo, explode, structured):
            tool = Tool(name=handler.__name__, description="test", inputSchema={"type": "object"})
            registry.register_tool(handler.__name__, tool, handler, {"category": "test"})
        return registry

    def test_metadata(self, registry):
        assert registry.get_tool_count() == 3
        assert registry.has_tool("echo")
        assert registry.get_tools_by_category("test") == ["echo", "explode", "structured"]
        assert registry.get_tool_metadata("missing") == {}

    @pytest.mark.asyncio
    async def test_call_returns_text(self, registry):
        assert await call_text(registry, "echo", {"text": "hi", "upper": True}) == "HI"

    @pytest.mark.asyncio
    async def test_structured_result_serialized(self, registry):
        text = await call_text(registry, "structured")

        assert json.loads(text) == {"count": 1, "_id": "65f000000000000000000001"}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        with pytest.raises(ValueError, match="Unknown tool"):
            await registry.call_tool("nope", {})

    @pytest.mark.asyncio
    async def test_missing_argument(self, registry):
        with pytest.raises(ValueError, match="Invalid arguments"):
            await registry.call_tool("echo", {})

    @pytest.mark.asyncio
    async def test_unexpected_argument(self, registry):
        with pytest.raises(ValueError):
            await registry.call_tool("echo", {"text": "hi", "loud": True})

    @pytest.mark.asyncio
    async def test_handler_error_is_sanitized(self, registry):
        with pytest.raises(RuntimeError) as exc_info:
            await registry.call_tool("explode", {})

        assert "/var/lib" not in str(exc_info.value)
        assert "items.json" in str(exc_info.value)

    def test_clear(self, registry):
        registry.clear_registry()
        assert registry.get_tool_count() == 0


class TestGeneralTools:
    """Test the greet tool."""

    @pytest.mark.asyncio
    async def test_greet_defaults_to_chinese(self):
        registry = registered(GeneralTools())
        assert await call_text(registry, "greet", {"name": "Alice"}) == "你好, Alice!"

    @pytest.mark.asyncio
    async def test_greet_english(self):
        registry = registered(GeneralTools())
        assert await call_text(registry, "greet", {"name": "Alice", "language": "en"}) == "Hello, Alice!"

    @pytest.mark.asyncio
    async def test_greet_unsupported_language(self):
        registry = registered(GeneralTools())
        with pytest.raises(RuntimeError, match="Unsupported language"):
            await registry.call_tool("greet", {"name": "Alice", "language": "fr"})


class TestCommandTools:
    """Test command tools."""

    @pytest.fixture
    def dispatcher(self):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock()
        dispatcher.list_commands = AsyncMock(return_value='["AddItem"]')
        return dispatcher

    @pytest.fixture
    def command_service(self):
        service = MagicMock()

        async def execute(operation, operation_name="operation"):
            return ServiceResult.success_result(await operation())

        service.execute = execute
        service.find_all = AsyncMock(return_value=[])
        service.find_by_id = AsyncMock(return_value=None)
        return service

    @pytest.fixture
    def registry(self, dispatcher, command_service):
        return registered(CommandTools(dispatcher, command_service))

    def test_tool_names(self, registry):
        assert set(registry.list_tool_names()) == {
            "get_all_commands", "send_command", "list_command_records", "get_command_record",
        }

    @pytest.mark.asyncio
    async def test_send_command_success(self, registry, dispatcher):
        dispatcher.dispatch.return_value = DispatchResult(
            success=True, command_type="AddItem", status=CommandStatus.SUCCESS, response_text='{"ok": true}'
        )

        text = await call_text(registry, "send_command", {"commandName": "AddItem", "commandData": {"itemId": 5}})

        assert text == '{"ok": true}'
        dispatcher.dispatch.assert_awaited_once_with("AddItem", {"itemId": 5})

    @pytest.mark.asyncio
    async def test_send_command_failure_with_warning(self, registry, dispatcher):
        dispatcher.dispatch.return_value = DispatchResult(
            success=False,
            command_type="AddItem",
            error="Relay returned HTTP 500: boom",
            warnings=["Command record abc could not be finalized"],
        )

        text = await call_text(registry, "send_command", {"commandName": "AddItem"})

        assert text.startswith("Command 'AddItem' failed: Relay returned HTTP 500: boom")
        assert text.endswith("Warning: Command record abc could not be finalized")

    @pytest.mark.asyncio
    async def test_get_all_commands(self, registry):
        assert await call_text(registry, "get_all_commands") == '["AddItem"]'

    @pytest.mark.asyncio
    async def test_get_all_commands_relay_down(self, registry, dispatcher):
        dispatcher.list_commands.side_effect = RelayTransportError("Connection refused")

        text = await call_text(registry, "get_all_commands")

        assert text == "Failed to fetch commands: Connection refused"

    @pytest.mark.asyncio
    async def test_list_command_records_filters(self, registry, command_service):
        text = await call_text(registry, "list_command_records", {"status": "failed", "limit": 5})

        command_service.find_all.assert_awaited_once_with({"status": CommandStatus.FAILED}, limit=5)
        assert json.loads(text) == {"success": True, "records": [], "count": 0}

    @pytest.mark.asyncio
    async def test_get_command_record_not_found(self, registry):
        text = await call_text(registry, "get_command_record", {"recordId": "65f000000000000000000001"})

        assert json.loads(text)["success"] is False


class TestItemTools:
    """Test item tools."""

    @pytest.fixture
    def item_service(self):
        service = MagicMock()

        async def execute(operation, operation_name="operation"):
            try:
                return ServiceResult.success_result(await operation())
            except StoreError as e:
                return ServiceResult.error_result(str(e))

        service.execute = execute
        service.search_by_name = AsyncMock(return_value=[
            Item(_id=ObjectId(), itemId=1, name="Apple", category=2),
        ])
        service.find_by_item_id = AsyncMock(return_value=None)
        service.import_bag_items_from_json = AsyncMock()
        return service

    @pytest.fixture
    def registry(self, item_service):
        return registered(ItemTools(item_service))

    @pytest.mark.asyncio
    async def test_search_items(self, registry, item_service):
        text = await call_text(registry, "search_items", {"name": "app", "limit": 3})

        result = json.loads(text)
        assert result["success"] is True
        assert result["count"] == 1
        assert result["items"][0]["itemId"] == 1
        item_service.search_by_name.assert_awaited_once_with("app", category=None, limit=3)

    @pytest.mark.asyncio
    async def test_search_items_store_down(self, registry, item_service):
        item_service.search_by_name.side_effect = StoreError("store unavailable")

        result = json.loads(await call_text(registry, "search_items", {"name": "app"}))

        assert result == {"success": False, "error": "store unavailable"}

    @pytest.mark.asyncio
    async def test_get_item_not_found(self, registry):
        result = json.loads(await call_text(registry, "get_item", {"itemId": 404}))

        assert result == {"success": False, "error": "Item 404 not found"}

    @pytest.mark.asyncio
    async def test_import_bag_items(self, registry, item_service):
        item_service.import_bag_items_from_json.return_value = ImportResult(
            imported_items=[Item(_id=ObjectId(), itemId=1, name="Apple", category=2)],
            failed_item_ids=[2],
            deleted_count=4,
        )

        result = json.loads(await call_text(registry, "import_bag_items", {"filePath": "bag.json"}))

        assert result == {"success": True, "imported": 1, "deleted": 4, "failedItemIds": [2]}

    @pytest.mark.asyncio
    async def test_import_rolled_back(self, registry, item_service):
        item_service.import_bag_items_from_json.side_effect = BatchCreateError(
            "1 of 2 items could not be created; batch rolled back",
            failures=[{"item": {"itemId": 3, "name": "Pear"}, "error": "duplicate"}],
        )

        result = json.loads(await call_text(registry, "import_bag_items", {"filePath": "bag.json"}))

        assert result["success"] is False
        assert result["failures"][0]["item"]["itemId"] == 3

    @pytest.mark.asyncio
    async def test_import_bad_file(self, registry, item_service):
        item_service.import_bag_items_from_json.side_effect = ImportFormatError(
            "File does not exist: /srv/data/bag.json"
        )

        result = json.loads(await call_text(registry, "import_bag_items", {"filePath": "/srv/data/bag.json"}))

        assert result == {"success": False, "error": "File does not exist: bag.json"}
