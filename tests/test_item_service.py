"""Tests for the item catalog service."""

import asyncio
import json
import pytest
from unittest.mock import MagicMock

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.errors import AutoReconnect, DuplicateKeyError

from xdt_mcp.database import BatchCreateError, StoreError, ValidationError
from xdt_mcp.services.item_service import ImportFormatError, ItemService
from xdt_mcp.services.models.items import ItemCategory, ItemCreate


@pytest.fixture
def item_service(mock_database, app_config, insert_result):
    mock_database.items.insert_one.side_effect = insert_result
    return ItemService(mock_database, app_config)


def write_json(tmp_path, data, name="bag.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return str(path)


class TestCreate:
    """Test single item creation."""

    @pytest.mark.asyncio
    async def test_create_persists_document(self, item_service, mock_database):
        item = await item_service.create({"itemId": 1001, "name": "Apple", "category": 2})

        document = mock_database.items.insert_one.call_args.args[0]
        assert document["itemId"] == 1001
        assert document["name"] == "Apple"
        assert document["category"] == 2
        assert "createdAt" in document and "updatedAt" in document
        assert "description" not in document
        assert item.item_id == 1001
        assert ObjectId.is_valid(item.id)

    @pytest.mark.asyncio
    async def test_create_missing_name(self, item_service, mock_database):
        with pytest.raises(ValidationError):
            await item_service.create({"itemId": 1001, "category": 2})

        mock_database.items.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_rejects_invalid_category(self, item_service):
        with pytest.raises(ValidationError):
            await item_service.create({"itemId": 1, "name": "Broken", "category": 0})

    @pytest.mark.asyncio
    async def test_duplicate_item_id(self, item_service, mock_database):
        mock_database.items.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(ValidationError) as exc_info:
            await item_service.create({"itemId": 1, "name": "Apple", "category": 2})

        assert "Duplicate key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_loss_marks_disconnected(self, item_service, mock_database):
        mock_database.items.insert_one.side_effect = AutoReconnect("connection closed")

        with pytest.raises(StoreError):
            await item_service.create({"itemId": 1, "name": "Apple", "category": 2})

        mock_database.mark_disconnected.assert_called_once()


class TestQueries:
    """Test lookups and search."""

    @pytest.mark.asyncio
    async def test_find_by_item_id_not_found(self, item_service, mock_database):
        mock_database.items.find_one.return_value = None

        assert await item_service.find_by_item_id(404) is None
        mock_database.items.find_one.assert_called_once_with({"itemId": 404})

    @pytest.mark.asyncio
    async def test_find_by_id_invalid(self, item_service):
        with pytest.raises(ValidationError):
            await item_service.find_by_id("not-an-object-id")

    @pytest.mark.asyncio
    async def test_search_by_name_query(self, item_service, mock_database):
        cursor = mock_database.items.find.return_value
        cursor.sort.return_value.limit.return_value = [
            {"_id": ObjectId(), "itemId": 1, "name": "Apple", "category": 2},
            {"_id": ObjectId(), "itemId": 2, "name": "Pineapple", "category": 2},
        ]

        items = await item_service.search_by_name("apple", category=2, limit=5)

        mock_database.items.find.assert_called_once_with(
            {"name": {"$regex": "apple", "$options": "i"}, "category": 2}
        )
        cursor.sort.assert_called_once_with("name", ASCENDING)
        cursor.sort.return_value.limit.assert_called_once_with(5)
        assert [item.name for item in items] == ["Apple", "Pineapple"]

    @pytest.mark.asyncio
    async def test_search_escapes_regex(self, item_service, mock_database):
        mock_database.items.find.return_value.sort.return_value.limit.return_value = []

        items = await item_service.search_by_name("a.b(c")

        query = mock_database.items.find.call_args.args[0]
        assert query == {"name": {"$regex": r"a\.b\(c", "$options": "i"}}
        assert items == []

    @pytest.mark.asyncio
    async def test_search_rejects_non_positive_limit(self, item_service):
        with pytest.raises(ValidationError):
            await item_service.search_by_name("apple", limit=0)


class TestUpdateDelete:
    """Test point updates and deletes."""

    @pytest.mark.asyncio
    async def test_update_sets_fields(self, item_service, mock_database):
        object_id = ObjectId()
        mock_database.items.find_one_and_update.return_value = {
            "_id": object_id, "itemId": 1, "name": "Green Apple", "category": 2,
        }

        item = await item_service.update(str(object_id), {"name": "Green Apple"})

        filter_, update = mock_database.items.find_one_and_update.call_args.args
        assert filter_ == {"_id": object_id}
        assert update["$set"]["name"] == "Green Apple"
        assert "updatedAt" in update["$set"]
        assert "category" not in update["$set"]
        assert item.name == "Green Apple"

    @pytest.mark.asyncio
    async def test_delete_reports_existence(self, item_service, mock_database):
        mock_database.items.delete_one.return_value = MagicMock(deleted_count=0)

        assert await item_service.delete(str(ObjectId())) is False

    @pytest.mark.asyncio
    async def test_delete_by_category(self, item_service, mock_database):
        mock_database.items.delete_many.return_value = MagicMock(deleted_count=12)

        deleted = await item_service.delete_by_category(ItemCategory.ITEM)

        assert deleted == 12
        mock_database.items.delete_many.assert_called_once_with({"category": 2})


class TestCreateMany:
    """Test bounded, all-or-nothing batch creation."""

    @pytest.mark.asyncio
    async def test_create_many_success(self, item_service):
        items = [ItemCreate(item_id=i, name=f"Item {i}", category=2) for i in range(1, 6)]

        created = await item_service.create_many(items)

        assert [item.item_id for item in created] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_create_many_rolls_back_on_failure(self, item_service, mock_database, insert_result):
        def insert(document):
            if document["itemId"] == 3:
                raise DuplicateKeyError("E11000 duplicate key")
            return insert_result()

        mock_database.items.insert_one.side_effect = insert
        items = [ItemCreate(item_id=i, name=f"Item {i}", category=2) for i in range(1, 5)]

        with pytest.raises(BatchCreateError) as exc_info:
            await item_service.create_many(items)

        assert len(exc_info.value.failures) == 1
        assert exc_info.value.failures[0]["item"]["itemId"] == 3
        rollback_filter = mock_database.items.delete_many.call_args.args[0]
        assert len(rollback_filter["_id"]["$in"]) == 3

    @pytest.mark.asyncio
    async def test_create_many_respects_concurrency_cap(self, mock_database, app_config):
        service = ItemService(mock_database, app_config)
        in_flight = 0
        peak = 0

        async def slow_create(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item

        service.create = slow_create
        await service.create_many(list(range(10)))

        assert peak <= app_config.batch.max_concurrent

    @pytest.mark.asyncio
    async def test_create_many_empty(self, item_service):
        assert await item_service.create_many([]) == []


class TestImportBagItems:
    """Test the destructive bag item import."""

    @pytest.mark.asyncio
    async def test_import_replaces_bag_items(self, item_service, mock_database, tmp_path):
        mock_database.items.delete_many.return_value = MagicMock(deleted_count=4)
        path = write_json(tmp_path, [{"id": 1, "name": "Apple"}, {"id": 2}])

        result = await item_service.import_bag_items_from_json(path)

        assert len(result.imported_items) == 1
        assert result.imported_items[0].item_id == 1
        assert result.imported_items[0].category == ItemCategory.ITEM
        assert result.failed_item_ids == [2]
        assert result.deleted_count == 4
        mock_database.items.delete_many.assert_called_once_with({"category": 2})

    @pytest.mark.asyncio
    async def test_import_ignores_source_category(self, item_service, mock_database, tmp_path):
        mock_database.items.delete_many.return_value = MagicMock(deleted_count=0)
        path = write_json(tmp_path, [{"id": 7, "name": "金币", "category": 1}])

        await item_service.import_bag_items_from_json(path)

        document = mock_database.items.insert_one.call_args.args[0]
        assert document == {
            "itemId": 7,
            "name": "金币",
            "category": 2,
            "createdAt": document["createdAt"],
            "updatedAt": document["updatedAt"],
        }

    @pytest.mark.asyncio
    async def test_import_drops_elements_without_id(self, item_service, mock_database, tmp_path):
        mock_database.items.delete_many.return_value = MagicMock(deleted_count=0)
        path = write_json(tmp_path, [{"name": "Nameless"}, {}, "junk", {"id": 3, "name": "Pear"}])

        result = await item_service.import_bag_items_from_json(path)

        assert [item.item_id for item in result.imported_items] == [3]
        assert result.failed_item_ids == []

    @pytest.mark.asyncio
    async def test_non_array_root_deletes_nothing(self, item_service, mock_database, tmp_path):
        path = write_json(tmp_path, {"id": 1, "name": "Apple"})

        with pytest.raises(ImportFormatError):
            await item_service.import_bag_items_from_json(path)

        mock_database.items.delete_many.assert_not_called()
        mock_database.items.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_json(self, item_service, mock_database, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(ImportFormatError):
            await item_service.import_bag_items_from_json(str(path))

        mock_database.items.delete_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_file(self, item_service, tmp_path):
        with pytest.raises(ImportFormatError):
            await item_service.import_bag_items_from_json(str(tmp_path / "missing.json"))


class TestExecute:
    """Test ServiceResult wrapping."""

    @pytest.mark.asyncio
    async def test_execute_wraps_errors(self, item_service):
        result = await item_service.execute(
            lambda: item_service.search_by_name("apple", limit=0), "search items"
        )

        assert result.success is False
        assert result.metadata["error_type"] == "ValidationError"
        assert result.request_id is not None

    @pytest.mark.asyncio
    async def test_execute_success(self, item_service, mock_database):
        mock_database.items.find.return_value.sort.return_value.limit.return_value = []

        result = await item_service.execute(lambda: item_service.search_by_name("apple"), "search items")

        assert result.success is True
        assert result.data == []


class TestStoreRoundTrip:
    """Test that a created item equals the item read back from the store."""

    @pytest.mark.asyncio
    async def test_create_then_find_by_item_id(self, item_service, mock_database, bson_round_trip):
        stored = {}

        def insert(document):
            stored["document"] = bson_round_trip({**document, "_id": ObjectId()})
            return MagicMock(inserted_id=stored["document"]["_id"])

        mock_database.items.insert_one.side_effect = insert
        mock_database.items.find_one.side_effect = lambda query: stored["document"]

        created = await item_service.create({"itemId": 42, "name": "Sword", "category": 2})
        found = await item_service.find_by_item_id(42)

        assert found == created
        assert found.created_at.tzinfo is not None
        assert created.created_at.microsecond % 1000 == 0
