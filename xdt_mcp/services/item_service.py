"""Item catalog service - CRUD, fuzzy search and bulk import of game items."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, ReturnDocument

from .base import BaseService, utcnow
from .batch import BatchProcessor
from .models.items import ImportResult, Item, ItemCategory, ItemCreate, ItemUpdate
from ..config import AppConfig
from ..database import BatchCreateError, Database, ValidationError
from ..utils.request_context import run_in_executor_with_context


class ImportFormatError(ValueError):
    """The import file is unreadable, not JSON, or not a JSON array."""


ItemInput = Union[ItemCreate, Dict[str, Any]]


class ItemService(BaseService):
    """Service for the game item catalog."""

    def __init__(
        self,
        database: Database,
        config: AppConfig,
        batch_processor: Optional[BatchProcessor] = None,
    ):
        super().__init__(database, config)
        self.batch_processor = batch_processor or BatchProcessor(
            max_concurrent=config.batch.max_concurrent
        )

    def _validate_input(self, item: ItemInput) -> ItemCreate:
        if isinstance(item, ItemCreate):
            return item
        try:
            return ItemCreate.model_validate(item)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid item: {e.errors(include_url=False)}")

    async def create(self, item: ItemInput) -> Item:
        """
        Persist one item.

        Raises:
            ValidationError: If fields are missing or invalid, or itemId already exists
        """
        payload = self._validate_input(item)
        now = utcnow()
        document = {**payload.to_document(), "createdAt": now, "updatedAt": now}

        result = await self._run_store(
            lambda: self.database.items.insert_one(document), "create item"
        )
        document["_id"] = result.inserted_id
        self.logger.debug(f"Created item {payload.item_id} ({payload.name})")
        return Item.from_document(document)

    async def find_by_id(self, id: str) -> Optional[Item]:
        object_id = self._object_id(id)
        document = await self._run_store(
            lambda: self.database.items.find_one({"_id": object_id}), "find item"
        )
        return Item.from_document(document) if document else None

    async def find_by_item_id(self, item_id: int) -> Optional[Item]:
        """Find an item by its game item id; None when absent."""
        document = await self._run_store(
            lambda: self.database.items.find_one({"itemId": item_id}), "find item by itemId"
        )
        return Item.from_document(document) if document else None

    async def search_by_name(
        self, name: str, category: Optional[int] = None, limit: int = 10
    ) -> List[Item]:
        """
        Case-insensitive substring search on item names.

        Args:
            name: Text the name must contain (matched literally)
            category: Optional exact category filter
            limit: Maximum number of results

        Returns:
            Matching items sorted by name ascending
        """
        if limit <= 0:
            raise ValidationError("limit must be positive")

        query: Dict[str, Any] = {"name": {"$regex": re.escape(name), "$options": "i"}}
        if category is not None:
            query["category"] = int(category)

        documents = await self._run_store(
            lambda: list(
                self.database.items.find(query).sort("name", ASCENDING).limit(limit)
            ),
            "search items",
        )
        return [Item.from_document(doc) for doc in documents]

    async def update(self, id: str, fields: Union[ItemUpdate, Dict[str, Any]]) -> Optional[Item]:
        """Apply a partial update; None when the item does not exist."""
        object_id = self._object_id(id)
        if not isinstance(fields, ItemUpdate):
            try:
                fields = ItemUpdate.model_validate(fields)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid item update: {e.errors(include_url=False)}")

        changes = {**fields.to_document(), "updatedAt": utcnow()}
        document = await self._run_store(
            lambda: self.database.items.find_one_and_update(
                {"_id": object_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            ),
            "update item",
        )
        return Item.from_document(document) if document else None

    async def delete(self, id: str) -> bool:
        """Delete an item; returns whether it existed."""
        object_id = self._object_id(id)
        result = await self._run_store(
            lambda: self.database.items.delete_one({"_id": object_id}), "delete item"
        )
        return result.deleted_count > 0

    async def create_many(self, items: List[ItemInput]) -> List[Item]:
        """
        Create items with bounded concurrency, all or nothing.

        If any creation fails, the items this call already created are deleted
        again and BatchCreateError is raised.
        """
        if not items:
            return []

        result = await self.batch_processor.process_batch(
            items=items,
            operation=self.create,
            batch_id=f"create_items_{utcnow().timestamp()}",
        )

        failed = result.get_failed_items()
        if not failed:
            return result.get_results()

        created = result.get_results()
        self.logger.error(
            f"Batch item creation failed for {len(failed)} of {len(items)} items; "
            f"rolling back {len(created)} created items"
        )
        if created:
            created_ids = [self._object_id(item.id) for item in created]
            await self._run_store(
                lambda: self.database.items.delete_many({"_id": {"$in": created_ids}}),
                "roll back batch",
            )

        failures = [{"item": _describe(batch_item.data), "error": batch_item.error} for batch_item in failed]
        raise BatchCreateError(
            f"{len(failed)} of {len(items)} items could not be created; batch rolled back",
            failures=failures,
        )

    async def delete_by_category(self, category: int) -> int:
        """Delete every item of a category; returns the number deleted."""
        result = await self._run_store(
            lambda: self.database.items.delete_many({"category": int(category)}),
            "delete items by category",
        )
        deleted = result.deleted_count or 0
        self.logger.info(f"Deleted {deleted} items of category {int(category)}")
        return deleted

    @staticmethod
    def _read_import_file(file_path: str) -> Any:
        path = Path(file_path)
        if not path.is_file():
            raise ImportFormatError(f"File does not exist: {file_path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise ImportFormatError(f"Cannot read {file_path}: {e}")
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Invalid JSON in {file_path}: {e}")

    async def import_bag_items_from_json(self, file_path: str) -> ImportResult:
        """
        Replace all bag items (category ITEM) with the contents of a JSON file.

        The file must hold a JSON array of objects with ``id`` and ``name``.
        Categories in the file are ignored; every imported item gets category
        ITEM. Elements with an id but no name are reported in
        ``failed_item_ids``; elements with neither are dropped.

        Raises:
            ImportFormatError: If the file is unreadable or its root is not an array
        """
        raw_data = await run_in_executor_with_context(self._read_import_file, file_path)
        if not isinstance(raw_data, list):
            raise ImportFormatError("Import file must contain a JSON array of item objects")

        failed_item_ids: List[Any] = []
        items_data: List[ItemCreate] = []

        for element in raw_data:
            if not isinstance(element, dict):
                self.logger.warning(f"Ignoring non-object element: {element!r}")
                continue

            item_id = element.get("id")
            name = element.get("name")
            if item_id and name:
                try:
                    items_data.append(
                        ItemCreate(item_id=item_id, name=name, category=int(ItemCategory.ITEM))
                    )
                except PydanticValidationError as e:
                    failed_item_ids.append(item_id)
                    self.logger.warning(f"Ignoring item {item_id}: {e.errors(include_url=False)}")
            elif item_id:
                failed_item_ids.append(item_id)
                self.logger.warning(f"Ignoring item {item_id}: missing name")
            else:
                self.logger.warning("Ignoring invalid item: missing id and name")

        deleted_count = await self.delete_by_category(ItemCategory.ITEM)
        self.logger.info(f"Deleted {deleted_count} bag items before import")

        self.logger.info(
            f"Importing {len(items_data)} items, skipped {len(failed_item_ids)} items without a name"
        )
        imported_items = await self.create_many(items_data)
        self.logger.info(f"Imported {len(imported_items)} items")

        return ImportResult(
            imported_items=imported_items,
            failed_item_ids=failed_item_ids,
            deleted_count=deleted_count,
        )


def _describe(item: Any) -> Any:
    if isinstance(item, ItemCreate):
        return {"itemId": item.item_id, "name": item.name}
    return item
