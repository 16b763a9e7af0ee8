"""Command tracking service - persistence of dispatched command records."""

from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING, ReturnDocument

from .base import BaseService, utcnow
from .models.commands import (
    CommandRecord,
    CommandRecordCreate,
    CommandRecordUpdate,
    CommandStatus,
)
from ..database import ValidationError


class CommandService(BaseService):
    """CRUD over command records. Store errors propagate to the caller."""

    async def create(self, data: Union[CommandRecordCreate, Dict[str, Any]]) -> CommandRecord:
        if not isinstance(data, CommandRecordCreate):
            try:
                data = CommandRecordCreate.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid command record: {e.errors(include_url=False)}")

        now = utcnow()
        document = {**data.to_document(), "createdAt": now, "updatedAt": now}
        result = await self._run_store(
            lambda: self.database.commands.insert_one(document), "create command record"
        )
        document["_id"] = result.inserted_id
        return CommandRecord.from_document(document)

    async def find_by_id(self, id: str) -> Optional[CommandRecord]:
        object_id = self._object_id(id)
        document = await self._run_store(
            lambda: self.database.commands.find_one({"_id": object_id}), "find command record"
        )
        return CommandRecord.from_document(document) if document else None

    async def find_all(
        self, filter: Optional[Dict[str, Any]] = None, limit: int = 0
    ) -> List[CommandRecord]:
        """
        List command records, newest first.

        Args:
            filter: Store filter on record fields (camelCase names, e.g. ``commandType``)
            limit: Maximum number of records; 0 means no limit
        """
        query = dict(filter or {})
        if isinstance(query.get("status"), CommandStatus):
            query["status"] = query["status"].value

        documents = await self._run_store(
            lambda: list(
                self.database.commands.find(query).sort("createdAt", DESCENDING).limit(limit)
            ),
            "find command records",
        )
        return [CommandRecord.from_document(doc) for doc in documents]

    async def update(
        self, id: str, data: Union[CommandRecordUpdate, Dict[str, Any]]
    ) -> Optional[CommandRecord]:
        object_id = self._object_id(id)
        if not isinstance(data, CommandRecordUpdate):
            try:
                data = CommandRecordUpdate.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid command record update: {e.errors(include_url=False)}")

        changes = {**data.to_document(), "updatedAt": utcnow()}
        document = await self._run_store(
            lambda: self.database.commands.find_one_and_update(
                {"_id": object_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            ),
            "update command record",
        )
        return CommandRecord.from_document(document) if document else None

    async def complete(
        self, id: str, status: CommandStatus, response: Optional[str] = None
    ) -> Optional[CommandRecord]:
        """
        Move a pending record to its final status.

        The update only matches while the record is still pending, so a
        record is finalized at most once.

        Returns:
            The finalized record, or None if it does not exist or was already final
        """
        if status == CommandStatus.PENDING:
            raise ValidationError("A command record can only be completed as success or failed")

        object_id = self._object_id(id)
        changes = {"status": status.value, "updatedAt": utcnow()}
        if response is not None:
            changes["response"] = response

        document = await self._run_store(
            lambda: self.database.commands.find_one_and_update(
                {"_id": object_id, "status": CommandStatus.PENDING.value},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            ),
            "complete command record",
        )
        if document is None:
            self.logger.warning(f"Command record {id} was not pending; status left unchanged")
            return None
        return CommandRecord.from_document(document)

    async def delete(self, id: str) -> bool:
        object_id = self._object_id(id)
        result = await self._run_store(
            lambda: self.database.commands.delete_one({"_id": object_id}), "delete command record"
        )
        return result.deleted_count > 0
