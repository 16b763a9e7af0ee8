"""Pydantic models for the service layer."""

from .items import ItemCategory, ItemCreate, ItemUpdate, Item, ImportResult
from .commands import (
    CommandStatus,
    CommandRecordCreate,
    CommandRecordUpdate,
    CommandRecord,
    DispatchResult,
)

__all__ = [
    "ItemCategory",
    "ItemCreate",
    "ItemUpdate",
    "Item",
    "ImportResult",
    "CommandStatus",
    "CommandRecordCreate",
    "CommandRecordUpdate",
    "CommandRecord",
    "DispatchResult",
]
