"""Service layer for the XDT mini client MCP server."""

from .base import BaseService, ServiceResult
from .batch import BatchProcessor, BatchResult
from .item_service import ItemService, ImportFormatError
from .command_service import CommandService
from .dispatcher import CommandDispatcher

__all__ = [
    "BaseService",
    "ServiceResult",
    "BatchProcessor",
    "BatchResult",
    "ItemService",
    "ImportFormatError",
    "CommandService",
    "CommandDispatcher",
]
