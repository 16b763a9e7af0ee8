"""Batch operations support for bounded-concurrency bulk processing."""

import asyncio
import logging
from typing import List, TypeVar, Generic, Callable, Optional, Awaitable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ..utils.request_context import ensure_request_id, generate_sub_request_id, set_request_id


T = TypeVar('T')
R = TypeVar('R')


class BatchItemStatus(str, Enum):
    """Status of a batch item."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class BatchItem(BaseModel, Generic[T, R]):
    """A single item in a batch operation."""
    id: str
    data: T
    status: BatchItemStatus = BatchItemStatus.PENDING
    result: Optional[R] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def mark_processing(self):
        self.status = BatchItemStatus.PROCESSING
        self.started_at = datetime.now()

    def mark_success(self, result: R):
        self.status = BatchItemStatus.SUCCESS
        self.result = result
        self.completed_at = datetime.now()

    def mark_failed(self, error: str):
        self.status = BatchItemStatus.FAILED
        self.error = error
        self.completed_at = datetime.now()


class BatchProgress(BaseModel):
    """Progress tracking for batch operations."""
    total_items: int
    pending: int = 0
    processing: int = 0
    success: int = 0
    failed: int = 0
    max_in_flight: int = 0
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def completed(self) -> int:
        return self.success + self.failed

    @property
    def duration(self) -> Optional[float]:
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()


class BatchResult(BaseModel, Generic[T, R]):
    """Result of a batch operation."""
    batch_id: str
    items: List[BatchItem[T, R]]
    progress: BatchProgress

    def get_failed_items(self) -> List[BatchItem[T, R]]:
        return [item for item in self.items if item.status == BatchItemStatus.FAILED]

    def get_results(self) -> List[R]:
        """Get all successful results, in input order."""
        return [item.result for item in self.items
                if item.status == BatchItemStatus.SUCCESS and item.result is not None]


class BatchProcessor:
    """Generic batch processor with a cap on in-flight operations."""

    def __init__(
        self,
        max_concurrent: int = 10,
    ):
        """
        Initialize batch processor.

        Args:
            max_concurrent: Maximum concurrent operations
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.logger = logging.getLogger(__name__)

    async def process_batch(
        self,
        items: List[T],
        operation: Callable[[T], Awaitable[R]],
        batch_id: Optional[str] = None,
    ) -> BatchResult[T, R]:
        """
        Process a batch of items.

        Args:
            items: List of items to process
            operation: Async function to process each item
            batch_id: Optional batch identifier

        Returns:
            BatchResult with all items and their results
        """
        batch_id = batch_id or f"batch_{datetime.now().timestamp()}"
        parent_request_id = ensure_request_id()
        # A fresh semaphore per batch keeps the cap bound to the running loop
        semaphore = asyncio.Semaphore(self.max_concurrent)

        batch_items = [
            BatchItem(id=f"{batch_id}_{i}", data=item)
            for i, item in enumerate(items)
        ]
        progress = BatchProgress(total_items=len(items), pending=len(items))

        async def process_item(index: int, batch_item: BatchItem[T, R]):
            async with semaphore:
                set_request_id(generate_sub_request_id(parent_request_id, index))
                progress.pending -= 1
                progress.processing += 1
                progress.max_in_flight = max(progress.max_in_flight, progress.processing)
                batch_item.mark_processing()

                # One attempt per item
                try:
                    result = await operation(batch_item.data)
                    batch_item.mark_success(result)
                    progress.success += 1
                except Exception as e:
                    batch_item.mark_failed(str(e))
                    progress.failed += 1
                    self.logger.error(f"Failed item {batch_item.id}: {e}")
                finally:
                    progress.processing -= 1

        await asyncio.gather(*[process_item(i, item) for i, item in enumerate(batch_items)])

        progress.end_time = datetime.now()

        self.logger.info(
            f"Batch {batch_id} completed: "
            f"{progress.success} success, {progress.failed} failed in {progress.duration:.2f}s"
        )

        return BatchResult(batch_id=batch_id, items=batch_items, progress=progress)
