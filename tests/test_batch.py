"""Tests for bounded-concurrency batch processing."""

import asyncio
import pytest

from xdt_mcp.services.batch import BatchItemStatus, BatchProcessor


class TestBatchProcessor:
    """Test the batch processor."""

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            BatchProcessor(max_concurrent=0)

    @pytest.mark.asyncio
    async def test_in_flight_never_exceeds_cap(self):
        processor = BatchProcessor(max_concurrent=3)

        async def operation(value):
            await asyncio.sleep(0.01)
            return value * 2

        result = await processor.process_batch(list(range(12)), operation)

        assert result.progress.max_in_flight == 3
        assert result.progress.success == 12
        assert result.get_results() == [value * 2 for value in range(12)]

    @pytest.mark.asyncio
    async def test_failures_are_collected(self):
        processor = BatchProcessor(max_concurrent=2)

        async def operation(value):
            if value % 2:
                raise ValueError(f"odd value {value}")
            return value

        result = await processor.process_batch([1, 2, 3, 4], operation, batch_id="mixed")

        failed = result.get_failed_items()
        assert [item.data for item in failed] == [1, 3]
        assert failed[0].error == "odd value 1"
        assert failed[0].status == BatchItemStatus.FAILED
        assert result.get_results() == [2, 4]
        assert result.batch_id == "mixed"
        assert result.progress.processing == 0

    @pytest.mark.asyncio
    async def test_failed_item_is_not_retried(self):
        processor = BatchProcessor(max_concurrent=1)
        attempts = []

        async def operation(value):
            attempts.append(value)
            raise ConnectionError("acknowledgement lost")

        result = await processor.process_batch(["a"], operation)

        assert attempts == ["a"]
        assert result.items[0].status == BatchItemStatus.FAILED
        assert result.progress.failed == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        processor = BatchProcessor()

        async def operation(value):
            return value

        result = await processor.process_batch([], operation)

        assert result.items == []
        assert result.progress.total_items == 0
