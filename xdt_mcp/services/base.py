"""Base service class with common patterns and error handling."""

import logging
from typing import TypeVar, Generic, Optional, List, Dict, Any, Callable, Awaitable
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from ..config import AppConfig
from ..database import Database, StoreError, ValidationError
from ..relay_client import RelayError
from ..utils.request_context import (
    ensure_request_id,
    get_request_id,
    run_in_executor_with_context,
    with_request_id,
)


T = TypeVar("T")


class ServiceResult(BaseModel, Generic[T]):
    """Standard service result wrapper for all operations."""

    model_config = {"arbitrary_types_allowed": True}

    success: bool = Field(description="Whether the operation was successful")
    data: Optional[T] = Field(None, description="Operation result data")
    error: Optional[str] = Field(None, description="Error message if operation failed")
    warnings: List[str] = Field(
        default_factory=list, description="Any warnings during operation"
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Additional metadata"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now, description="When operation was performed"
    )
    request_id: Optional[str] = Field(
        None, description="Request ID for tracing this operation"
    )

    @classmethod
    def success_result(
        cls,
        data: T,
        warnings: List[str] = None,
        metadata: Dict[str, Any] = None,
        request_id: Optional[str] = None,
    ) -> "ServiceResult[T]":
        """Create a successful result with request ID."""
        if request_id is None:
            request_id = get_request_id()

        return cls(
            success=True,
            data=data,
            warnings=warnings or [],
            metadata=metadata or {},
            request_id=request_id,
        )

    @classmethod
    def error_result(
        cls,
        error: str,
        warnings: List[str] = None,
        metadata: Dict[str, Any] = None,
        request_id: Optional[str] = None,
    ) -> "ServiceResult[T]":
        """Create an error result with request ID."""
        if request_id is None:
            request_id = get_request_id()

        return cls(
            success=False,
            error=error,
            warnings=warnings or [],
            metadata=metadata or {},
            request_id=request_id,
        )


def utcnow() -> datetime:
    """Current UTC time for createdAt/updatedAt stamps.

    Truncated to milliseconds, the precision of BSON dates, so a stamped
    model compares equal to the document read back from the store.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class BaseService:
    """Base class for services backed by the document store."""

    def __init__(self, database: Database, config: AppConfig):
        self.database = database
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @with_request_id()
    async def execute(
        self, operation: Callable[[], Awaitable[T]], operation_name: str = "operation"
    ) -> ServiceResult[T]:
        """
        Execute an operation with standardized error handling, timing, and request tracking.

        Args:
            operation: Async function to execute
            operation_name: Name of operation for logging

        Returns:
            ServiceResult with success/error information and request ID
        """
        start_time = datetime.now()
        request_id = ensure_request_id()

        try:
            self.logger.debug(f"[{request_id}] Starting {operation_name}")
            result = await operation()

            execution_time = (datetime.now() - start_time).total_seconds() * 1000
            self.logger.debug(
                f"[{request_id}] Completed {operation_name} in {execution_time:.2f}ms"
            )

            return ServiceResult.success_result(
                data=result,
                metadata={"execution_time_ms": execution_time},
                request_id=request_id,
            )

        except (StoreError, RelayError, ValueError) as e:
            execution_time = (datetime.now() - start_time).total_seconds() * 1000
            error_msg = f"{type(e).__name__} in {operation_name}: {e}"
            self.logger.error(f"[{request_id}] {error_msg}")

            return ServiceResult.error_result(
                error=error_msg,
                metadata={
                    "execution_time_ms": execution_time,
                    "error_type": type(e).__name__,
                    "original_error": str(e),
                },
                request_id=request_id,
            )

        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds() * 1000
            error_msg = f"Internal error in {operation_name}: {e}"
            self.logger.exception(f"[{request_id}] {error_msg}")

            return ServiceResult.error_result(
                error=error_msg,
                metadata={
                    "execution_time_ms": execution_time,
                    "error_type": "internal_error",
                    "original_error": str(e),
                },
                request_id=request_id,
            )

    async def _run_store(self, operation: Callable[[], T], operation_name: str) -> T:
        """
        Run a blocking pymongo operation in the executor and map driver errors.

        Raises:
            ValidationError: On duplicate keys
            StoreError: On connection loss or any other driver failure
        """
        try:
            return await run_in_executor_with_context(operation)
        except StoreError:
            raise
        except DuplicateKeyError as e:
            self.logger.error(f"Duplicate key in {operation_name}: {e}")
            raise ValidationError(f"Duplicate key in {operation_name}: {e.details or e}", original_error=e)
        except ConnectionFailure as e:
            self.database.mark_disconnected(e)
            self.logger.error(f"Store connection failure in {operation_name}: {e}")
            raise StoreError(f"Store connection failure in {operation_name}: {e}", original_error=e)
        except PyMongoError as e:
            self.logger.error(f"Store error in {operation_name}: {e}")
            raise StoreError(f"Store error in {operation_name}: {e}", original_error=e)

    @staticmethod
    def _object_id(value: Any) -> ObjectId:
        """Parse a record identifier."""
        if isinstance(value, ObjectId):
            return value
        try:
            return ObjectId(str(value))
        except (InvalidId, TypeError):
            raise ValidationError(f"Invalid record id: {value}")
