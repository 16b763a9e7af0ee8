"""MongoDB document store adapter.

The ``Database`` object owns the one MongoClient of the process. It is built
explicitly by the service container, handed to the services that need it, and
closed at shutdown. Connection loss is tracked as an observable state; the
next collection access after a loss performs a bounded reconnect with
exponential backoff.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pymongo import MongoClient, ASCENDING, TEXT, monitoring
from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError

from .config import MongoConfig

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Exception raised for document store failures."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class ValidationError(StoreError):
    """Raised when a document is rejected: duplicate key, missing or invalid fields."""


class BatchCreateError(ValidationError):
    """Raised when a bulk creation fails; carries the per-item failures."""

    def __init__(self, message: str, failures: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.failures = failures or []


class ConnectionState(str, Enum):
    """Connection state of the document store adapter."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"
    CLOSED = "closed"


class _HeartbeatListener(monitoring.ServerHeartbeatListener):
    """Feeds pymongo server heartbeats into the adapter's connection state."""

    def __init__(self, database: "Database"):
        self._database = database

    def started(self, event):
        pass

    def succeeded(self, event):
        self._database._on_heartbeat_succeeded()

    def failed(self, event):
        self._database.mark_disconnected(event.reply)


class Database:
    """Owner of the MongoDB connection and the typed collections."""

    ITEMS_COLLECTION = "items"
    COMMANDS_COLLECTION = "messages"

    def __init__(self, config: MongoConfig, client_factory: Callable[..., MongoClient] = MongoClient):
        self.config = config
        self._client_factory = client_factory
        self._client: Optional[MongoClient] = None
        self._db = None
        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._reconnect_lock = threading.Lock()
        self._last_error: Optional[str] = None
        self._reconnect_attempts = 0
        self._connected_since: Optional[datetime] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _set_state(self, state: ConnectionState) -> None:
        with self._state_lock:
            self._state = state
            if state == ConnectionState.CONNECTED:
                self._connected_since = datetime.now(timezone.utc)

    def connect(self) -> None:
        """Create the client and verify the server is reachable.

        Raises:
            StoreError: If the server cannot be reached within the configured attempts
        """
        if self._state == ConnectionState.CONNECTED:
            return

        self._set_state(ConnectionState.CONNECTING)
        try:
            self._client = self._client_factory(
                self.config.uri,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
                tz_aware=True,
                event_listeners=[_HeartbeatListener(self)],
            )
        except PyMongoError as e:
            self._last_error = str(e)
            self._set_state(ConnectionState.FAILED)
            logger.error(f"Error creating MongoDB client: {e}")
            raise StoreError(f"Failed to create MongoDB client: {e}", original_error=e)

        try:
            self._ping_with_backoff()
        except StoreError:
            self._client.close()
            self._client = None
            raise

        self._db = self._client[self.config.database_name]
        logger.info(f"Successfully connected to MongoDB database '{self.config.database_name}'")

    def _ping_with_backoff(self) -> None:
        """Ping the server, retrying with exponential backoff."""
        attempts = self.config.max_reconnect_attempts + 1
        delay = self.config.reconnect_backoff_seconds

        for attempt in range(attempts):
            try:
                self._client.admin.command("ping")
                self._last_error = None
                self._set_state(ConnectionState.CONNECTED)
                return
            except PyMongoError as e:
                self._last_error = str(e)
                if attempt < attempts - 1:
                    wait_time = delay * (self.config.backoff_multiplier ** attempt)
                    logger.warning(
                        f"MongoDB ping attempt {attempt + 1}/{attempts} failed: {e}. Retrying in {wait_time:.1f}s..."
                    )
                    time.sleep(wait_time)

        self._set_state(ConnectionState.FAILED)
        logger.error(f"Could not reach MongoDB after {attempts} attempts: {self._last_error}")
        raise StoreError(f"MongoDB unreachable after {attempts} attempts: {self._last_error}")

    def mark_disconnected(self, error: Optional[Exception] = None) -> None:
        """Record a lost connection; the next collection access reconnects."""
        with self._state_lock:
            if self._state != ConnectionState.CONNECTED:
                return
            self._state = ConnectionState.DISCONNECTED
            self._last_error = str(error) if error else None
        logger.warning(f"MongoDB disconnected: {error}. Will reconnect on next access")

    def _on_heartbeat_succeeded(self) -> None:
        with self._state_lock:
            if self._state != ConnectionState.DISCONNECTED:
                return
            self._state = ConnectionState.CONNECTED
            self._connected_since = datetime.now(timezone.utc)
            self._last_error = None
        logger.info("MongoDB connection restored")

    def _reconnect(self) -> None:
        with self._reconnect_lock:
            # Another caller may have restored the connection while we waited
            if self._state == ConnectionState.CONNECTED:
                return
            self._reconnect_attempts += 1
            self._set_state(ConnectionState.RECONNECTING)
            logger.warning("MongoDB connection lost. Attempting to reconnect...")
            self._ping_with_backoff()
            logger.info("Successfully reconnected to MongoDB")

    def _get_db(self):
        if self._client is None or self._state == ConnectionState.CLOSED:
            raise StoreError("Database is not connected")
        if self._state in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
            self._reconnect()
        return self._db

    @property
    def items(self) -> Collection:
        """The item catalog collection."""
        return self._get_db()[self.ITEMS_COLLECTION]

    @property
    def commands(self) -> Collection:
        """The command record collection."""
        return self._get_db()[self.COMMANDS_COLLECTION]

    def ensure_indexes(self) -> bool:
        """
        Create indexes (idempotent). Run once on startup.

        Returns False when the database user lacks permission to create
        indexes; the server still works but itemId uniqueness is not enforced
        by the store.
        """
        try:
            self.items.create_index([("itemId", ASCENDING)], name="uniq_item_id", unique=True)
            self.items.create_index([("name", ASCENDING)])
            self.items.create_index([("category", ASCENDING)])
            self.items.create_index([("name", TEXT)], name="item_name_text")
            self.commands.create_index([("status", ASCENDING)])
        except OperationFailure as e:
            if "createIndex" in str(e) or "not authorized" in str(e):
                logger.warning(f"Could not create indexes automatically: {e}")
                return False
            raise StoreError(f"Failed to create indexes: {e}", original_error=e)
        return True

    def health(self) -> Dict[str, Any]:
        """Snapshot of the connection health."""
        return {
            "state": self._state.value,
            "database": self.config.database_name,
            "last_error": self._last_error,
            "reconnect_attempts": self._reconnect_attempts,
            "connected_since": self._connected_since.isoformat() if self._connected_since else None,
        }

    def disconnect(self) -> None:
        """Close the client.

        Raises:
            StoreError: If closing the client fails
        """
        if self._client is None:
            self._set_state(ConnectionState.CLOSED)
            return

        try:
            self._client.close()
        except PyMongoError as e:
            logger.error(f"Error disconnecting from MongoDB: {e}")
            raise StoreError(f"Failed to disconnect from MongoDB: {e}", original_error=e)

        self._client = None
        self._db = None
        self._set_state(ConnectionState.CLOSED)
        logger.info("Successfully disconnected from MongoDB.")
