"""Dependency injection container for the MCP server.

The container builds the document store adapter, the relay client and the
services in dependency order, and tears them down again at shutdown.
"""

import logging
from typing import Dict, Any, Optional, TypeVar, Type

from ..config import AppConfig
from ..database import Database, StoreError
from ..relay_client import RelayClient
from ..async_relay_client import AsyncRelayClient
from ..services import BatchProcessor, ItemService, CommandService, CommandDispatcher
from ..utils.request_context import run_in_executor_with_context

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceContainer:
    """
    Owns the process-wide store connection and the service instances.

    A pre-built ``Database`` or ``RelayClient`` may be passed in; otherwise
    both are created from the configuration.
    """

    def __init__(
        self,
        config: AppConfig,
        database: Optional[Database] = None,
        relay_client: Optional[RelayClient] = None,
    ):
        self.config = config
        self._database = database
        self._relay_client = relay_client
        self._services: Dict[str, Any] = {}
        self._initialized = False

    async def initialize(self) -> None:
        """
        Connect to the store and build all services.

        Raises:
            StoreError: If the document store cannot be reached
            RuntimeError: If any other component fails to initialize
        """
        if self._initialized:
            return

        try:
            database = self._database or Database(self.config.mongodb)
            await run_in_executor_with_context(database.connect)
            await run_in_executor_with_context(database.ensure_indexes)
            self._services['database'] = database

            sync_client = self._relay_client or RelayClient(self.config.relay)
            async_client = AsyncRelayClient(sync_client)
            self._services['sync_client'] = sync_client
            self._services['async_client'] = async_client

            batch_processor = BatchProcessor(max_concurrent=self.config.batch.max_concurrent)
            self._services['batch_processor'] = batch_processor

            command_service = CommandService(database, self.config)
            self._services['item_service'] = ItemService(database, self.config, batch_processor)
            self._services['command_service'] = command_service
            self._services['dispatcher'] = CommandDispatcher(command_service, async_client, self.config)

            self._initialized = True
            logger.info(f"Service container initialized with {len(self._services)} services")

        except StoreError:
            logger.exception("Failed to connect to the document store")
            raise
        except Exception as e:
            logger.exception("Failed to initialize service container")
            raise RuntimeError(f"Service container initialization failed: {str(e)}")

    def get_service(self, service_name: str, service_type: Optional[Type[T]] = None) -> T:
        """Get a service instance by name.

        Raises:
            KeyError: If service is not found
            RuntimeError: If container is not initialized
        """
        if not self._initialized:
            raise RuntimeError("Service container not initialized. Call initialize() first.")

        if service_name not in self._services:
            raise KeyError(f"Service '{service_name}' not found in container")

        return self._services[service_name]

    def has_service(self, service_name: str) -> bool:
        return service_name in self._services

    def get_all_services(self) -> Dict[str, Any]:
        return self._services.copy()

    def is_initialized(self) -> bool:
        return self._initialized

    async def shutdown(self) -> None:
        """
        Close the relay session and the store connection.

        Raises:
            StoreError: If the store connection does not close cleanly
        """
        async_client = self._services.get('async_client')
        database = self._services.get('database')

        self._services.clear()
        self._initialized = False

        if async_client is not None:
            async_client.close()

        if database is not None:
            try:
                await run_in_executor_with_context(database.disconnect)
            except StoreError:
                logger.exception("Error closing the document store connection")
                raise

        logger.info("Service container shutdown completed")
