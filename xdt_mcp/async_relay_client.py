"""Async wrapper for the relay client to support the service layer."""

import logging
from typing import Any, Optional
from functools import wraps

from .relay_client import RelayClient
from .utils.request_context import run_in_executor_with_context


def async_wrapper(method_name):
    """Decorator to convert synchronous methods to async."""
    def decorator(func):
        @wraps(func)
        async def async_method(self, *args, **kwargs):
            sync_method = getattr(self.sync_client, method_name)
            # Run the sync method in a thread pool to avoid blocking
            return await run_in_executor_with_context(sync_method, *args, **kwargs)
        return async_method
    return decorator


class AsyncRelayClient:
    """Async wrapper for RelayClient."""

    def __init__(self, sync_client: RelayClient):
        self.sync_client = sync_client
        self.logger = logging.getLogger(__name__)

    @property
    def bot_id(self) -> int:
        return self.sync_client.config.bot_id

    @async_wrapper("forward_bot_request")
    def forward_bot_request(self, command_type: str, command_json: str, bot_id: Optional[int] = None) -> Any:
        """Forward a command to a bot."""
        pass

    @async_wrapper("list_commands")
    def list_commands(self) -> Any:
        """Get the commands the mini client supports."""
        pass

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.sync_client.session.close()
