"""Command dispatcher - forwards commands to the mini client and tracks them."""

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from .command_service import CommandService
from .models.commands import CommandRecordCreate, CommandStatus, DispatchResult
from ..async_relay_client import AsyncRelayClient
from ..config import AppConfig
from ..database import StoreError
from ..relay_client import RelayProtocolError, RelayTransportError
from ..utils.serialization import safe_json_dumps
from ..utils.request_context import ensure_request_id


class CommandDispatcher:
    """
    Sends a named command through the relay and records its lifecycle.

    Every dispatch creates one ``pending`` record, makes a single relay call,
    and finalizes the record to ``success`` or ``failed``. There is no retry
    and no de-duplication: two calls make two records and two relay calls.
    """

    def __init__(self, command_service: CommandService, relay_client: AsyncRelayClient, config: AppConfig):
        self.command_service = command_service
        self.relay_client = relay_client
        self.config = config
        self.logger = logging.getLogger(__name__)

    async def dispatch(self, command_name: str, command_data: Any = None) -> DispatchResult:
        """
        Forward a command to the configured bot.

        Args:
            command_name: Command type understood by the mini client
            command_data: Command payload; serialized to JSON before sending

        Returns:
            DispatchResult describing the outcome. Relay failures are reported
            in the result, not raised.
        """
        request_id = ensure_request_id()
        command_json = safe_json_dumps(command_data if command_data is not None else {})

        try:
            record = await self.command_service.create(
                CommandRecordCreate(
                    bot_id=self.relay_client.bot_id,
                    command_type=command_name,
                    command_data=command_json,
                )
            )
        except (StoreError, PydanticValidationError) as e:
            self.logger.error(f"[{request_id}] Could not record command '{command_name}': {e}")
            return DispatchResult(
                success=False,
                command_type=command_name,
                error=f"Could not record command: {e}",
            )

        self.logger.info(f"[{request_id}] Dispatching command '{command_name}' as record {record.id}")

        result = DispatchResult(
            success=False,
            command_type=command_name,
            record_id=record.id,
            error="Dispatch interrupted before the relay answered",
        )
        try:
            result = await self._relay(command_name, command_json, record.id)
        finally:
            finalized = await self._finalize(record.id, result)
            if not finalized:
                result.warnings.append(f"Command record {record.id} could not be finalized")

        return result

    async def _relay(self, command_name: str, command_json: str, record_id: str) -> DispatchResult:
        try:
            body = await self.relay_client.forward_bot_request(command_name, command_json)
        except RelayProtocolError as e:
            self.logger.error(f"Relay rejected command '{command_name}': {e}")
            return DispatchResult(
                success=False,
                command_type=command_name,
                record_id=record_id,
                status_code=e.status_code,
                error=str(e),
            )
        except RelayTransportError as e:
            self.logger.error(f"Relay unreachable for command '{command_name}': {e}")
            return DispatchResult(
                success=False,
                command_type=command_name,
                record_id=record_id,
                error=str(e),
            )

        return DispatchResult(
            success=True,
            command_type=command_name,
            record_id=record_id,
            status=CommandStatus.SUCCESS,
            response_text=_as_text(body),
        )

    async def _finalize(self, record_id: str, result: DispatchResult) -> bool:
        """Write the final status once; returns False if the store rejected it."""
        if result.success:
            status, response = CommandStatus.SUCCESS, result.response_text
        else:
            status, response = CommandStatus.FAILED, result.error

        try:
            record = await self.command_service.complete(record_id, status, response)
        except StoreError as e:
            self.logger.error(f"Failed to finalize command record {record_id}: {e}")
            return False

        if record is None:
            return False
        result.status = record.status
        return True

    async def list_commands(self) -> str:
        """Fetch the mini client's command catalog as text."""
        body = await self.relay_client.list_commands()
        return _as_text(body)


def _as_text(body: Optional[Any]) -> str:
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    return safe_json_dumps(body)
