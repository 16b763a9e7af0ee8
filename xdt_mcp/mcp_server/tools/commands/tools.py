"""Command tools for the XDT mini client MCP server.

This module exposes command dispatch to the mini client and the command
record history.
"""

import logging
from typing import Any, Dict, TYPE_CHECKING
from mcp.types import Tool

from ....relay_client import RelayError
from ....services.models.commands import CommandStatus

if TYPE_CHECKING:
    from ....services import CommandDispatcher, CommandService

logger = logging.getLogger(__name__)


class CommandTools:
    """Command dispatch and tracking tools for MCP server."""

    def __init__(self, dispatcher: "CommandDispatcher", command_service: "CommandService"):
        """Initialize command tools with required services.

        Args:
            dispatcher: Dispatcher that relays commands and records them
            command_service: Service for reading command records
        """
        self.dispatcher = dispatcher
        self.command_service = command_service
        self._tool_handlers: Dict[str, Any] = {}
        self._tools: Dict[str, Tool] = {}

    def get_tools(self) -> Dict[str, Tool]:
        """Get all command tool definitions."""
        return self._tools.copy()

    def get_handlers(self) -> Dict[str, Any]:
        """Get all command tool handlers."""
        return self._tool_handlers.copy()

    def register_tools(self) -> None:
        """Register all command tools and handlers."""

        # Command catalog
        self._tools["get_all_commands"] = Tool(
            name="get_all_commands",
            description="List all commands the running mini client supports",
            inputSchema={"type": "object", "properties": {}},
        )

        async def get_all_commands():
            try:
                return await self.dispatcher.list_commands()
            except RelayError as e:
                logger.error(f"Failed to fetch mini client commands: {e}")
                return f"Failed to fetch commands: {e}"

        self._tool_handlers["get_all_commands"] = get_all_commands

        # Command dispatch
        self._tools["send_command"] = Tool(
            name="send_command",
            description="Send a command to the mini client bot and record its outcome",
            inputSchema={
                "type": "object",
                "properties": {
                    "commandName": {
                        "type": "string",
                        "description": "Command type, as listed by get_all_commands",
                    },
                    "commandData": {
                        "type": "object",
                        "description": "Command payload",
                        "additionalProperties": True,
                    },
                },
                "required": ["commandName"],
            },
        )

        async def send_command(commandName, commandData=None):
            result = await self.dispatcher.dispatch(commandName, commandData)
            text = result.to_text()
            if result.warnings:
                text += "\n" + "\n".join(f"Warning: {warning}" for warning in result.warnings)
            return text

        self._tool_handlers["send_command"] = send_command

        # Command history
        self._tools["list_command_records"] = Tool(
            name="list_command_records",
            description="List recorded command dispatches, newest first",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {
                        "type": "string",
                        "enum": [status.value for status in CommandStatus],
                        "description": "Filter by lifecycle status",
                    },
                    "commandType": {"type": "string", "description": "Filter by command type"},
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of records",
                        "default": 20,
                    },
                },
            },
        )

        async def list_command_records(status=None, commandType=None, limit=20):
            query: Dict[str, Any] = {}
            if status:
                query["status"] = CommandStatus(status)
            if commandType:
                query["commandType"] = commandType

            result = await self.command_service.execute(
                lambda: self.command_service.find_all(query, limit=limit),
                "list command records",
            )
            if not result.success:
                return {"success": False, "error": result.error}
            return {"success": True, "records": result.data, "count": len(result.data)}

        self._tool_handlers["list_command_records"] = list_command_records

        self._tools["get_command_record"] = Tool(
            name="get_command_record",
            description="Get one command record by its record id",
            inputSchema={
                "type": "object",
                "properties": {
                    "recordId": {"type": "string", "description": "Command record id"},
                },
                "required": ["recordId"],
            },
        )

        async def get_command_record(recordId):
            result = await self.command_service.execute(
                lambda: self.command_service.find_by_id(recordId),
                "get command record",
            )
            if not result.success:
                return {"success": False, "error": result.error}
            if result.data is None:
                return {"success": False, "error": f"Command record {recordId} not found"}
            return {"success": True, "record": result.data}

        self._tool_handlers["get_command_record"] = get_command_record
