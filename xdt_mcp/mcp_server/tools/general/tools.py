"""General tools for the XDT mini client MCP server."""

import logging
from typing import Any, Dict
from mcp.types import Tool

logger = logging.getLogger(__name__)

GREETINGS = {"zh": "你好", "en": "Hello"}


class GeneralTools:
    """Tools that need no backing service."""

    def __init__(self):
        self._tool_handlers: Dict[str, Any] = {}
        self._tools: Dict[str, Tool] = {}

    def get_tools(self) -> Dict[str, Tool]:
        return self._tools.copy()

    def get_handlers(self) -> Dict[str, Any]:
        return self._tool_handlers.copy()

    def register_tools(self) -> None:
        """Register all general tools and handlers."""

        self._tools["greet"] = Tool(
            name="greet",
            description="Greet someone in Chinese or English",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Name to greet"},
                    "language": {
                        "type": "string",
                        "enum": list(GREETINGS),
                        "description": "Greeting language",
                        "default": "zh",
                    },
                },
                "required": ["name"],
            },
        )

        async def greet(name, language="zh"):
            if language not in GREETINGS:
                raise ValueError(f"Unsupported language: {language}")
            return f"{GREETINGS[language]}, {name}!"

        self._tool_handlers["greet"] = greet
