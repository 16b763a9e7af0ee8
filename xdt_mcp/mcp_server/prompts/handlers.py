"""Prompt handlers for MCP server.

This module contains the prompt generation logic.
"""

from typing import Dict, Any
from mcp.types import GetPromptResult, PromptMessage, TextContent
import logging

logger = logging.getLogger(__name__)


class PromptHandlers:
    """Generates prompt messages from validated arguments."""

    async def handle_prompt(self, prompt_name: str, args: Dict[str, Any]) -> GetPromptResult:
        """Dispatch a prompt request to its handler.

        Args:
            prompt_name: Name of the prompt to handle
            args: Validated prompt arguments

        Returns:
            GetPromptResult: Generated prompt result
        """
        if prompt_name == "introduction":
            return self._handle_introduction(args)

        logger.warning(f"No handler for prompt '{prompt_name}'")
        return GetPromptResult(
            description=f"Unknown prompt: {prompt_name}",
            messages=[
                PromptMessage(
                    role="user",
                    content=TextContent(type="text", text=f"Error: Unknown prompt '{prompt_name}'")
                )
            ]
        )

    @staticmethod
    def _handle_introduction(args: Dict[str, Any]) -> GetPromptResult:
        name = args["name"]
        topic = args["topic"]

        return GetPromptResult(
            description=f"Introduction to {topic}",
            messages=[
                PromptMessage(
                    role="user",
                    content=TextContent(
                        type="text",
                        text=f"我是 {name}，我想了解关于 {topic} 的信息。请提供一个简短的介绍。"
                    )
                )
            ]
        )
