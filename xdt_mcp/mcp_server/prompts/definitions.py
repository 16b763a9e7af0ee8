"""Prompt definitions for MCP server.

All prompts available in the MCP server are defined here.
"""

from typing import Dict
from mcp.types import Prompt, PromptArgument


class PromptDefinitions:
    """Central repository for all prompt definitions."""

    @staticmethod
    def get_all_prompts() -> Dict[str, Prompt]:
        """Return all prompt definitions.

        Returns:
            Dict[str, Prompt]: Dictionary mapping prompt names to Prompt objects
        """
        return {
            "introduction": Prompt(
                name="introduction",
                description="Ask for a short introduction to a topic",
                arguments=[
                    PromptArgument(
                        name="name",
                        description="Name of the person asking",
                        required=True,
                    ),
                    PromptArgument(
                        name="topic",
                        description="Topic to introduce",
                        required=True,
                    ),
                ],
            ),
        }

    @staticmethod
    def get_prompt_names() -> list:
        return list(PromptDefinitions.get_all_prompts().keys())
