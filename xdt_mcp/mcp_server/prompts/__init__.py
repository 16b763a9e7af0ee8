"""Prompt definitions and handlers for the MCP server."""

from .definitions import PromptDefinitions
from .handlers import PromptHandlers

__all__ = ["PromptDefinitions", "PromptHandlers"]
