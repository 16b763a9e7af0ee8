"""Command tools for the MCP server.

This package contains the tools that talk to the mini client:
- Command catalog listing
- Command dispatch with lifecycle tracking
- Command record lookup
"""

from .tools import CommandTools

__all__ = ["CommandTools"]
