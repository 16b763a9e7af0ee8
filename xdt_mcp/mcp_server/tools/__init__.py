"""Tool categories for the MCP server.

Each category class registers its MCP tool definitions and the async
handlers that serve them.
"""

from .general import GeneralTools
from .commands import CommandTools
from .items import ItemTools

__all__ = ["GeneralTools", "CommandTools", "ItemTools"]
