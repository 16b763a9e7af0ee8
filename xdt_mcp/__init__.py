"""XDT mini client MCP server - command relay and game item catalog tools."""

__version__ = "0.1.0"
