"""
Error Handling Utilities

Sanitizes error messages before they are returned to MCP callers so that
local file system paths do not leak.
"""

import re
from pathlib import Path


def sanitize_error(error: Exception) -> str:
    """
    Sanitize an error message for display to a tool caller.

    Replaces the home directory with ``~``, strips directory components from
    file paths and truncates overly long messages.

    Example:
        >>> sanitize_error(FileNotFoundError("/tmp/imports/bag.json not found"))
        'bag.json not found'
    """
    error_str = str(error)

    sanitized = error_str.replace(str(Path.home()), "~")

    # Keep only the file name of absolute paths
    sanitized = re.sub(r"/[a-zA-Z0-9_/.-]*/", "", sanitized)

    if len(sanitized) > 300:
        sanitized = sanitized[:300] + "..."

    return sanitized
