"""
JSON Serialization Utilities

Safe JSON serialization for tool results and command payloads, with handling
for datetimes, Enums, BSON ObjectIds and Pydantic models.
"""

import json
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any

from bson import ObjectId


class MCPJSONEncoder(json.JSONEncoder):
    """JSON encoder for store documents and service models."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, ObjectId):
            return str(obj)
        elif isinstance(obj, Decimal):
            return float(obj)
        elif isinstance(obj, Enum):
            return obj.value
        elif hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json", by_alias=True)
        return super().default(obj)


def safe_json_dumps(obj: Any) -> str:
    """
    Serialize an object to JSON, falling back to a description on failure.

    Non-ASCII text (item names, Chinese greetings) is kept as is.

    Example:
        >>> safe_json_dumps({"createdAt": datetime(2024, 1, 1), "count": 2})
        '{"createdAt": "2024-01-01T00:00:00", "count": 2}'
    """
    try:
        return json.dumps(obj, cls=MCPJSONEncoder, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        return json.dumps(
            {"error": f"Serialization failed: {str(e)}", "data": str(obj)},
            ensure_ascii=False,
        )
