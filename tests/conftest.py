"""Pytest configuration and shared fixtures."""

import pytest
import os
import logging
from unittest.mock import MagicMock

from bson import ObjectId

from xdt_mcp.config import AppConfig, MongoConfig, RelayConfig, BatchConfig

# Disable logging during tests to reduce noise
logging.disable(logging.CRITICAL)


@pytest.fixture(autouse=True)
def clean_env():
    """Clean environment variables before each test."""
    env_vars_to_clean = [
        "MONGODB_URI",
        "MONGODB_DATABASE",
        "MONGODB_MAX_RECONNECT_ATTEMPTS",
        "MONGODB_RECONNECT_BACKOFF",
        "RELAY_BASE_URL",
        "RELAY_BOT_ID",
        "RELAY_REQUEST_TIMEOUT",
        "BATCH_MAX_CONCURRENT",
        "LOG_LEVEL",
        "LOG_DIR",
    ]

    original_values = {}
    for var in env_vars_to_clean:
        original_values[var] = os.environ.get(var)
        if var in os.environ:
            del os.environ[var]

    yield

    for var, value in original_values.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]


@pytest.fixture
def app_config():
    """Application config with fast reconnects and a small batch cap."""
    return AppConfig(
        mongodb=MongoConfig(
            uri="mongodb://localhost:27017/test_db",
            max_reconnect_attempts=2,
            reconnect_backoff_seconds=0.0,
        ),
        relay=RelayConfig(base_url="http://relay.test:5000", bot_id=7, request_timeout=5),
        batch=BatchConfig(max_concurrent=3),
    )


@pytest.fixture
def mock_database():
    """A Database stand-in whose collections are MagicMocks."""
    database = MagicMock()
    database.items = MagicMock(name="items")
    database.commands = MagicMock(name="commands")
    database.health.return_value = {"state": "connected", "database": "test_db"}
    return database


@pytest.fixture
def insert_result():
    """Factory for pymongo InsertOneResult stand-ins with fresh ObjectIds."""

    def factory(*args, **kwargs):
        result = MagicMock()
        result.inserted_id = ObjectId()
        return result

    return factory


@pytest.fixture
def bson_round_trip():
    """Encode and decode a document the way a tz-aware MongoClient stores and returns it."""
    from bson import CodecOptions, decode, encode

    def round_trip(document):
        return decode(encode(document), codec_options=CodecOptions(tz_aware=True))

    return round_trip
