"""Tests for configuration loading."""

import json
import os
import pytest
from unittest.mock import patch
from pydantic import ValidationError

from xdt_mcp.config import (
    AppConfig,
    BatchConfig,
    MongoConfig,
    RelayConfig,
    load_config,
    merge_config,
)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run each test in an empty directory so no config file or .env is found."""
    monkeypatch.chdir(tmp_path)
    with patch("xdt_mcp.config.Path.home", return_value=tmp_path):
        yield tmp_path


class TestMongoConfig:
    """Test MongoDB configuration."""

    def test_defaults(self):
        config = MongoConfig()

        assert config.uri == "mongodb://localhost:27017/mcp_db"
        assert config.database_name == "mcp_db"
        assert config.max_reconnect_attempts == 3
        assert config.reconnect_backoff_seconds == 1.0

    def test_database_name_from_uri_path(self):
        config = MongoConfig(uri="mongodb://db.example:27017/game_items?authSource=admin")
        assert config.database_name == "game_items"

    def test_database_name_without_uri_path(self):
        config = MongoConfig(uri="mongodb://db.example:27017")
        assert config.database_name == "mcp_db"

    def test_explicit_database_wins(self):
        config = MongoConfig(uri="mongodb://localhost/from_uri", database="explicit")
        assert config.database_name == "explicit"

    def test_invalid_scheme(self):
        with pytest.raises(ValidationError):
            MongoConfig(uri="http://localhost:27017")

    def test_reconnect_attempts_bounds(self):
        with pytest.raises(ValidationError):
            MongoConfig(max_reconnect_attempts=11)
        with pytest.raises(ValidationError):
            MongoConfig(max_reconnect_attempts=-1)


class TestRelayConfig:
    """Test relay configuration."""

    def test_defaults(self):
        config = RelayConfig()

        assert config.base_url == "http://localhost:5000"
        assert config.bot_id == 1
        assert config.request_timeout == 30

    def test_scheme_added_and_slash_stripped(self):
        config = RelayConfig(base_url="127.0.0.1:5000/")
        assert config.base_url == "http://127.0.0.1:5000"

    def test_timeout_bounds(self):
        with pytest.raises(ValidationError):
            RelayConfig(request_timeout=0)
        with pytest.raises(ValidationError):
            RelayConfig(request_timeout=301)


def test_batch_config_rejects_zero():
    with pytest.raises(ValidationError):
        BatchConfig(max_concurrent=0)


class TestLoadConfig:
    """Test configuration sources and priority."""

    def test_defaults_without_sources(self):
        config = load_config()

        assert isinstance(config, AppConfig)
        assert config.mongodb.database_name == "mcp_db"
        assert config.relay.base_url == "http://localhost:5000"
        assert config.batch.max_concurrent == 10
        assert config.log_level == "INFO"
        assert config.log_dir is None

    def test_environment_variables(self):
        os.environ["MONGODB_URI"] = "mongodb://mongo:27017/xdt"
        os.environ["MONGODB_MAX_RECONNECT_ATTEMPTS"] = "5"
        os.environ["RELAY_BASE_URL"] = "http://bot-host:8080"
        os.environ["RELAY_BOT_ID"] = "42"
        os.environ["BATCH_MAX_CONCURRENT"] = "4"
        os.environ["LOG_LEVEL"] = "DEBUG"

        config = load_config()

        assert config.mongodb.database_name == "xdt"
        assert config.mongodb.max_reconnect_attempts == 5
        assert config.relay.base_url == "http://bot-host:8080"
        assert config.relay.bot_id == 42
        assert config.batch.max_concurrent == 4
        assert config.log_level == "DEBUG"

    def test_json_config_file(self, isolated_cwd):
        config_path = isolated_cwd / "settings.json"
        config_path.write_text(json.dumps({
            "mongodb": {"uri": "mongodb://file-host/file_db"},
            "relay": {"bot_id": 3},
            "log_dir": "logs",
        }))

        config = load_config(config_path)

        assert config.mongodb.database_name == "file_db"
        assert config.relay.bot_id == 3
        assert config.log_dir == "logs"

    def test_environment_overrides_file(self, isolated_cwd):
        config_path = isolated_cwd / "settings.json"
        config_path.write_text(json.dumps({"relay": {"bot_id": 3, "request_timeout": 10}}))
        os.environ["RELAY_BOT_ID"] = "9"

        config = load_config(config_path)

        assert config.relay.bot_id == 9
        assert config.relay.request_timeout == 10

    def test_auto_discovered_config_file(self, isolated_cwd):
        (isolated_cwd / ".xdt-mcp.json").write_text(json.dumps({"batch": {"max_concurrent": 2}}))

        config = load_config()

        assert config.batch.max_concurrent == 2

    def test_missing_config_file(self, isolated_cwd):
        with pytest.raises(FileNotFoundError):
            load_config(isolated_cwd / "missing.yaml")


def test_merge_config_is_deep():
    merged = merge_config(
        {"relay": {"bot_id": 1, "request_timeout": 30}, "log_level": "INFO"},
        {"relay": {"bot_id": 2}},
    )

    assert merged == {"relay": {"bot_id": 2, "request_timeout": 30}, "log_level": "INFO"}
