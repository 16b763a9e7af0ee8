"""Configuration management for the XDT Mini Client MCP server."""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any, Union
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
import logging
from urllib.parse import urlparse

try:
    import yaml
    YAML_AVAILABLE = True
except ImportError:
    YAML_AVAILABLE = False

try:
    import tomli
    TOML_AVAILABLE = True
except ImportError:
    TOML_AVAILABLE = False


DEFAULT_MONGODB_URI = "mongodb://localhost:27017/mcp_db"
DEFAULT_DATABASE = "mcp_db"


class MongoConfig(BaseModel):
    """Configuration for the MongoDB document store."""

    uri: str = Field(default=DEFAULT_MONGODB_URI, description="MongoDB connection URI")
    database: Optional[str] = Field(None, description="Database name (defaults to the URI path)")
    server_selection_timeout_ms: int = Field(default=5000, description="Server selection timeout in milliseconds")
    max_reconnect_attempts: int = Field(default=3, description="Connection attempts before giving up")
    reconnect_backoff_seconds: float = Field(default=1.0, description="Delay before the first reconnect retry")
    backoff_multiplier: float = Field(default=2.0, description="Multiplier applied to the delay after each retry")

    @field_validator('uri')
    @classmethod
    def validate_uri(cls, v: str) -> str:
        """Validate that uri is a MongoDB connection string."""
        if not v or not v.strip():
            raise ValueError("uri cannot be empty")
        v = v.strip()
        if not v.startswith(('mongodb://', 'mongodb+srv://')):
            raise ValueError(f"Invalid MongoDB URI scheme: {v}")
        return v

    @field_validator('max_reconnect_attempts')
    @classmethod
    def validate_max_reconnect_attempts(cls, v: int) -> int:
        """Validate max_reconnect_attempts is reasonable."""
        if v < 0:
            raise ValueError("max_reconnect_attempts cannot be negative")
        if v > 10:
            raise ValueError("max_reconnect_attempts should not exceed 10")
        return v

    @field_validator('reconnect_backoff_seconds')
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 0:
            raise ValueError("reconnect_backoff_seconds cannot be negative")
        return v

    @field_validator('backoff_multiplier')
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v < 1:
            raise ValueError("backoff_multiplier must be at least 1")
        return v

    @property
    def database_name(self) -> str:
        """Database name, falling back to the path component of the URI."""
        if self.database:
            return self.database
        path = urlparse(self.uri).path.lstrip('/')
        return path or DEFAULT_DATABASE


class RelayConfig(BaseModel):
    """Configuration for the mini client relay HTTP API."""

    base_url: str = Field(default="http://localhost:5000", description="Mini client base URL")
    bot_id: int = Field(default=1, description="Bot identity commands are forwarded to")
    request_timeout: int = Field(default=30, description="Request timeout in seconds")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that base_url is a properly formatted URL."""
        if not v:
            raise ValueError("base_url cannot be empty")

        # Add http:// if no scheme provided; the mini client runs locally
        if not v.startswith(('http://', 'https://')):
            v = f'http://{v}'

        parsed = urlparse(v)
        if not parsed.netloc:
            raise ValueError(f"Invalid relay URL format: {v}")

        return v.rstrip('/')

    @field_validator('request_timeout')
    @classmethod
    def validate_request_timeout(cls, v: int) -> int:
        """Validate request_timeout is reasonable."""
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        if v > 300:  # 5 minutes
            raise ValueError("request_timeout should not exceed 300 seconds")
        return v


class BatchConfig(BaseModel):
    """Configuration for bulk store operations."""

    max_concurrent: int = Field(default=10, description="Maximum concurrent creations in a batch")

    @field_validator('max_concurrent')
    @classmethod
    def validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent must be at least 1")
        return v


class AppConfig(BaseModel):
    """Main application configuration."""

    mongodb: MongoConfig = Field(default_factory=MongoConfig, description="Document store configuration")
    relay: RelayConfig = Field(default_factory=RelayConfig, description="Relay configuration")
    batch: BatchConfig = Field(default_factory=BatchConfig, description="Batch configuration")
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[str] = Field(None, description="Directory for rotating log files")


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from a file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger = logging.getLogger(__name__)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                if not YAML_AVAILABLE:
                    raise ImportError("PyYAML is required for YAML config files. Install with: pip install pyyaml")
                return yaml.safe_load(f) or {}

            elif config_path.suffix.lower() == '.toml':
                if not TOML_AVAILABLE:
                    raise ImportError("tomli is required for TOML config files. Install with: pip install tomli")
                return tomli.load(f.buffer)

            elif config_path.suffix.lower() == '.json':
                return json.load(f) or {}

            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    except Exception as e:
        logger.error(f"Failed to load config file {config_path}: {e}")
        raise


def find_config_file() -> Optional[Path]:
    """Find configuration file in standard locations."""
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config.yml",
        Path.cwd() / "config.toml",
        Path.cwd() / "config.json",
        Path.cwd() / ".xdt-mcp.yaml",
        Path.cwd() / ".xdt-mcp.yml",
        Path.cwd() / ".xdt-mcp.toml",
        Path.cwd() / ".xdt-mcp.json",
        Path.home() / ".config" / "xdt-mcp" / "config.yaml",
        Path.home() / ".config" / "xdt-mcp" / "config.yml",
        Path.home() / ".config" / "xdt-mcp" / "config.toml",
        Path.home() / ".config" / "xdt-mcp" / "config.json",
    ]

    for config_path in search_paths:
        if config_path.exists():
            return config_path

    return None


def merge_config(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge configuration dictionaries with override taking precedence."""
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value

    return merged


def load_config(config_file: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load configuration from multiple sources with priority order.

    Priority (highest to lowest):
    1. Environment variables
    2. Specified config file (if provided)
    3. Auto-discovered config file
    4. Default values
    """
    logger = logging.getLogger(__name__)

    config_data = {}

    # 1. Load from config file (lowest priority)
    if config_file:
        config_path = Path(config_file)
        if config_path.exists():
            config_data = load_config_file(config_path)
            logger.info(f"Loaded configuration from: {config_path}")
        else:
            raise FileNotFoundError(f"Specified config file not found: {config_path}")
    else:
        config_path = find_config_file()
        if config_path:
            config_data = load_config_file(config_path)
            logger.info(f"Auto-discovered configuration file: {config_path}")

    # 2. Load .env file (medium priority)
    load_dotenv()

    # 3. Override with environment variables (highest priority)
    env_config = {
        "mongodb": {
            "uri": os.getenv("MONGODB_URI"),
            "database": os.getenv("MONGODB_DATABASE"),
            "max_reconnect_attempts": os.getenv("MONGODB_MAX_RECONNECT_ATTEMPTS"),
            "reconnect_backoff_seconds": os.getenv("MONGODB_RECONNECT_BACKOFF"),
        },
        "relay": {
            "base_url": os.getenv("RELAY_BASE_URL"),
            "bot_id": os.getenv("RELAY_BOT_ID"),
            "request_timeout": os.getenv("RELAY_REQUEST_TIMEOUT"),
        },
        "batch": {
            "max_concurrent": os.getenv("BATCH_MAX_CONCURRENT"),
        },
        "log_level": os.getenv("LOG_LEVEL"),
        "log_dir": os.getenv("LOG_DIR"),
    }

    # Remove None values from env config
    def remove_none_values(d):
        if isinstance(d, dict):
            return {k: remove_none_values(v) for k, v in d.items() if v is not None}
        return d

    env_config = remove_none_values(env_config)

    final_config = merge_config(config_data, env_config)

    # Pydantic coerces numeric strings coming from the environment
    return AppConfig(
        mongodb=MongoConfig(**final_config.get("mongodb", {})),
        relay=RelayConfig(**final_config.get("relay", {})),
        batch=BatchConfig(**final_config.get("batch", {})),
        log_level=final_config.get("log_level", "INFO"),
        log_dir=final_config.get("log_dir"),
    )
