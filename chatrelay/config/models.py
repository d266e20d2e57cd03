"""
Pydantic-based configuration models for the ChatRelay server.

Each section reads its own environment prefix; AppConfig composes them and
also reads a local .env file.
"""

import json
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=3000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="10MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "e2e_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human", "colored"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict shape expected by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class RelayConfig(BaseSettings):
    """WebSocket relay configuration."""

    websocket_path: str = Field(default="/", description="Path the WebSocket endpoint is mounted at")
    subprotocol: str = Field(default="json", description="Subprotocol accepted when offered by the client")
    # Stored as a raw string so pydantic-settings does not try to JSON-decode CSV values
    allowed_origins_raw: str = Field(
        default="",
        validation_alias="RELAY_ALLOWED_ORIGINS",
        description="Allowed Origin headers (JSON list or CSV); empty allows all",
    )
    max_message_size: int = Field(default=64 * 1024, description="Maximum inbound frame size in bytes")
    max_json_depth: int = Field(default=16, description="Maximum JSON nesting depth of inbound frames")
    outbox_max_size: int = Field(default=256, description="Maximum queued outbound frames per session")

    @field_validator("websocket_path")
    @classmethod
    def validate_websocket_path(cls, v: str) -> str:
        """Validate the WebSocket path is absolute."""
        if not v.startswith("/"):
            raise ValueError("WebSocket path must start with '/'")
        return v

    @field_validator("max_message_size", "max_json_depth", "outbox_max_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError("Relay limits must be at least 1")
        return v

    @property
    def allowed_origins(self) -> list[str]:
        """Allowed origins parsed from JSON list or CSV."""
        return _parse_env_list(self.allowed_origins_raw)

    model_config = {
        "env_prefix": "RELAY_",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }


class StaticConfig(BaseSettings):
    """Static asset delivery configuration."""

    root_dir: str = Field(default=".", description="Directory static files are served from")
    index_file: str = Field(default="index.html", description="File served for '/'")

    model_config = {"env_prefix": "STATIC_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Aggregates every section; access via get_config().
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    static: StaticConfig = Field(default_factory=StaticConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to dict format, used for logging setup."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "logging": self.logging.to_legacy_dict(),
            "relay": {
                "websocket_path": self.relay.websocket_path,
                "subprotocol": self.relay.subprotocol,
                "allowed_origins": self.relay.allowed_origins,
                "max_message_size": self.relay.max_message_size,
                "max_json_depth": self.relay.max_json_depth,
                "outbox_max_size": self.relay.outbox_max_size,
            },
            "static": {
                "root_dir": self.static.root_dir,
                "index_file": self.static.index_file,
            },
        }
