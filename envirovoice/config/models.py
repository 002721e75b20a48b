"""
Pydantic-based configuration models for the EnviroVoice relay.

Every section is a BaseSettings model with its own environment prefix;
AppConfig aggregates them and also reads a local .env file.
"""

import json
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import VALID_ENVIRONMENTS, get_logger

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a value as JSON list or comma-separated string."""
    if candidate is None:
        return []
    if isinstance(candidate, list | tuple):
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

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=3000, description="Server port")
    static_dir: str | None = Field(default=None, description="Directory of overlay assets served at the root path")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class RelayConfig(BaseSettings):
    """Realtime relay behaviour."""

    send_timeout: float = Field(default=5.0, description="Seconds a single websocket send may take before it is skipped")
    max_message_bytes: int = Field(default=65536, description="Largest inbound frame that will be parsed")
    max_gamertag_length: int = Field(default=64, description="Longest gamertag accepted on join")

    @field_validator("send_timeout")
    @classmethod
    def validate_send_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("send_timeout must be positive")
        return v

    @field_validator("max_message_bytes", "max_gamertag_length")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Relay limits must be at least 1")
        return v

    model_config = {"env_prefix": "RELAY_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    log_to_file: bool = Field(default=False, description="Also write logs to <log_base>/<environment>/relay.log")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        if v not in VALID_ENVIRONMENTS:
            logger.error("Invalid logging environment", environment=v, valid_environments=VALID_ENVIRONMENTS)
            raise ValueError(f"Environment must be one of {list(VALID_ENVIRONMENTS)}, got '{v}'")
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
        """Dict form consumed by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "log_to_file": self.log_to_file,
            "disable_logging": self.disable_logging,
        }


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration.

    The overlay is loaded from arbitrary local origins (OBS browser sources,
    file:// pages), so every origin is allowed unless configured otherwise.
    List values are read from the environment as JSON arrays.
    """

    allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allow_headers: list[str] = Field(default_factory=lambda: ["Content-Type", "Accept"])
    max_age: int = Field(default=600, description="Seconds browsers may cache CORS preflight responses")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        return _parse_env_list(v)

    @field_validator("allow_methods")
    @classmethod
    def upper_methods(cls, v: list[str]) -> list[str]:
        return [m.upper() for m in v]

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via the get_config() function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Flatten to the dict shape used by the logging setup."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "static_dir": self.server.static_dir,
            "send_timeout": self.relay.send_timeout,
            "max_message_bytes": self.relay.max_message_bytes,
            "max_gamertag_length": self.relay.max_gamertag_length,
            "logging": self.logging.to_legacy_dict(),
            "cors": {
                "allow_origins": self.cors.allow_origins,
                "allow_methods": self.cors.allow_methods,
                "allow_headers": self.cors.allow_headers,
                "max_age": self.cors.max_age,
            },
        }
