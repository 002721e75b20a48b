"""
Configuration module for the EnviroVoice relay.

Usage:
    from envirovoice.config import get_config

    config = get_config()
    logger.info("Configuration loaded", host=config.server.host, port=config.server.port)
"""

import sys
import threading
from functools import lru_cache
from os import getenv

from .models import AppConfig, CORSConfig, LoggingConfig, RelayConfig, ServerConfig

__all__ = ["get_config", "reset_config", "AppConfig", "CORSConfig", "LoggingConfig", "RelayConfig", "ServerConfig"]

_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """Detect a pytest run so tests always see the current environment."""
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


@lru_cache(maxsize=1)
def _get_config_cached() -> AppConfig:
    with _config_lock:
        return AppConfig()


def get_config() -> AppConfig:
    """
    Get application configuration (singleton in production, fresh in tests).

    Configuration is loaded from environment variables and the .env file.

    Raises:
        ValidationError: If configuration is invalid
    """
    if _is_test_mode():
        return AppConfig()
    return _get_config_cached()


def reset_config() -> None:
    """Clear the cached configuration so the next get_config() reloads it."""
    with _config_lock:
        _get_config_cached.cache_clear()
