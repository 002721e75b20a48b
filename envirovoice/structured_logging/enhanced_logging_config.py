"""
Structlog-based logging configuration for the EnviroVoice relay.

Structlog is layered on top of the standard library logging module so that
uvicorn, starlette and our own modules all end up in the same handlers.
Modules obtain loggers exclusively through get_logger() and log with
key-value context:

    logger = get_logger(__name__)
    logger.info("Participant joined", gamertag=gamertag, participants=count)
"""

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

logger = structlog.get_logger(__name__)

LOG_FILE_NAME = "relay.log"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5
VALID_ENVIRONMENTS = ("local", "unit_test", "production")


class _LoggingState:
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def detect_environment() -> str:
    """Environment used when the logging config does not name one."""
    if "pytest" in sys.modules:
        return "unit_test"
    environment = os.getenv("LOGGING_ENVIRONMENT", "local")
    return environment if environment in VALID_ENVIRONMENTS else "local"


def log_file_path(log_config: dict[str, Any], environment: str) -> Path:
    """
    Path of the relay log file: ``<log_base>/<environment>/relay.log``.

    A relative ``log_base`` is anchored on the nearest directory holding a
    pyproject.toml, or on the working directory when there is none.
    """
    log_base = Path(log_config.get("log_base", "logs"))
    if not log_base.is_absolute():
        cwd = Path.cwd()
        project_root = next((d for d in (cwd, *cwd.parents) if (d / "pyproject.toml").exists()), cwd)
        log_base = project_root / log_base
    return log_base / environment / LOG_FILE_NAME


def _select_renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "colored":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"])


def _setup_stdlib_handlers(environment: str, log_level: str, log_config: dict[str, Any]) -> None:
    """Attach console and (optionally) rotating file handlers to the root logger."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter("%(message)s")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_config.get("log_to_file", False):
        log_path = log_file_path(log_config, environment)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
            )
        except OSError as e:
            logger.warning("Could not open log file, continuing with console only", path=str(log_path), error=str(e))
        else:
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def configure_enhanced_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog and the standard library handlers it writes through.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()
    log_config = log_config or {}
    log_format = log_config.get("format", "human")

    if log_config.get("disable_logging", False):
        logging.getLogger().setLevel(logging.CRITICAL + 1)
    else:
        _setup_stdlib_handlers(environment, log_level, log_config)

    processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    # ConsoleRenderer prints tracebacks itself
    if log_format != "colored":
        processors.append(structlog.processors.format_exc_info)
    processors.append(structlog.processors.UnicodeDecoder())
    processors.append(_select_renderer(log_format))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the legacy dict form of the application config.

    Args:
        config: Configuration dictionary (see AppConfig.to_legacy_dict)
        force_reconfigure: When True, reconfigure even if already initialized
    """
    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _logging_state.initialized and not force_reconfigure:
        get_logger("envirovoice.structured_logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", detect_environment())
    log_level = logging_config.get("level", "INFO")

    configure_enhanced_structlog(environment, log_level, logging_config)
    _configure_uvicorn_logging()

    get_logger("envirovoice.structured_logging").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_format=logging_config.get("format", "human"),
        log_to_file=logging_config.get("log_to_file", False),
    )

    _logging_state.initialized = True
    _logging_state.signature = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handlers configured above."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a Structlog logger with the specified name.

    This is the public API for obtaining loggers. All application code
    should use this function rather than calling structlog.get_logger()
    directly.
    """
    return structlog.get_logger(name)


def log_exception_once(
    bound_logger: Any,
    level: str,
    message: str,
    *,
    exc: Exception | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an exception once, skipping exceptions that were already logged.

    EnviroVoiceError instances log themselves on construction and carry an
    ``already_logged`` flag; anything else is marked after the first log call.
    """
    if exc is not None:
        if getattr(exc, "already_logged", False):
            return
        kwargs.setdefault("error_type", type(exc).__name__)
        kwargs.setdefault("error", str(exc))

    log_method = getattr(bound_logger, level.lower(), bound_logger.error)
    log_method(message, **kwargs)

    if exc is not None:
        exc.already_logged = True  # type: ignore[attr-defined]
