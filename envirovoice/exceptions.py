"""
Exception hierarchy for the EnviroVoice relay.

Every relay error carries an ErrorContext describing which connection and
gamertag it concerns, and logs itself once when constructed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .error_types import ErrorType
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information for error reporting."""

    connection_id: int | None = None
    gamertag: str | None = None
    message_type: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "connection_id": self.connection_id,
            "gamertag": self.gamertag,
            "message_type": self.message_type,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class EnviroVoiceError(Exception):
    """
    Base exception for all relay errors.

    Provides structured error handling with context and metadata.
    """

    log_level = "error"
    error_type = ErrorType.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize relay error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: Message safe to show to a client
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now()

        self._log_error()
        self.already_logged = True

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level)
        log_method(
            "Relay error occurred",
            error_type=self.__class__.__name__,
            error_code=self.error_type.value,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_type.value,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class DuplicateIdentityError(EnviroVoiceError):
    """A join named a gamertag that is already held, or the connection already has one."""

    log_level = "warning"
    error_type = ErrorType.DUPLICATE_IDENTITY

    def __init__(self, message: str, context: ErrorContext | None = None, gamertag: str | None = None, **kwargs):
        self.gamertag = gamertag
        details = kwargs.pop("details", None) or {}
        if gamertag:
            details["gamertag"] = gamertag
        super().__init__(message, context, details=details, **kwargs)


class MalformedMessageError(EnviroVoiceError):
    """An inbound frame could not be parsed into a message object."""

    log_level = "warning"
    error_type = ErrorType.MALFORMED_MESSAGE

    def __init__(self, message: str, context: ErrorContext | None = None, raw_preview: str | None = None, **kwargs):
        self.raw_preview = raw_preview
        details = kwargs.pop("details", None) or {}
        if raw_preview is not None:
            details["raw_preview"] = raw_preview
        super().__init__(message, context, details=details, **kwargs)


class UnknownMessageTypeError(EnviroVoiceError):
    """An inbound message carried a type no handler is registered for."""

    log_level = "warning"
    error_type = ErrorType.UNKNOWN_MESSAGE_TYPE

    def __init__(self, message: str, context: ErrorContext | None = None, message_type: Any = None, **kwargs):
        self.message_type = message_type
        details = kwargs.pop("details", None) or {}
        details["message_type"] = str(message_type)
        super().__init__(message, context, details=details, **kwargs)


class RouteNotFoundError(EnviroVoiceError):
    """A signaling message named a target gamertag with no ready connection."""

    log_level = "warning"
    error_type = ErrorType.ROUTE_NOT_FOUND

    def __init__(self, message: str, context: ErrorContext | None = None, target: str | None = None, **kwargs):
        self.target = target
        details = kwargs.pop("details", None) or {}
        if target:
            details["target"] = target
        super().__init__(message, context, details=details, **kwargs)


class ConfigurationError(EnviroVoiceError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        self.config_key = config_key
        details = kwargs.pop("details", None) or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, context, details=details, **kwargs)


def create_error_context(**kwargs) -> ErrorContext:
    """Create an error context with the given parameters."""
    return ErrorContext(**kwargs)
