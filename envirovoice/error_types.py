"""
Centralized error types and client-facing error frames.

Only one error is ever reported to a client over the realtime channel (a
rejected join); everything else is logged and dropped. The enum still names
every category so log records stay consistent.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    DUPLICATE_IDENTITY = "duplicate_identity"
    MALFORMED_MESSAGE = "malformed_message"
    UNKNOWN_MESSAGE_TYPE = "unknown_message_type"
    ROUTE_NOT_FOUND = "route_not_found"
    INVALID_PAYLOAD = "invalid_payload"
    INTERNAL_ERROR = "internal_error"


class ErrorMessages:
    """User-facing error message text."""

    GAMERTAG_IN_USE = "Gamertag already in use. Please choose a different one."
    INVALID_JSON = "Request body must be valid JSON."


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create the error frame sent to a client.

    Args:
        error_type: The type of error
        message: Message shown to the user by the overlay
        details: Additional error details (optional)

    Returns:
        ``{"type": "error", "message": ..., "error_type": ...}``
    """
    response: dict[str, Any] = {
        "type": "error",
        "message": message,
        "error_type": error_type.value,
    }
    if details:
        response["details"] = details
    return response
