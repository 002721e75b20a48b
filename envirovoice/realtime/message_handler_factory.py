"""
Message handler factory for realtime message routing.

Inbound messages are dispatched on their ``type`` field through a registry
of MessageHandler instances rather than an if/elif chain, so new message
types are a single ``register_handler`` call.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..exceptions import UnknownMessageTypeError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger
from . import message_handlers
from .connection_models import ConnectionMetadata

if TYPE_CHECKING:
    from .connection_manager import ConnectionManager

logger = get_logger(__name__)


class MessageHandler(ABC):
    """Abstract base class for message handlers."""

    @abstractmethod
    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        """
        Handle a specific message type.

        Args:
            manager: The connection manager owning all relay state
            metadata: The sender's connection
            message: The full parsed message, including ``type``
        """


class JoinMessageHandler(MessageHandler):
    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        await message_handlers.handle_join_message(manager, metadata, message)


class LeaveMessageHandler(MessageHandler):
    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        await message_handlers.handle_leave_message(manager, metadata, message)


class PTTStatusMessageHandler(MessageHandler):
    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        await message_handlers.handle_ptt_status_message(manager, metadata, message)


class SignalingMessageHandler(MessageHandler):
    """Handler for offer, answer and ice-candidate messages."""

    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        await message_handlers.handle_signaling_message(manager, metadata, message)


class HeartbeatMessageHandler(MessageHandler):
    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        await message_handlers.handle_heartbeat_message(manager, metadata, message)


class RequestParticipantsMessageHandler(MessageHandler):
    async def handle(self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        await message_handlers.handle_request_participants_message(manager, metadata, message)


class MessageHandlerFactory:
    """Registry of handlers keyed by message type."""

    def __init__(self) -> None:
        signaling = SignalingMessageHandler()
        self._handlers: dict[str, MessageHandler] = {
            "join": JoinMessageHandler(),
            "leave": LeaveMessageHandler(),
            "ptt-status": PTTStatusMessageHandler(),
            "heartbeat": HeartbeatMessageHandler(),
            "request-participants": RequestParticipantsMessageHandler(),
        }
        for message_type in message_handlers.SIGNALING_TYPES:
            self._handlers[message_type] = signaling

    def register_handler(self, message_type: str, handler: MessageHandler) -> None:
        """Register (or replace) the handler for ``message_type``."""
        self._handlers[message_type] = handler
        logger.debug("Registered handler for message type", message_type=message_type)

    def get_handler(self, message_type: str) -> MessageHandler | None:
        return self._handlers.get(message_type)

    def get_supported_message_types(self) -> list[str]:
        return list(self._handlers.keys())

    async def handle_message(
        self, manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
    ) -> None:
        """
        Route ``message`` to its handler.

        Raises:
            UnknownMessageTypeError: If no handler is registered for the message type
        """
        message_type = message.get("type")
        handler = self.get_handler(message_type) if isinstance(message_type, str) else None
        if handler is None:
            raise UnknownMessageTypeError(
                "Unknown message type",
                context=create_error_context(connection_id=metadata.connection_id, gamertag=metadata.gamertag),
                message_type=message_type,
            )

        await handler.handle(manager, metadata, message)
