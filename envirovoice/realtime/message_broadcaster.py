"""
Message broadcasting for the relay's connection table.

Delivery is best-effort: a recipient that is not ready, that raises while
sending, or that does not accept the frame within ``send_timeout`` is skipped.
One recipient's failure never affects delivery to the others, and no failure
is ever raised to the caller; the returned statistics are informational.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import ConnectionMetadata

logger = get_logger(__name__)

DEFAULT_SEND_TIMEOUT = 5.0


def is_websocket_ready(websocket: WebSocket) -> bool:
    """True when both sides of the websocket are still in the CONNECTED state."""
    return (
        getattr(websocket, "client_state", None) == WebSocketState.CONNECTED
        and getattr(websocket, "application_state", None) == WebSocketState.CONNECTED
    )


class MessageBroadcaster:
    """
    Sends messages to one, all, or all-but-one connection.

    The broadcaster reads the connection table owned by ConnectionManager; it
    never adds or removes entries itself.
    """

    def __init__(
        self,
        connections: Mapping[int, ConnectionMetadata],
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ) -> None:
        self.connections = connections
        self.send_timeout = send_timeout

    def is_ready(self, metadata: ConnectionMetadata) -> bool:
        return not metadata.closed and is_websocket_ready(metadata.websocket)

    async def _deliver(self, metadata: ConnectionMetadata, message: dict[str, Any]) -> bool:
        if not self.is_ready(metadata):
            return False
        try:
            await asyncio.wait_for(metadata.websocket.send_json(message), timeout=self.send_timeout)
        except TimeoutError:
            logger.warning(
                "Send timed out, skipping recipient",
                connection_id=metadata.connection_id,
                gamertag=metadata.gamertag,
                message_type=message.get("type"),
                timeout=self.send_timeout,
            )
            return False
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(
                "Send failed, skipping recipient",
                connection_id=metadata.connection_id,
                gamertag=metadata.gamertag,
                message_type=message.get("type"),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True

    async def send_to(self, connection_id: int, message: dict[str, Any]) -> bool:
        """Send ``message`` to a single connection. Returns whether it was delivered."""
        metadata = self.connections.get(connection_id)
        if metadata is None:
            return False
        return await self._deliver(metadata, message)

    async def _fanout(self, message: dict[str, Any], exclude: int | None) -> dict[str, Any]:
        targets = [m for cid, m in list(self.connections.items()) if cid != exclude]
        stats: dict[str, Any] = {
            "message_type": message.get("type"),
            "total_targets": len(targets),
            "excluded": exclude,
            "successful_deliveries": 0,
            "skipped": 0,
        }
        if not targets:
            return stats

        results = await asyncio.gather(*[self._deliver(m, message) for m in targets], return_exceptions=True)
        for metadata, result in zip(targets, results, strict=True):
            if result is True:
                stats["successful_deliveries"] += 1
            else:
                stats["skipped"] += 1
                if isinstance(result, BaseException):
                    logger.error(
                        "Unexpected error delivering broadcast",
                        connection_id=metadata.connection_id,
                        error=str(result),
                        error_type=type(result).__name__,
                    )

        logger.debug("Broadcast complete", **stats)
        return stats

    async def broadcast_all(self, message: dict[str, Any]) -> dict[str, Any]:
        """Deliver ``message`` to every ready connection, including the sender."""
        return await self._fanout(message, exclude=None)

    async def broadcast_except(self, sender_id: int, message: dict[str, Any]) -> dict[str, Any]:
        """Deliver ``message`` to every ready connection other than ``sender_id``."""
        return await self._fanout(message, exclude=sender_id)
