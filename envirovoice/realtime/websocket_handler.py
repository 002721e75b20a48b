"""
WebSocket handler for the EnviroVoice realtime channel.

One call to handle_websocket_connection serves one client for its whole
lifetime: accept, receive loop, and the close path in a ``finally`` so it runs
whether the client left cleanly, errored, or was closed by the server.
"""

import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from ..exceptions import MalformedMessageError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_manager import ConnectionManager
from .connection_models import ConnectionMetadata

logger = get_logger(__name__)

DEFAULT_MAX_MESSAGE_BYTES = 65536


def parse_message(raw: str | bytes, connection_id: int, max_bytes: int = DEFAULT_MAX_MESSAGE_BYTES) -> dict[str, Any]:
    """
    Parse one frame into a message object.

    Raises:
        MalformedMessageError: if the frame is too large, not UTF-8, not JSON,
            or not a JSON object.
    """
    context = create_error_context(connection_id=connection_id)
    size = len(raw.encode("utf-8") if isinstance(raw, str) else raw)
    if size > max_bytes:
        raise MalformedMessageError("Frame exceeds maximum size", context=context, details={"size": size})

    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        message = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedMessageError(
            "Frame is not valid JSON", context=context, raw_preview=str(raw[:80]), details={"error": str(e)}
        ) from e

    if not isinstance(message, dict):
        raise MalformedMessageError(
            "Frame is not a JSON object", context=context, details={"json_type": type(message).__name__}
        )
    return message


async def _handle_websocket_message_loop(
    websocket: WebSocket, metadata: ConnectionMetadata, connection_manager: ConnectionManager, max_message_bytes: int
) -> None:
    """Receive frames until the client disconnects or the server closes the connection."""
    connection_id = metadata.connection_id

    while not metadata.closed:
        try:
            frame = await websocket.receive()
        except WebSocketDisconnect:
            break
        except RuntimeError as e:
            logger.warning("WebSocket connection lost", connection_id=connection_id, error=str(e))
            break

        if frame.get("type") == "websocket.disconnect":
            logger.debug("Client closed websocket", connection_id=connection_id, code=frame.get("code"))
            break

        raw = frame.get("text")
        if raw is None:
            raw = frame.get("bytes") or b""

        try:
            message = parse_message(raw, connection_id, max_message_bytes)
        except MalformedMessageError:
            # Already logged on construction; the connection stays open.
            continue

        try:
            await connection_manager.handle_message(metadata, message)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: one bad message must never end the connection
            logger.error(
                "Error handling WebSocket message",
                connection_id=connection_id,
                gamertag=metadata.gamertag,
                message_type=message.get("type"),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )


async def handle_websocket_connection(
    websocket: WebSocket,
    connection_manager: ConnectionManager,
    max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
) -> None:
    """
    Serve one realtime client.

    Args:
        websocket: The not-yet-accepted WebSocket
        connection_manager: The relay's ConnectionManager
        max_message_bytes: Frames larger than this are dropped as malformed
    """
    metadata = await connection_manager.connect(websocket)
    if metadata is None:
        return

    try:
        await _handle_websocket_message_loop(websocket, metadata, connection_manager, max_message_bytes)
    finally:
        await connection_manager.disconnect(metadata.connection_id)
