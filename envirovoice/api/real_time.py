"""
Realtime websocket endpoint.

The overlay connects to the server root (``ws://host:port``); ``/ws`` is
accepted as well for clients that need an explicit path.
"""

from fastapi import APIRouter, WebSocket

from ..dependencies import resolve_connection_manager
from ..error_types import ErrorType, create_websocket_error_response
from ..realtime.websocket_handler import DEFAULT_MAX_MESSAGE_BYTES, handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


@realtime_router.websocket("/")
@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Serve one overlay client for the lifetime of its websocket."""
    state = websocket.app.state
    connection_manager = resolve_connection_manager(state)
    if connection_manager is None:
        await websocket.accept()
        await websocket.send_json(
            create_websocket_error_response(ErrorType.INTERNAL_ERROR, "Service temporarily unavailable")
        )
        await websocket.close(code=1013)
        return

    max_message_bytes = getattr(state, "max_message_bytes", DEFAULT_MAX_MESSAGE_BYTES)
    client = websocket.client.host if websocket.client else "unknown"
    logger.debug("WebSocket connection attempt", client=client)

    await handle_websocket_connection(websocket, connection_manager, max_message_bytes=max_message_bytes)
