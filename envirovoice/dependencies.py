"""
Dependency providers for the relay's HTTP and websocket routes.

The ConnectionManager is created by the application lifespan and stored on
``app.state``; routes receive it through these functions instead of
importing any module-level instance.
"""

from fastapi import HTTPException, Request
from starlette.datastructures import State

from .realtime.connection_manager import ConnectionManager
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def resolve_connection_manager(state: State | None) -> ConnectionManager | None:
    """Return the ConnectionManager stored on ``state``, or None if the app has not started."""
    manager = getattr(state, "connection_manager", None) if state is not None else None
    if isinstance(manager, ConnectionManager):
        return manager
    return None


def get_connection_manager(request: Request) -> ConnectionManager:
    """
    FastAPI dependency returning the relay's ConnectionManager.

    Raises:
        HTTPException: 503 when the lifespan has not initialized the manager
    """
    manager = resolve_connection_manager(request.app.state)
    if manager is None:
        logger.error("Connection manager not initialized", path=request.url.path)
        raise HTTPException(status_code=503, detail="Service temporarily unavailable")
    return manager
