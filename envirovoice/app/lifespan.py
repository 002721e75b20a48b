"""Application lifecycle management for the relay.

Startup builds the ConnectionManager and publishes it on ``app.state``;
shutdown notifies every client and closes the sockets.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..realtime.connection_manager import ConnectionManager
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("envirovoice.lifespan")

__all__ = ["lifespan", "shutdown_connection_manager"]


async def shutdown_connection_manager(app: FastAPI) -> None:
    """Run the manager's shutdown if one was started. Safe to call more than once."""
    manager = getattr(app.state, "connection_manager", None)
    if not isinstance(manager, ConnectionManager):
        return
    await manager.shutdown()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The manager is created here, not at import time, so each app instance
    (including each TestClient) owns an independent relay state.
    """
    config = get_config()
    logger.info("Starting EnviroVoice relay", host=config.server.host, port=config.server.port)

    app.state.connection_manager = ConnectionManager.from_config(config)
    app.state.max_message_bytes = config.relay.max_message_bytes
    logger.info(
        "Relay ready",
        send_timeout=config.relay.send_timeout,
        max_message_bytes=config.relay.max_message_bytes,
    )
    yield

    logger.info("Shutting down EnviroVoice relay...")
    try:
        await shutdown_connection_manager(app)
    except asyncio.CancelledError as e:
        logger.warning("Shutdown interrupted", error=str(e), error_type=type(e).__name__)
        raise
    except (RuntimeError, OSError) as e:
        logger.error("Relay shutdown failure", error=str(e), error_type=type(e).__name__, exc_info=True)

    logger.info("EnviroVoice relay shutdown complete")
