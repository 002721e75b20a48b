"""
EnviroVoice relay - main application entry point.

Builds the FastAPI application and runs it under uvicorn. Logging is
configured before any other module creates its logger so startup output
lands in the configured handlers.
"""

import socket
import sys

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from .app.factory import create_app
from .app.lifespan import shutdown_connection_manager
from .config import AppConfig, get_config
from .exceptions import ConfigurationError
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging


def load_config() -> AppConfig:
    """Load the relay configuration, reporting invalid settings as a ConfigurationError."""
    try:
        return get_config()
    except ValidationError as e:
        first_error = e.errors()[0]
        raise ConfigurationError(
            f"Invalid relay configuration: {first_error['msg']}",
            config_key=".".join(str(part) for part in first_error["loc"]) or None,
            details={"error_count": e.error_count(), "model": e.title},
        ) from e


config = load_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_app()


class RelayServer(uvicorn.Server):
    """
    uvicorn server that notifies websocket clients before closing them.

    uvicorn closes open websockets before the lifespan shutdown phase runs,
    so the ``server-shutdown`` broadcast has to happen in this hook instead.
    """

    def __init__(self, config: uvicorn.Config, application: FastAPI) -> None:
        super().__init__(config)
        self.application = application

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        logger.info("Shutdown signal received, notifying clients")
        await shutdown_connection_manager(self.application)
        await super().shutdown(sockets=sockets)


def main() -> None:
    """Console entry point: run the relay with the configured host and port."""
    server_config = config.server
    logger.info("Starting uvicorn", host=server_config.host, port=server_config.port)
    uvicorn_config = uvicorn.Config(
        app,
        host=server_config.host,
        port=server_config.port,
        log_config=None,
        ws="auto",
    )
    server = RelayServer(uvicorn_config, app)
    server.run()


if __name__ == "__main__":
    sys.exit(main())
