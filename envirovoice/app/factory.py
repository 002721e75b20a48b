"""
FastAPI application factory for the EnviroVoice relay.

This module handles app creation, middleware configuration, router
registration and the optional static overlay mount.
"""

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..api.game_data import game_data_router
from ..api.monitoring import monitoring_router
from ..api.real_time import realtime_router
from ..config import get_config
from ..middleware.comprehensive_logging import ComprehensiveLoggingMiddleware
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured relay application
    """
    config = get_config()

    app = FastAPI(
        title="EnviroVoice Relay",
        description="Signaling and presence relay for Minecraft proximity voice chat",
        version=__version__,
        lifespan=lifespan,
    )

    cors_cfg = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors_cfg.allow_origins,
        allow_methods=cors_cfg.allow_methods,
        allow_headers=cors_cfg.allow_headers,
        max_age=cors_cfg.max_age,
    )

    app.add_middleware(ComprehensiveLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_cfg.allow_origins,
        # Browsers reject credentialed responses for a wildcard origin
        allow_credentials="*" not in cors_cfg.allow_origins,
        allow_methods=cors_cfg.allow_methods,
        allow_headers=cors_cfg.allow_headers,
        max_age=cors_cfg.max_age,
    )

    app.include_router(monitoring_router)
    app.include_router(game_data_router)
    app.include_router(realtime_router)

    # Mounted last so the API routes and the root websocket take precedence.
    static_dir = config.server.static_dir
    if static_dir:
        static_path = Path(static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=static_path, html=True), name="overlay")
            logger.info("Serving overlay static files", directory=str(static_path))
        else:
            logger.warning("Static directory not found, overlay will not be served", directory=str(static_path))

    return app
