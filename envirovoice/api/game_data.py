"""
Game data ingestion endpoint.

The Minecraft integration POSTs its full game state here; the body replaces
the stored snapshot and is pushed to every connected overlay.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..dependencies import get_connection_manager
from ..error_types import ErrorMessages, ErrorType
from ..models.health import GameDataResponse
from ..realtime.connection_manager import ConnectionManager
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

game_data_router = APIRouter(tags=["game-data"])


@game_data_router.post("/minecraft-data", response_model=GameDataResponse)
async def ingest_minecraft_data(
    request: Request,
    connection_manager: ConnectionManager = Depends(get_connection_manager),
) -> GameDataResponse | JSONResponse:
    """Store a game snapshot, broadcast it, and return the current PTT states."""
    body = await request.body()
    try:
        payload = json.loads(body) if body else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Rejected game data with invalid JSON", error=str(e), size=len(body))
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": ErrorMessages.INVALID_JSON,
                "error_type": ErrorType.INVALID_PAYLOAD.value,
            },
        )

    snapshot = await connection_manager.ingest_game_data(payload)
    logger.info(
        "Game data received",
        mute_states=len(snapshot.mute_states),
        connections=connection_manager.connection_count,
    )
    return GameDataResponse(success=True, ptt_states=connection_manager.list_ptt_states())
