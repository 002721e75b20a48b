"""
Health and PTT inspection endpoints.
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_connection_manager
from ..models.health import HealthResponse, PTTStatesResponse
from ..realtime.connection_manager import ConnectionManager

monitoring_router = APIRouter(tags=["monitoring"])


@monitoring_router.get("/health", response_model=HealthResponse)
async def health_check(connection_manager: ConnectionManager = Depends(get_connection_manager)) -> HealthResponse:
    """Relay liveness plus participant and snapshot counters."""
    return connection_manager.get_health()


@monitoring_router.get("/ptt-states", response_model=PTTStatesResponse)
async def get_ptt_states(connection_manager: ConnectionManager = Depends(get_connection_manager)) -> PTTStatesResponse:
    """Current push-to-talk state of every participant."""
    return PTTStatesResponse(ptt_states=connection_manager.list_ptt_states())
