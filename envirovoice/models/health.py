"""
Response models for the relay's HTTP endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field

from .presence import PTTState


class HealthResponse(BaseModel):
    """Body of GET /health."""

    status: str = Field(default="ok", description="Always 'ok' while the process is serving")
    connected_users: int = Field(..., description="Participants that have joined with a gamertag")
    minecraft_data: bool = Field(..., description="Whether a game snapshot has been received")
    ptt_active_users: int = Field(..., description="Participants whose PTT state is currently talking")
    uptime: float = Field(..., description="Seconds since the relay started")


class PTTStatesResponse(BaseModel):
    """Body of GET /ptt-states."""

    model_config = ConfigDict(populate_by_name=True)

    ptt_states: list[PTTState] = Field(default_factory=list, alias="pttStates")


class GameDataResponse(BaseModel):
    """Body of POST /minecraft-data."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    ptt_states: list[PTTState] = Field(default_factory=list, alias="pttStates")
