"""Pydantic models shared by the realtime core and the HTTP API."""

from .health import GameDataResponse, HealthResponse, PTTStatesResponse
from .presence import GameSnapshot, MuteState, PTTState

__all__ = [
    "GameDataResponse",
    "GameSnapshot",
    "HealthResponse",
    "MuteState",
    "PTTState",
    "PTTStatesResponse",
]
