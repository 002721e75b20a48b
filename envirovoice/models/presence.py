"""
Presence models for the EnviroVoice relay.

Field names are snake_case in Python and camelCase on the wire; always
serialize with ``model_dump(by_alias=True)`` (see ``to_wire``).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for models that are sent to clients as camelCase JSON."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PTTState(WireModel):
    """Push-to-talk state of one participant, keyed by gamertag."""

    gamertag: str = Field(..., min_length=1)
    is_talking: bool = Field(default=True, alias="isTalking")
    is_muted: bool = Field(default=False, alias="isMuted")


class MuteState(WireModel):
    """In-game voice state of one player, derived from a game snapshot."""

    gamertag: str = Field(..., min_length=1)
    is_muted: bool = Field(default=False, alias="isMuted")
    is_deafened: bool = Field(default=False, alias="isDeafened")
    mic_volume: int | float | None = Field(default=None, alias="micVolume")


class GameSnapshot(WireModel):
    """
    The most recent game-state payload pushed by the game integration.

    ``data`` is kept exactly as received; ``mute_states`` is the summary
    derived from its ``players`` list.
    """

    data: Any = None
    mute_states: list[MuteState] = Field(default_factory=list, alias="muteStates")
    received_at: float = Field(..., alias="receivedAt")
