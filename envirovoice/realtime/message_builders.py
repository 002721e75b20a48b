"""
Builders for every message the relay sends over the realtime channel.

Each builder returns a plain dict ready for ``send_json``. Keeping them in one
place pins the wire format: type names are kebab-case, fields camelCase.
"""

from typing import Any

from ..models.presence import GameSnapshot, PTTState

JOIN = "join"
LEAVE = "leave"
PARTICIPANTS_LIST = "participants-list"
PTT_UPDATE = "ptt-update"
MINECRAFT_UPDATE = "minecraft-update"
SERVER_SHUTDOWN = "server-shutdown"


def build_join(gamertag: str) -> dict[str, Any]:
    return {"type": JOIN, "gamertag": gamertag}


def build_leave(gamertag: str) -> dict[str, Any]:
    return {"type": LEAVE, "gamertag": gamertag}


def build_participants_list(gamertags: list[str]) -> dict[str, Any]:
    return {"type": PARTICIPANTS_LIST, "list": list(gamertags)}


def build_ptt_update(state: PTTState) -> dict[str, Any]:
    return {"type": PTT_UPDATE, **state.to_wire()}


def build_minecraft_update(snapshot: GameSnapshot, ptt_states: list[PTTState]) -> dict[str, Any]:
    """Game snapshot merged with the current PTT states."""
    return {
        "type": MINECRAFT_UPDATE,
        "data": snapshot.data,
        "muteStates": [state.to_wire() for state in snapshot.mute_states],
        "pttStates": [state.to_wire() for state in ptt_states],
    }


def build_server_shutdown() -> dict[str, Any]:
    return {"type": SERVER_SHUTDOWN}
