"""
Presence state store: per-gamertag PTT state and the latest game snapshot.

PTT state is keyed by gamertag, not by connection, so it can be inspected
over HTTP independently of the transport. The game snapshot is a single
slot replaced wholesale on every ingestion.
"""

import time
from typing import Any

from ..models.presence import GameSnapshot, MuteState, PTTState
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _mic_volume(value: Any) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def extract_mute_states(payload: Any) -> list[MuteState]:
    """
    Derive the mute summary from a game payload's ``players`` list.

    Expected shape: ``{"players": [{"name": str, "data": {"isMuted": bool,
    "isDeafened": bool, "micVolume": number}}, ...]}``. Entries that do not
    match contribute nothing; they never fail the whole ingestion.
    """
    if not isinstance(payload, dict):
        return []
    players = payload.get("players")
    if not isinstance(players, list):
        return []

    mute_states: list[MuteState] = []
    skipped = 0
    for player in players:
        if not isinstance(player, dict):
            skipped += 1
            continue
        name = player.get("name")
        data = player.get("data")
        if not isinstance(name, str) or not name or not isinstance(data, dict):
            skipped += 1
            continue
        mute_states.append(
            MuteState(
                gamertag=name,
                is_muted=bool(data.get("isMuted", False)),
                is_deafened=bool(data.get("isDeafened", False)),
                mic_volume=_mic_volume(data.get("micVolume")),
            )
        )

    if skipped:
        logger.debug("Skipped malformed player entries", skipped=skipped, total=len(players))
    return mute_states


class PresenceStore:
    """In-memory PTT states and game snapshot."""

    def __init__(self) -> None:
        self._ptt_states: dict[str, PTTState] = {}
        self._snapshot: GameSnapshot | None = None

    def set_ptt(self, gamertag: str, is_talking: bool, is_muted: bool) -> PTTState:
        """Upsert the PTT state for ``gamertag``; last write wins."""
        state = PTTState(gamertag=gamertag, is_talking=is_talking, is_muted=is_muted)
        self._ptt_states[gamertag] = state
        return state

    def get_ptt(self, gamertag: str) -> PTTState | None:
        return self._ptt_states.get(gamertag)

    def remove_ptt(self, gamertag: str) -> None:
        self._ptt_states.pop(gamertag, None)

    def list_ptt(self) -> list[PTTState]:
        return list(self._ptt_states.values())

    def active_talkers(self) -> int:
        return sum(1 for state in self._ptt_states.values() if state.is_talking)

    def set_game_snapshot(self, payload: Any) -> GameSnapshot:
        """Replace the stored snapshot with ``payload`` and its derived mute summary."""
        snapshot = GameSnapshot(data=payload, mute_states=extract_mute_states(payload), received_at=time.time())
        self._snapshot = snapshot
        logger.info("Game snapshot stored", mute_states=len(snapshot.mute_states))
        return snapshot

    def get_game_snapshot(self) -> GameSnapshot | None:
        return self._snapshot

    def has_game_snapshot(self) -> bool:
        return self._snapshot is not None
