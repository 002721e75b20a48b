"""
Data models for connection management.

A ConnectionMetadata record is the relay's only handle on a live websocket.
Everything inside the core refers to connections by ``connection_id``; the
socket object itself is never used as a dictionary key.
"""

import itertools
import time
from dataclasses import dataclass, field

from fastapi import WebSocket

_connection_ids = itertools.count(1)


def next_connection_id() -> int:
    """Return the next process-wide connection identifier."""
    return next(_connection_ids)


@dataclass
class ConnectionMetadata:
    """
    Metadata for one accepted websocket.

    ``gamertag`` is None while the connection is anonymous and is set once the
    connection has joined. ``closed`` flips exactly once on the close path.
    """

    websocket: WebSocket
    connection_id: int = field(default_factory=next_connection_id)
    connected_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)
    gamertag: str | None = None
    closed: bool = False

    @property
    def is_identified(self) -> bool:
        return self.gamertag is not None

    def touch(self) -> None:
        self.last_seen = time.time()
