"""
Connection manager for the EnviroVoice relay.

ConnectionManager owns all relay state for the lifetime of the process: the
connection table, the identity registry, the presence store and the
broadcaster that reads the table. It is created once by the application
lifespan and stored on ``app.state``; nothing in the relay is a module-level
singleton.

Every mutation (message handling, disconnect, snapshot ingestion, shutdown)
runs under one asyncio.Lock. Handlers therefore never interleave, even though
they await sends, and a gamertag can only ever be registered once.

Per-connection lifecycle: accepted (anonymous) -> identified (gamertag) ->
closed. The close path runs at most once per connection; the connection
table, not a flag, decides whether there is anything left to clean up.
"""

import asyncio
import time
from typing import Any

from fastapi import WebSocket

from ..config.models import AppConfig
from ..exceptions import EnviroVoiceError
from ..models.health import HealthResponse
from ..models.presence import GameSnapshot, PTTState
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from .connection_models import ConnectionMetadata
from .identity_registry import IdentityRegistry
from .message_broadcaster import DEFAULT_SEND_TIMEOUT, MessageBroadcaster
from .message_builders import (
    build_leave,
    build_minecraft_update,
    build_participants_list,
    build_server_shutdown,
)
from .message_handler_factory import MessageHandlerFactory
from .presence_store import PresenceStore

logger = get_logger(__name__)

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001


class ConnectionManager:
    """
    Manages realtime connections and the presence state derived from them.

    Components:
    - IdentityRegistry: connection id <-> gamertag
    - PresenceStore: PTT states and the latest game snapshot
    - MessageBroadcaster: best-effort delivery over the connection table
    - MessageHandlerFactory: routes inbound messages by type
    """

    def __init__(
        self,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
        max_gamertag_length: int = 64,
        handler_factory: MessageHandlerFactory | None = None,
    ) -> None:
        self.connections: dict[int, ConnectionMetadata] = {}
        self.registry = IdentityRegistry()
        self.presence = PresenceStore()
        self.broadcaster = MessageBroadcaster(self.connections, send_timeout=send_timeout)
        self.handler_factory = handler_factory or MessageHandlerFactory()
        self.send_timeout = send_timeout
        self.max_gamertag_length = max_gamertag_length
        self.started_at = time.time()
        self.shutting_down = False
        self._lock = asyncio.Lock()
        self._close_tasks: set[asyncio.Future[bool]] = set()

    @classmethod
    def from_config(cls, config: AppConfig) -> "ConnectionManager":
        return cls(
            send_timeout=config.relay.send_timeout,
            max_gamertag_length=config.relay.max_gamertag_length,
        )

    # Lifecycle

    async def connect(self, websocket: WebSocket) -> ConnectionMetadata | None:
        """
        Accept ``websocket`` and add it to the connection table.

        A stored game snapshot is pushed to the new connection right away,
        before it has joined. Returns None when the relay is shutting down.
        """
        if self.shutting_down:
            logger.info("Rejected connection, server shutting down")
            await websocket.close(code=CLOSE_GOING_AWAY)
            return None

        await websocket.accept()

        async with self._lock:
            metadata = ConnectionMetadata(websocket=websocket)
            self.connections[metadata.connection_id] = metadata
            logger.info("Client connected", connection_id=metadata.connection_id, connections=len(self.connections))

            snapshot = self.presence.get_game_snapshot()
            if snapshot is not None:
                await self.broadcaster.send_to(
                    metadata.connection_id, build_minecraft_update(snapshot, self.presence.list_ptt())
                )

        return metadata

    async def handle_message(self, metadata: ConnectionMetadata, message: dict[str, Any]) -> None:
        """Dispatch one parsed message from ``metadata``'s connection."""
        async with self._lock:
            if metadata.closed:
                return
            metadata.touch()
            try:
                await self.handler_factory.handle_message(self, metadata, message)
            except EnviroVoiceError as e:
                log_exception_once(
                    logger,
                    "warning",
                    "Message dropped",
                    exc=e,
                    connection_id=metadata.connection_id,
                    message_type=message.get("type"),
                )

    async def disconnect(self, connection_id: int) -> bool:
        """
        Run the close path for ``connection_id``.

        If the connection had joined, its PTT state and identity are removed,
        the others are told it left and a fresh participants list goes to
        everyone. Returns False when the connection was already gone.

        The close path runs in its own task and is shielded, so cancelling
        the caller (a closing receive loop, a server timeout) cannot leave a
        half-removed participant behind.
        """
        close_task = asyncio.ensure_future(self._run_close_path(connection_id))
        self._close_tasks.add(close_task)
        close_task.add_done_callback(self._close_tasks.discard)
        return await asyncio.shield(close_task)

    async def _run_close_path(self, connection_id: int) -> bool:
        async with self._lock:
            metadata = self.connections.pop(connection_id, None)
            if metadata is None:
                return False
            metadata.closed = True

            gamertag = self.registry.get_gamertag(connection_id)
            if gamertag is not None:
                await self.remove_participant(metadata, gamertag)
                await self.broadcaster.broadcast_all(build_participants_list(self.registry.list_gamertags()))

        logger.info(
            "Client disconnected",
            connection_id=connection_id,
            gamertag=gamertag,
            connections=len(self.connections),
            participants=len(self.registry),
        )
        return True

    async def remove_participant(self, metadata: ConnectionMetadata, gamertag: str) -> None:
        """
        Drop ``gamertag``'s presence and identity, then announce its departure.

        State is removed before the first await. Caller must hold the
        manager lock.
        """
        self.presence.remove_ptt(gamertag)
        self.registry.unregister(metadata.connection_id)
        metadata.gamertag = None
        await self.broadcaster.broadcast_except(metadata.connection_id, build_leave(gamertag))

    async def close_connection(
        self, connection_id: int, code: int = CLOSE_NORMAL, reason: str = "Connection closed"
    ) -> None:
        """
        Close a connection's websocket from the server side.

        The connection stops receiving broadcasts immediately; its entry is
        removed when its receive loop exits and calls ``disconnect``. Caller
        must hold the manager lock.
        """
        metadata = self.connections.get(connection_id)
        if metadata is None or metadata.closed:
            return
        metadata.closed = True
        await self._close_websocket(metadata, code, reason)

    async def _close_websocket(self, metadata: ConnectionMetadata, code: int, reason: str) -> None:
        try:
            await asyncio.wait_for(metadata.websocket.close(code=code, reason=reason), timeout=self.send_timeout)
        except (TimeoutError, RuntimeError, OSError) as e:
            logger.debug(
                "Websocket close failed",
                connection_id=metadata.connection_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    # Game data

    async def ingest_game_data(self, payload: Any) -> GameSnapshot:
        """Store a new game snapshot and push it to every connection."""
        async with self._lock:
            snapshot = self.presence.set_game_snapshot(payload)
            await self.broadcaster.broadcast_all(build_minecraft_update(snapshot, self.presence.list_ptt()))
        return snapshot

    # Shutdown

    async def shutdown(self) -> None:
        """
        Tell every client the server is going away and close all connections.

        New connections are refused from this point on. Safe to call more
        than once.
        """
        if self.shutting_down:
            return
        self.shutting_down = True

        async with self._lock:
            logger.info("Shutting down relay", connections=len(self.connections))
            await self.broadcaster.broadcast_all(build_server_shutdown())
            for metadata in list(self.connections.values()):
                if not metadata.closed:
                    metadata.closed = True
                    await self._close_websocket(metadata, CLOSE_GOING_AWAY, "Server shutting down")

    # Statistics

    @property
    def connection_count(self) -> int:
        return len(self.connections)

    @property
    def participant_count(self) -> int:
        return len(self.registry)

    @property
    def uptime(self) -> float:
        return time.time() - self.started_at

    def list_ptt_states(self) -> list[PTTState]:
        return self.presence.list_ptt()

    def get_health(self) -> HealthResponse:
        return HealthResponse(
            status="ok",
            connected_users=self.participant_count,
            minecraft_data=self.presence.has_game_snapshot(),
            ptt_active_users=self.presence.active_talkers(),
            uptime=self.uptime,
        )
