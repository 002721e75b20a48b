"""
Test configuration and fixtures for the EnviroVoice relay test suite.
"""

import os

# Set environment before any envirovoice module loads its configuration
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LEVEL", "DEBUG")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("RELAY_SEND_TIMEOUT", "0.5")
os.environ.pop("SERVER_STATIC_DIR", None)

from collections.abc import Callable  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi import WebSocket  # noqa: E402
from starlette.websockets import WebSocketState  # noqa: E402

from envirovoice.realtime.connection_manager import ConnectionManager  # noqa: E402


def build_mock_websocket() -> Mock:
    """A connected websocket whose sends and closes are recorded."""
    websocket = Mock(spec=WebSocket)
    websocket.accept = AsyncMock()
    websocket.close = AsyncMock()
    websocket.send_json = AsyncMock()
    websocket.client_state = WebSocketState.CONNECTED
    websocket.application_state = WebSocketState.CONNECTED
    return websocket


def sent_messages(websocket: Mock) -> list[dict[str, Any]]:
    """Every message passed to ``send_json`` on ``websocket``, in order."""
    return [c.args[0] for c in websocket.send_json.await_args_list]


def sent_types(websocket: Mock) -> list[str]:
    return [m["type"] for m in sent_messages(websocket)]


@pytest.fixture
def mock_websocket_factory() -> Callable[[], Mock]:
    """Create fresh mock websockets on demand."""
    return build_mock_websocket


@pytest.fixture
def connection_manager() -> ConnectionManager:
    """A relay state with a short send timeout."""
    return ConnectionManager(send_timeout=0.5, max_gamertag_length=16)


@pytest.fixture
def join_client(connection_manager):
    """
    Async helper: connect a new mock websocket and join it as ``gamertag``.

    Returns ``(websocket, metadata)``; the websocket's recorded sends are reset
    after the join so tests only see what follows.
    """

    async def _join(gamertag: str, reset: bool = True):
        websocket = build_mock_websocket()
        metadata = await connection_manager.connect(websocket)
        await connection_manager.handle_message(metadata, {"type": "join", "gamertag": gamertag})
        if reset:
            websocket.send_json.reset_mock()
        return websocket, metadata

    return _join
