"""
Tests for frame parsing and the per-connection receive loop.
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocketDisconnect

from envirovoice.error_types import ErrorType
from envirovoice.exceptions import MalformedMessageError
from envirovoice.realtime.websocket_handler import handle_websocket_connection, parse_message
from envirovoice.tests.conftest import build_mock_websocket, sent_messages


def text_frame(message) -> dict:
    return {"type": "websocket.receive", "text": json.dumps(message)}


DISCONNECT_FRAME = {"type": "websocket.disconnect", "code": 1000}


class TestParseMessage:
    """Frame to message conversion."""

    def test_text_frame(self):
        assert parse_message('{"type": "heartbeat"}', connection_id=1) == {"type": "heartbeat"}

    def test_binary_frame(self):
        assert parse_message(b'{"type": "leave"}', connection_id=1) == {"type": "leave"}

    @pytest.mark.parametrize("raw", ["not json", "{", b"\xff\xfe", ""])
    def test_invalid_json(self, raw):
        with pytest.raises(MalformedMessageError) as exc_info:
            parse_message(raw, connection_id=3)

        assert exc_info.value.context.connection_id == 3
        assert exc_info.value.error_type is ErrorType.MALFORMED_MESSAGE

    @pytest.mark.parametrize("raw", ["[1, 2]", '"join"', "42", "null"])
    def test_non_object_json(self, raw):
        with pytest.raises(MalformedMessageError):
            parse_message(raw, connection_id=1)

    def test_oversized_frame(self):
        raw = json.dumps({"type": "offer", "sdp": "x" * 200})

        with pytest.raises(MalformedMessageError) as exc_info:
            parse_message(raw, connection_id=1, max_bytes=100)

        assert exc_info.value.details["size"] == len(raw)


class TestHandleWebsocketConnection:
    """The receive loop and its close path."""

    @pytest.mark.asyncio
    async def test_messages_dispatched_until_disconnect(self, connection_manager):
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock(
            side_effect=[
                text_frame({"type": "join", "gamertag": "Steve"}),
                text_frame({"type": "heartbeat"}),
                DISCONNECT_FRAME,
            ]
        )

        await handle_websocket_connection(websocket, connection_manager)

        assert sent_messages(websocket) == [{"type": "participants-list", "list": ["Steve"]}]
        assert connection_manager.connection_count == 0
        assert connection_manager.participant_count == 0
        assert connection_manager.presence.get_ptt("Steve") is None

    @pytest.mark.asyncio
    async def test_malformed_frames_keep_connection_open(self, connection_manager):
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock(
            side_effect=[
                {"type": "websocket.receive", "text": "{{{"},
                {"type": "websocket.receive", "text": "[1]"},
                {"type": "websocket.receive", "bytes": b'{"type": "join", "gamertag": "Alex"}'},
                DISCONNECT_FRAME,
            ]
        )

        await handle_websocket_connection(websocket, connection_manager)

        assert sent_messages(websocket) == [{"type": "participants-list", "list": ["Alex"]}]

    @pytest.mark.asyncio
    async def test_oversized_frame_is_dropped(self, connection_manager):
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock(
            side_effect=[
                text_frame({"type": "join", "gamertag": "Steve", "padding": "x" * 200}),
                text_frame({"type": "join", "gamertag": "Steve"}),
                DISCONNECT_FRAME,
            ]
        )

        await handle_websocket_connection(websocket, connection_manager, max_message_bytes=100)

        assert sent_messages(websocket) == [{"type": "participants-list", "list": ["Steve"]}]

    @pytest.mark.asyncio
    async def test_handler_error_does_not_end_connection(self, connection_manager):
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock(
            side_effect=[
                text_frame({"type": "heartbeat"}),
                text_frame({"type": "join", "gamertag": "Steve"}),
                DISCONNECT_FRAME,
            ]
        )
        real_handle_message = connection_manager.handle_message
        calls = []

        async def flaky_handle_message(metadata, message):
            calls.append(message["type"])
            if message["type"] == "heartbeat":
                raise ValueError("boom")
            await real_handle_message(metadata, message)

        connection_manager.handle_message = flaky_handle_message

        await handle_websocket_connection(websocket, connection_manager)

        assert calls == ["heartbeat", "join"]
        assert sent_messages(websocket) == [{"type": "participants-list", "list": ["Steve"]}]

    @pytest.mark.asyncio
    async def test_transport_error_runs_close_path(self, connection_manager, join_client):
        steve_ws, _ = await join_client("Steve")
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock(
            side_effect=[text_frame({"type": "join", "gamertag": "Alex"}), WebSocketDisconnect(code=1006)]
        )

        await handle_websocket_connection(websocket, connection_manager)

        assert sent_messages(steve_ws) == [
            {"type": "join", "gamertag": "Alex"},
            {"type": "participants-list", "list": ["Steve", "Alex"]},
            {"type": "leave", "gamertag": "Alex"},
            {"type": "participants-list", "list": ["Steve"]},
        ]
        assert connection_manager.registry.list_gamertags() == ["Steve"]

    @pytest.mark.asyncio
    async def test_duplicate_join_ends_loop(self, connection_manager, join_client):
        await join_client("Steve")
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock(side_effect=[text_frame({"type": "join", "gamertag": "Steve"})])

        await handle_websocket_connection(websocket, connection_manager)

        websocket.close.assert_awaited_once()
        assert websocket.receive.await_count == 1
        assert connection_manager.connection_count == 1

    @pytest.mark.asyncio
    async def test_refused_during_shutdown(self, connection_manager):
        await connection_manager.shutdown()
        websocket = build_mock_websocket()
        websocket.receive = AsyncMock()

        await handle_websocket_connection(websocket, connection_manager)

        websocket.receive.assert_not_awaited()
