"""
Tests for message routing by type.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from envirovoice.exceptions import UnknownMessageTypeError
from envirovoice.realtime.connection_models import ConnectionMetadata
from envirovoice.realtime.message_handler_factory import (
    HeartbeatMessageHandler,
    JoinMessageHandler,
    MessageHandler,
    MessageHandlerFactory,
    SignalingMessageHandler,
)
from envirovoice.tests.conftest import build_mock_websocket


class TestMessageHandlerFactory:
    """Handler registry and dispatch."""

    @pytest.fixture
    def factory(self):
        return MessageHandlerFactory()

    @pytest.fixture
    def metadata(self):
        return ConnectionMetadata(websocket=build_mock_websocket())

    def test_supported_message_types(self, factory):
        assert set(factory.get_supported_message_types()) == {
            "join",
            "leave",
            "ptt-status",
            "offer",
            "answer",
            "ice-candidate",
            "heartbeat",
            "request-participants",
        }

    def test_signaling_types_share_a_handler(self, factory):
        handler = factory.get_handler("offer")

        assert isinstance(handler, SignalingMessageHandler)
        assert factory.get_handler("answer") is handler
        assert factory.get_handler("ice-candidate") is handler

    def test_get_handler_types(self, factory):
        assert isinstance(factory.get_handler("join"), JoinMessageHandler)
        assert isinstance(factory.get_handler("heartbeat"), HeartbeatMessageHandler)
        assert factory.get_handler("teleport") is None

    @pytest.mark.asyncio
    async def test_handle_message_dispatches_to_registered_handler(self, factory, metadata):
        handler = Mock(spec=MessageHandler)
        handler.handle = AsyncMock()
        factory.register_handler("emote", handler)
        manager = Mock()

        await factory.handle_message(manager, metadata, {"type": "emote", "name": "wave"})

        handler.handle.assert_awaited_once_with(manager, metadata, {"type": "emote", "name": "wave"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [{"type": "teleport"}, {}, {"type": 5}, {"type": None}])
    async def test_unknown_type_raises(self, factory, metadata, message):
        with pytest.raises(UnknownMessageTypeError) as exc_info:
            await factory.handle_message(Mock(), metadata, message)

        assert exc_info.value.already_logged
        assert exc_info.value.context.connection_id == metadata.connection_id
        assert exc_info.value.to_dict()["error_code"] == "unknown_message_type"
