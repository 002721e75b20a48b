"""
Tests for wire models and message builders.
"""

import pytest
from pydantic import ValidationError

from envirovoice.models import GameDataResponse, HealthResponse, PTTState, PTTStatesResponse
from envirovoice.realtime.message_builders import (
    build_join,
    build_leave,
    build_participants_list,
    build_ptt_update,
    build_server_shutdown,
)


class TestPresenceModels:
    def test_ptt_state_defaults(self):
        state = PTTState(gamertag="Steve")

        assert state.to_wire() == {"gamertag": "Steve", "isTalking": True, "isMuted": False}

    def test_ptt_state_accepts_aliases(self):
        state = PTTState.model_validate({"gamertag": "Steve", "isTalking": False, "isMuted": True})

        assert (state.is_talking, state.is_muted) == (False, True)

    def test_ptt_state_requires_gamertag(self):
        with pytest.raises(ValidationError):
            PTTState(gamertag="")

    def test_ptt_state_is_immutable(self):
        state = PTTState(gamertag="Steve")

        with pytest.raises(ValidationError):
            state.is_talking = False


class TestResponseModels:
    def test_ptt_states_response_uses_camel_case(self):
        body = PTTStatesResponse(ptt_states=[PTTState(gamertag="Alex")]).model_dump(by_alias=True)

        assert body == {"pttStates": [{"gamertag": "Alex", "isTalking": True, "isMuted": False}]}

    def test_game_data_response(self):
        assert GameDataResponse().model_dump(by_alias=True) == {"success": True, "pttStates": []}

    def test_health_response_keeps_snake_case(self):
        body = HealthResponse(connected_users=1, minecraft_data=False, ptt_active_users=0, uptime=1.5).model_dump()

        assert body == {
            "status": "ok",
            "connected_users": 1,
            "minecraft_data": False,
            "ptt_active_users": 0,
            "uptime": 1.5,
        }


class TestMessageBuilders:
    def test_simple_messages(self):
        assert build_join("Steve") == {"type": "join", "gamertag": "Steve"}
        assert build_leave("Steve") == {"type": "leave", "gamertag": "Steve"}
        assert build_server_shutdown() == {"type": "server-shutdown"}

    def test_participants_list_is_copied(self):
        names = ["Steve"]
        message = build_participants_list(names)
        names.append("Alex")

        assert message == {"type": "participants-list", "list": ["Steve"]}

    def test_ptt_update(self):
        message = build_ptt_update(PTTState(gamertag="Steve", is_talking=False, is_muted=True))

        assert message == {"type": "ptt-update", "gamertag": "Steve", "isTalking": False, "isMuted": True}
