"""
Tests for environment-driven configuration.
"""

import pytest
from pydantic import ValidationError

from envirovoice.config import AppConfig, CORSConfig, LoggingConfig, RelayConfig, ServerConfig, get_config


class TestServerConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SERVER_HOST", raising=False)
        monkeypatch.delenv("SERVER_PORT", raising=False)

        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.static_dir is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "8080")
        monkeypatch.setenv("SERVER_STATIC_DIR", "/srv/overlay")

        config = ServerConfig()

        assert config.port == 8080
        assert config.static_dir == "/srv/overlay"

    @pytest.mark.parametrize("port", ["0", "65536", "-1"])
    def test_invalid_port(self, monkeypatch, port):
        monkeypatch.setenv("SERVER_PORT", port)

        with pytest.raises(ValidationError):
            ServerConfig()


class TestRelayConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RELAY_SEND_TIMEOUT", raising=False)

        config = RelayConfig()

        assert config.send_timeout == 5.0
        assert config.max_message_bytes == 65536
        assert config.max_gamertag_length == 64

    @pytest.mark.parametrize(
        ("name", "value"),
        [("RELAY_SEND_TIMEOUT", "0"), ("RELAY_SEND_TIMEOUT", "-2"), ("RELAY_MAX_MESSAGE_BYTES", "0")],
    )
    def test_invalid_limits(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            RelayConfig()


class TestLoggingConfig:
    def test_level_is_normalized(self, monkeypatch):
        monkeypatch.setenv("LOGGING_LEVEL", "warning")

        assert LoggingConfig().level == "WARNING"

    @pytest.mark.parametrize(
        ("name", "value"),
        [("LOGGING_ENVIRONMENT", "staging"), ("LOGGING_LEVEL", "LOUD"), ("LOGGING_FORMAT", "xml")],
    )
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            LoggingConfig()

    def test_legacy_dict(self):
        legacy = LoggingConfig().to_legacy_dict()

        assert legacy["environment"] == "unit_test"
        assert set(legacy) == {"environment", "level", "format", "log_base", "log_to_file", "disable_logging"}


class TestCORSConfig:
    def test_defaults_allow_any_origin(self, monkeypatch):
        monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)

        config = CORSConfig()

        assert config.allow_origins == ["*"]
        assert config.allow_methods == ["GET", "POST", "OPTIONS"]

    def test_json_list_from_environment(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", '["http://localhost:3000", " http://127.0.0.1:3000 "]')

        assert CORSConfig().allow_origins == ["http://localhost:3000", "http://127.0.0.1:3000"]

    def test_methods_uppercased(self):
        assert CORSConfig(allow_methods=["get", "post"]).allow_methods == ["GET", "POST"]


class TestAppConfig:
    def test_get_config_is_fresh_under_pytest(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("SERVER_PORT", "4000")
        second = get_config()

        assert first is not second
        assert second.server.port == 4000

    def test_legacy_dict_shape(self):
        legacy = AppConfig().to_legacy_dict()

        assert legacy["port"] == 54731
        assert legacy["send_timeout"] == 0.5
        assert legacy["logging"]["environment"] == "unit_test"
        assert legacy["cors"]["allow_origins"] == ["*"]
