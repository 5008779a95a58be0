"""Unit tests for CollabSyncSettings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from collabsync.config import INSECURE_DEV_SECRET, CollabSyncSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "JWT_SECRET",
        "REDIS_URL",
        "RELAY_URL",
        "CORS_ALLOWED_ORIGINS",
        "REQUIRE_HOLDER_FOR_RELEASE",
        "LOG_LEVEL",
        "PORT",
        "SOCKETIO_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


def load(**kwargs) -> CollabSyncSettings:
    return CollabSyncSettings(_env_file=None, **kwargs)


class TestDefaults:
    def test_defaults(self):
        settings = load()

        assert settings.jwt_secret == INSECURE_DEV_SECRET
        assert settings.uses_insecure_secret is True
        assert settings.redis_url == "redis://localhost:6379"
        assert settings.effective_relay_url == "redis://localhost:6379"
        assert settings.require_holder_for_release is False
        assert settings.cors_origins == "*"
        assert settings.socketio_path == "socket.io"
        assert settings.port == 3000
        assert settings.log_level == "INFO"


class TestEnvironment:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "prod-secret")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
        monkeypatch.setenv("RELAY_URL", "redis://relay:6379/0")
        monkeypatch.setenv("REQUIRE_HOLDER_FOR_RELEASE", "true")
        monkeypatch.setenv("PORT", "8080")

        settings = load()

        assert settings.jwt_secret == "prod-secret"
        assert settings.uses_insecure_secret is False
        assert settings.effective_relay_url == "redis://relay:6379/0"
        assert settings.require_holder_for_release is True
        assert settings.port == 8080

    def test_cors_origin_list(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, https://b.example,")

        assert load().cors_origins == ["https://a.example", "https://b.example"]


class TestValidation:
    def test_log_level_normalized(self):
        assert load(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            load(log_level="chatty")

    def test_socketio_path_slashes(self):
        assert load(socketio_path="/realtime/").socketio_path == "realtime"

    def test_port_range(self):
        with pytest.raises(ValidationError):
            load(port=0)
