"""
Runtime configuration for the collaboration server.

Settings are read from environment variables (case-insensitive, named after
the fields) and from an optional ``.env`` file in the working directory.

Example:
    >>> settings = CollabSyncSettings()              # from the environment
    >>> settings = CollabSyncSettings(redis_url="redis://cache:6379/1")
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

INSECURE_DEV_SECRET = "INSECURE_DEV_SECRET_CHANGE_IN_PRODUCTION"


class CollabSyncSettings(BaseSettings):
    """
    Configuration for the collaboration server.

    Attributes:
        jwt_secret: Secret used to verify connection credentials (JWT_SECRET)
        jwt_algorithm: JWT signing algorithm (JWT_ALGORITHM)
        redis_url: Shared lock store URL (REDIS_URL)
        relay_url: Cross-process relay URL, defaults to redis_url (RELAY_URL)
        relay_channel: Pub/sub channel used by the relay (RELAY_CHANNEL)
        lock_key_prefix: Optional namespace prepended to lock keys (LOCK_KEY_PREFIX)
        require_holder_for_release: Refuse releases by non-holders
            (REQUIRE_HOLDER_FOR_RELEASE)
        cors_allowed_origins: "*" or comma-separated origins (CORS_ALLOWED_ORIGINS)
        socketio_path: Mount path of the Socket.IO endpoint (SOCKETIO_PATH)
        host: Bind address for ``python -m collabsync`` (HOST)
        port: Bind port for ``python -m collabsync`` (PORT)
        redis_socket_timeout: Socket and connect timeout in seconds for Redis
            (REDIS_SOCKET_TIMEOUT)
        enable_tracing: Emit OpenTelemetry spans (ENABLE_TRACING)
        log_level: Root log level for the entry point (LOG_LEVEL)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(INSECURE_DEV_SECRET, description="Secret for verifying credentials.")
    jwt_algorithm: str = Field("HS256", description="JWT signing algorithm.")

    redis_url: str = Field("redis://localhost:6379", description="Shared lock store URL.")
    relay_url: str | None = Field(None, description="Relay URL (defaults to redis_url).")
    relay_channel: str = Field("collabsync", description="Relay pub/sub channel.")
    lock_key_prefix: str = Field("", description="Namespace prepended to lock keys.")
    require_holder_for_release: bool = Field(
        False, description="Only the holder may release a lock."
    )

    cors_allowed_origins: str = Field("*", description="'*' or comma-separated origins.")
    socketio_path: str = Field("socket.io", description="Socket.IO mount path.")
    host: str = Field("0.0.0.0", description="Bind address.")
    port: int = Field(3000, ge=1, le=65535, description="Bind port.")

    redis_socket_timeout: float = Field(5.0, gt=0, description="Redis socket timeout (s).")
    enable_tracing: bool = Field(True, description="Emit OpenTelemetry spans.")
    log_level: str = Field("INFO", description="Root log level.")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("socketio_path")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/") or "socket.io"

    @property
    def effective_relay_url(self) -> str:
        """Relay URL, falling back to the lock store URL."""
        return self.relay_url or self.redis_url

    @property
    def cors_origins(self) -> str | list[str]:
        """CORS origins in the shape python-socketio expects."""
        raw = self.cors_allowed_origins.strip()
        if raw == "*":
            return "*"
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @property
    def uses_insecure_secret(self) -> bool:
        """True when the built-in development secret is in use."""
        return self.jwt_secret == INSECURE_DEV_SECRET


__all__ = ["CollabSyncSettings", "INSECURE_DEV_SECRET"]
