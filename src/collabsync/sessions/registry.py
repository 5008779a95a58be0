"""
Process-local registry of live connections.

Maps each connection id to the Identity resolved by the connection gate.
Entries are added after a successful handshake and removed when the
socket goes away. The registry holds no lock state: a disconnecting
client's edit locks stay in the shared store until their TTL runs out.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from collabsync.auth.models import Identity
from collabsync.exceptions import SessionNotFoundError
from collabsync.types import ConnectionId, UserId, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """
    One live client connection.

    Attributes:
        connection_id: Opaque per-socket identifier
        identity: Identity decoded from the connection credential
        connected_at: When the handshake completed
    """

    connection_id: ConnectionId
    identity: Identity
    connected_at: datetime = field(default_factory=utc_now)

    @property
    def user_id(self) -> UserId:
        return self.identity.user_id

    @property
    def username(self) -> str:
        return self.identity.username


class SessionRegistry:
    """
    Thread-safe map of connection id to Session.

    A single coarse lock guards the map; no method awaits while holding it.

    Example:
        >>> registry = SessionRegistry()
        >>> registry.register("sid-1", identity)
        >>> registry.get("sid-1").username
        'admin'
        >>> registry.unregister("sid-1")
    """

    def __init__(self) -> None:
        self._sessions: dict[ConnectionId, Session] = {}
        self._lock = threading.RLock()

    def register(self, connection_id: ConnectionId, identity: Identity) -> Session:
        """
        Register an authenticated connection.

        Re-registering a live connection id replaces the previous entry.

        Returns:
            The new Session
        """
        session = Session(connection_id=connection_id, identity=identity)
        with self._lock:
            previous = self._sessions.get(connection_id)
            self._sessions[connection_id] = session

        if previous is not None:
            logger.warning(
                f"Replaced existing session for connection {connection_id}",
                extra={
                    "connection_id": connection_id,
                    "previous_user_id": previous.user_id,
                    "user_id": identity.user_id,
                },
            )
        logger.debug(
            f"Registered session {connection_id} for {identity.username}",
            extra={"connection_id": connection_id, "user_id": identity.user_id},
        )
        return session

    def unregister(self, connection_id: ConnectionId) -> Session | None:
        """
        Remove a connection. Safe to call more than once.

        Returns:
            The removed Session, or None if it was not registered
        """
        with self._lock:
            session = self._sessions.pop(connection_id, None)

        if session is not None:
            logger.debug(
                f"Unregistered session {connection_id}",
                extra={"connection_id": connection_id, "user_id": session.user_id},
            )
        return session

    def get(self, connection_id: ConnectionId) -> Session | None:
        with self._lock:
            return self._sessions.get(connection_id)

    def require(self, connection_id: ConnectionId) -> Session:
        """
        Get the session for a connection.

        Raises:
            SessionNotFoundError: If the connection is not registered
        """
        session = self.get(connection_id)
        if session is None:
            raise SessionNotFoundError(connection_id)
        return session

    def sessions_for_user(self, user_id: UserId) -> list[Session]:
        """All live sessions belonging to one user (one per open tab/device)."""
        with self._lock:
            return [s for s in self._sessions.values() if s.user_id == user_id]

    def snapshot(self) -> list[Session]:
        """Copy of all live sessions."""
        with self._lock:
            return list(self._sessions.values())

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._sessions


__all__ = ["Session", "SessionRegistry"]
