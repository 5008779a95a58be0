"""
Transport interface for pushing messages to live connections.

The broadcaster only needs three things from the underlying socket
server: emit a named message to everyone or to one room, and move a
connection in and out of a room. Rooms are plain string names; a room
disappears together with its last member.
"""

from abc import ABC, abstractmethod
from typing import Any

from collabsync.types import ConnectionId


class Transport(ABC):
    """
    Abstract message transport.

    Implementations:
    - SocketIOTransport: python-socketio AsyncServer (production)
    - InMemoryTransport: per-connection inboxes (single process, tests)
    """

    @abstractmethod
    async def emit(self, event: str, data: Any, *, to: str | None = None) -> None:
        """
        Send a named message.

        Args:
            event: Message name (e.g. "member:update")
            data: JSON-compatible payload
            to: Room name; None sends to every connected client
        """
        pass

    @abstractmethod
    async def enter_room(self, connection_id: ConnectionId, room: str) -> None:
        """Add a connection to a room."""
        pass

    @abstractmethod
    async def leave_room(self, connection_id: ConnectionId, room: str) -> None:
        """Remove a connection from a room. No-op if it was not a member."""
        pass


__all__ = ["Transport"]
