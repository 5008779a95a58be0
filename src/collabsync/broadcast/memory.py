"""
In-memory transport.

Delivers into per-connection inboxes inside the current process. Used by
the test suite and handy for wiring the broadcaster without a socket
server.

Example:
    >>> transport = InMemoryTransport()
    >>> transport.connect("sid-1")
    >>> broadcaster = EventBroadcaster(transport)
    >>> await broadcaster.publish("member", "CREATE", {"id": "M1"})
    >>> transport.received("sid-1")
    [('member:update', {'type': 'CREATE', 'data': {'id': 'M1'}})]
"""

import logging
import threading
from typing import Any

from collabsync.broadcast.interface import Transport
from collabsync.types import ConnectionId

logger = logging.getLogger(__name__)


class InMemoryTransport(Transport):
    """
    Transport that records messages per connection.

    A connection's own id also acts as a room containing just itself,
    mirroring how socket.io addresses a single client.
    """

    def __init__(self) -> None:
        self._inboxes: dict[ConnectionId, list[tuple[str, Any]]] = {}
        self._rooms: dict[ConnectionId, set[str]] = {}
        self._lock = threading.Lock()

    def connect(self, connection_id: ConnectionId) -> None:
        with self._lock:
            self._inboxes.setdefault(connection_id, [])
            self._rooms.setdefault(connection_id, set())

    def disconnect(self, connection_id: ConnectionId) -> None:
        """Drop a connection together with its inbox and room memberships."""
        with self._lock:
            self._inboxes.pop(connection_id, None)
            self._rooms.pop(connection_id, None)

    def is_connected(self, connection_id: ConnectionId) -> bool:
        with self._lock:
            return connection_id in self._inboxes

    async def emit(self, event: str, data: Any, *, to: str | None = None) -> None:
        with self._lock:
            for connection_id, inbox in self._inboxes.items():
                if to is None or to == connection_id or to in self._rooms[connection_id]:
                    inbox.append((event, data))

    async def enter_room(self, connection_id: ConnectionId, room: str) -> None:
        with self._lock:
            rooms = self._rooms.get(connection_id)
            if rooms is None:
                logger.debug(f"Ignoring room {room} for unknown connection {connection_id}")
                return
            rooms.add(room)

    async def leave_room(self, connection_id: ConnectionId, room: str) -> None:
        with self._lock:
            rooms = self._rooms.get(connection_id)
            if rooms is not None:
                rooms.discard(room)

    def received(self, connection_id: ConnectionId) -> list[tuple[str, Any]]:
        """Messages delivered to a connection, oldest first."""
        with self._lock:
            return list(self._inboxes.get(connection_id, []))

    def received_events(self, connection_id: ConnectionId) -> list[str]:
        """Just the message names delivered to a connection."""
        return [event for event, _ in self.received(connection_id)]

    def rooms_for(self, connection_id: ConnectionId) -> set[str]:
        with self._lock:
            return set(self._rooms.get(connection_id, set()))

    def clear(self) -> None:
        """Empty every inbox, keeping connections and rooms."""
        with self._lock:
            for inbox in self._inboxes.values():
                inbox.clear()


__all__ = ["InMemoryTransport"]
