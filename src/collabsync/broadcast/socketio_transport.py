"""
Socket.IO transport.

Thin adapter over ``socketio.AsyncServer``. Cross-process delivery is the
job of the server's client manager (see ``collabsync.broadcast.relay``);
an emit here reaches clients on every process sharing that manager.
"""

from typing import Any

import socketio

from collabsync.broadcast.interface import Transport
from collabsync.types import ConnectionId


class SocketIOTransport(Transport):
    """
    Transport backed by a python-socketio AsyncServer.

    Args:
        sio: The server instance
        namespace: Socket.IO namespace (default "/")
    """

    def __init__(self, sio: socketio.AsyncServer, namespace: str = "/") -> None:
        self._sio = sio
        self._namespace = namespace

    @property
    def server(self) -> socketio.AsyncServer:
        return self._sio

    async def emit(self, event: str, data: Any, *, to: str | None = None) -> None:
        await self._sio.emit(event, data, to=to, namespace=self._namespace)

    async def enter_room(self, connection_id: ConnectionId, room: str) -> None:
        await self._sio.enter_room(connection_id, room, namespace=self._namespace)

    async def leave_room(self, connection_id: ConnectionId, room: str) -> None:
        await self._sio.leave_room(connection_id, room, namespace=self._namespace)


__all__ = ["SocketIOTransport"]
