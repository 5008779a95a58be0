"""
Change notifications and lock updates for live connections.

Example:
    >>> from collabsync.broadcast import EventBroadcaster, InMemoryTransport
    >>>
    >>> broadcaster = EventBroadcaster(InMemoryTransport())
    >>> await broadcaster.publish("donation", "UPDATE", {"id": 7})
"""

from collabsync.broadcast.broadcaster import BroadcasterStats, EventBroadcaster
from collabsync.broadcast.interface import Transport
from collabsync.broadcast.memory import InMemoryTransport
from collabsync.broadcast.models import ChangeEvent
from collabsync.broadcast.relay import create_client_manager, probe_relay
from collabsync.broadcast.socketio_transport import SocketIOTransport

__all__ = [
    "EventBroadcaster",
    "BroadcasterStats",
    "ChangeEvent",
    "Transport",
    "InMemoryTransport",
    "SocketIOTransport",
    "create_client_manager",
    "probe_relay",
]
