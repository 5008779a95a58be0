"""
Socket.IO collaboration server.

Example:
    >>> from collabsync.server import create_app
    >>>
    >>> app = create_app()
"""

from collabsync.server.app import (
    INVALID_LOCK_REQUEST,
    NOT_AUTHENTICATED,
    STORE_UNAVAILABLE,
    CollabServer,
    create_app,
    create_server,
)

__all__ = [
    "CollabServer",
    "create_server",
    "create_app",
    "NOT_AUTHENTICATED",
    "INVALID_LOCK_REQUEST",
    "STORE_UNAVAILABLE",
]
