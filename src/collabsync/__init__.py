"""
collabsync - Real-time collaboration layer for the donation/member manager.

This library provides:
- TTL-bounded advisory edit locks over named resources, shared across
  server processes through Redis
- Change notifications broadcast to every connected client
- Scoped lock-status updates per resource
- Token authentication for persistent Socket.IO connections
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("collabsync")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from collabsync.auth import (
    ConnectionGate,
    Identity,
    JWTTokenVerifier,
    TokenVerifier,
    create_access_token,
)
from collabsync.broadcast import (
    ChangeEvent,
    EventBroadcaster,
    InMemoryTransport,
    SocketIOTransport,
    Transport,
)
from collabsync.config import CollabSyncSettings
from collabsync.exceptions import (
    AuthenticationError,
    BroadcastError,
    CollabSyncError,
    InvalidLockRequestError,
    RelayDegradedError,
    SessionNotFoundError,
    StoreUnavailableError,
)
from collabsync.locks import (
    AcquireResult,
    InMemoryLockStore,
    LockManager,
    LockRecord,
    LockStatus,
    LockStore,
    LockUpdate,
    RedisLockStore,
    RedisLockStoreConfig,
    ReleaseResult,
)
from collabsync.server import CollabServer, create_app, create_server
from collabsync.sessions import Session, SessionRegistry
from collabsync.types import LOCK_TTL, ChangeKind, ResourceType

__all__ = [
    "__version__",
    # Types
    "ResourceType",
    "ChangeKind",
    "LOCK_TTL",
    # Config
    "CollabSyncSettings",
    # Exceptions
    "CollabSyncError",
    "AuthenticationError",
    "StoreUnavailableError",
    "BroadcastError",
    "RelayDegradedError",
    "SessionNotFoundError",
    "InvalidLockRequestError",
    # Auth
    "ConnectionGate",
    "Identity",
    "JWTTokenVerifier",
    "TokenVerifier",
    "create_access_token",
    # Sessions
    "Session",
    "SessionRegistry",
    # Locks
    "LockManager",
    "LockStore",
    "InMemoryLockStore",
    "RedisLockStore",
    "RedisLockStoreConfig",
    "LockRecord",
    "AcquireResult",
    "ReleaseResult",
    "LockStatus",
    "LockUpdate",
    # Broadcast
    "EventBroadcaster",
    "ChangeEvent",
    "Transport",
    "InMemoryTransport",
    "SocketIOTransport",
    # Server
    "CollabServer",
    "create_server",
    "create_app",
]
