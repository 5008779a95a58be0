"""
Edit locks over named resources.

Example:
    >>> from collabsync.locks import LockManager, RedisLockStore, RedisLockStoreConfig
    >>>
    >>> store = RedisLockStore(RedisLockStoreConfig(redis_url=settings.redis_url))
    >>> manager = LockManager(store, broadcaster)
    >>> await manager.acquire("member", "M1", identity)
"""

from collabsync.locks.interface import LockStore
from collabsync.locks.manager import NOT_HOLDER, LockManager, LockManagerStats
from collabsync.locks.memory import InMemoryLockStore
from collabsync.locks.models import (
    AcquireOutcome,
    AcquireResult,
    AcquireStatus,
    LockRecord,
    LockRequest,
    LockStatus,
    LockUpdate,
    ReleaseOutcome,
    ReleaseResult,
    ReleaseStatus,
)
from collabsync.locks.redis import RedisLockStore, RedisLockStoreConfig

__all__ = [
    "LockManager",
    "LockManagerStats",
    "NOT_HOLDER",
    "LockStore",
    "InMemoryLockStore",
    "RedisLockStore",
    "RedisLockStoreConfig",
    "LockRecord",
    "AcquireStatus",
    "ReleaseStatus",
    "AcquireOutcome",
    "ReleaseOutcome",
    "LockRequest",
    "AcquireResult",
    "ReleaseResult",
    "LockUpdate",
    "LockStatus",
]
