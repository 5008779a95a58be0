"""In-memory lock store implementation.

Suitable for development, testing, and single-process deployments. Every
server process has its own map, so this store cannot provide mutual
exclusion across processes; use RedisLockStore for that.
"""

import logging
import threading
from datetime import datetime

from collabsync.locks.interface import LockStore
from collabsync.locks.models import (
    AcquireOutcome,
    AcquireStatus,
    LockRecord,
    ReleaseOutcome,
    ReleaseStatus,
)

logger = logging.getLogger(__name__)


class InMemoryLockStore(LockStore):
    """
    Lock store backed by a dict.

    Each operation runs entirely under a threading lock and never awaits
    while holding it, which makes it atomic with respect to other tasks
    and threads in the same process.

    Example:
        >>> store = InMemoryLockStore()
        >>> manager = LockManager(store)
    """

    def __init__(self) -> None:
        self._records: dict[str, LockRecord] = {}
        self._lock = threading.Lock()

    async def acquire(self, key: str, record: LockRecord) -> AcquireOutcome:
        now = record.acquired_at
        with self._lock:
            current = self._records.get(key)
            if current is None or current.is_expired(now):
                self._records[key] = record
                return AcquireOutcome(AcquireStatus.ACQUIRED, record)

            if current.holder_user_id == record.holder_user_id:
                refreshed = current.refreshed(now)
                self._records[key] = refreshed
                return AcquireOutcome(AcquireStatus.REFRESHED, refreshed)

            return AcquireOutcome(AcquireStatus.CONTENDED, current)

    async def release(
        self,
        key: str,
        now: datetime,
        *,
        holder_user_id: str | None = None,
    ) -> ReleaseOutcome:
        with self._lock:
            current = self._records.get(key)
            if current is None:
                return ReleaseOutcome(ReleaseStatus.NOT_LOCKED)

            if current.is_expired(now):
                del self._records[key]
                return ReleaseOutcome(ReleaseStatus.NOT_LOCKED)

            if holder_user_id is not None and current.holder_user_id != holder_user_id:
                return ReleaseOutcome(ReleaseStatus.NOT_HOLDER, current)

            del self._records[key]
            return ReleaseOutcome(ReleaseStatus.RELEASED, current)

    async def get(self, key: str, now: datetime) -> LockRecord | None:
        with self._lock:
            current = self._records.get(key)
        if current is None or current.is_expired(now):
            return None
        return current

    async def ping(self) -> bool:
        return True

    def get_record_count(self) -> int:
        """Number of stored records, including expired ones not yet touched."""
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Drop all records. Useful for testing."""
        with self._lock:
            self._records.clear()
        logger.debug("In-memory lock store cleared")


__all__ = ["InMemoryLockStore"]
