"""
Shared lock store interface.

The store is the single source of truth for who holds the lock on a
resource. Every method is one atomic operation against the backing
store: implementations must never split acquire into a read followed by a
write, since two server processes may race on the same key.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from collabsync.locks.models import AcquireOutcome, LockRecord, ReleaseOutcome


class LockStore(ABC):
    """
    Abstract shared lock store.

    Implementations:
    - InMemoryLockStore: single-process development and testing
    - RedisLockStore: production, shared by every server process

    Expiry is passive. A record whose ``acquired_at + ttl`` has passed is
    treated as absent by every operation even if the backend has not
    evicted it yet; there is no background sweep. "Now" is the store's own
    clock where it has one (RedisLockStore uses the Redis server time, so
    processes with skewed clocks still agree); InMemoryLockStore uses the
    times its callers pass in.

    Errors:
        Backend failures raise StoreUnavailableError. Callers must treat
        that as "not granted".
    """

    @abstractmethod
    async def acquire(self, key: str, record: LockRecord) -> AcquireOutcome:
        """
        Atomically set-if-absent-or-expired, refresh, or report contention.

        - No live record: store ``record``, return ACQUIRED.
        - Live record with the same holder_user_id: reset its acquired_at
          to now and restart the TTL, return REFRESHED.
        - Live record held by someone else: store nothing, return CONTENDED
          with the existing record.

        Args:
            key: Store key for the resource
            record: Candidate record for the requester (acquired_at = now)

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def release(
        self,
        key: str,
        now: datetime,
        *,
        holder_user_id: str | None = None,
    ) -> ReleaseOutcome:
        """
        Delete a lock record.

        Args:
            key: Store key for the resource
            now: Caller's current time, used to ignore logically expired
                records by stores without a clock of their own
            holder_user_id: If given, only delete when this user holds the
                live record (compare-and-delete); otherwise delete
                unconditionally

        Returns:
            RELEASED, NOT_LOCKED, or NOT_HOLDER (record kept)

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def get(self, key: str, now: datetime) -> LockRecord | None:
        """
        Read the live record for a key without modifying anything.

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """True if the store is reachable. Never raises."""
        pass

    async def close(self) -> None:
        """Release backend resources. Default: nothing to do."""


__all__ = ["LockStore"]
