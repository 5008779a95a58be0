"""
Lock manager: TTL-bounded advisory edit locks.

Per resource the lock moves between two states:

    Free --acquire(A)--> Held(A)
    Held(A) --acquire(A)--> Held(A)          TTL reset (refresh)
    Held(A) --acquire(B)--> Held(A)          contention, nothing written
    Held(A) --release / TTL--> Free

Every decision is one atomic LockStore call; the manager keeps no lock
state of its own and takes no in-process mutex. Successful transitions
are announced on the resource's scoped topic.

Example:
    >>> manager = LockManager(RedisLockStore(config), broadcaster)
    >>> result = await manager.acquire("member", "M1", identity)
    >>> result.success, result.locked_by
    (True, None)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from collabsync.auth.models import Identity
from collabsync.exceptions import BroadcastError, StoreUnavailableError
from collabsync.locks.interface import LockStore
from collabsync.locks.models import (
    AcquireResult,
    AcquireStatus,
    LockRecord,
    LockStatus,
    LockUpdate,
    ReleaseResult,
    ReleaseStatus,
)
from collabsync.observability import (
    ATTR_LOCK_KEY,
    ATTR_LOCK_OUTCOME,
    ATTR_RESOURCE_ID,
    ATTR_RESOURCE_TYPE,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)
from collabsync.types import LOCK_TTL, ResourceType, lock_key, utc_now

if TYPE_CHECKING:
    from collabsync.broadcast.broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)

NOT_HOLDER = "not_holder"


@dataclass
class LockManagerStats:
    """Statistics for lock manager operations.

    Attributes:
        acquired: Free -> Held transitions
        refreshed: Re-acquires by the current holder
        contended: Acquires refused because someone else holds the lock
        released: Releases that deleted a live record
        release_noop: Releases of a resource that was not locked
        release_denied: Releases refused because the caller is not the holder
        checks: Read-only lookups
        store_errors: Operations that failed because the store was unreachable
    """

    acquired: int = 0
    refreshed: int = 0
    contended: int = 0
    released: int = 0
    release_noop: int = 0
    release_denied: int = 0
    checks: int = 0
    store_errors: int = 0


class LockManager:
    """
    Grants, refreshes, releases and reports edit locks.

    Fails closed: when the store cannot be reached every operation raises
    StoreUnavailableError and no lock is granted.

    Args:
        store: Shared lock store
        broadcaster: Receives lock updates; None disables notifications
        ttl: Lock lifetime (fixed at 15 minutes in production)
        clock: Returns the current aware UTC time
        require_holder_for_release: Refuse releases by anyone but the
            holder instead of deleting unconditionally
        tracer: Optional custom Tracer instance
        enable_tracing: Whether to enable OpenTelemetry tracing.
            Ignored if tracer is explicitly provided.
    """

    def __init__(
        self,
        store: LockStore,
        broadcaster: EventBroadcaster | None = None,
        *,
        ttl: timedelta = LOCK_TTL,
        clock: Callable[[], datetime] = utc_now,
        require_holder_for_release: bool = False,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._ttl = ttl
        self._clock = clock
        self._require_holder = require_holder_for_release
        self._stats = LockManagerStats()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

    @property
    def store(self) -> LockStore:
        return self._store

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def require_holder_for_release(self) -> bool:
        return self._require_holder

    @property
    def stats(self) -> LockManagerStats:
        return self._stats

    def _store_failed(self, operation: str, key: str, error: StoreUnavailableError) -> None:
        self._stats.store_errors += 1
        logger.error(
            f"Lock {operation} on {key} failed closed: {error}",
            extra={"lock_key": key, "operation": operation},
        )

    async def acquire(
        self,
        resource_type: ResourceType | str,
        resource_id: str,
        identity: Identity,
    ) -> AcquireResult:
        """
        Acquire or refresh the lock on a resource.

        Returns:
            success=True, locked_by=None when granted or refreshed;
            success=False, locked_by=<holder username> on contention

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        resource_type = ResourceType(resource_type)
        key = lock_key(resource_type, resource_id)
        candidate = LockRecord(
            resource_type=resource_type,
            resource_id=resource_id,
            holder_user_id=identity.user_id,
            holder_username=identity.username,
            acquired_at=self._clock(),
            ttl=self._ttl,
        )

        with self._tracer.span(
            "collabsync.lock.acquire",
            {
                ATTR_RESOURCE_TYPE: resource_type.value,
                ATTR_RESOURCE_ID: resource_id,
                ATTR_LOCK_KEY: key,
                ATTR_USER_ID: identity.user_id,
            },
        ) as span:
            try:
                outcome = await self._store.acquire(key, candidate)
            except StoreUnavailableError as e:
                self._store_failed("acquire", key, e)
                raise
            if span:
                span.set_attribute(ATTR_LOCK_OUTCOME, outcome.status.value)

        if outcome.status is AcquireStatus.CONTENDED:
            self._stats.contended += 1
            logger.debug(
                f"{identity.username} lost {key} to {outcome.record.holder_username}",
                extra={"lock_key": key, "user_id": identity.user_id},
            )
            return AcquireResult(success=False, locked_by=outcome.record.holder_username)

        if outcome.status is AcquireStatus.REFRESHED:
            self._stats.refreshed += 1
            logger.debug(f"{identity.username} refreshed {key}", extra={"lock_key": key})
        else:
            self._stats.acquired += 1
            logger.info(
                f"{identity.username} acquired {key}",
                extra={"lock_key": key, "user_id": identity.user_id},
            )

        await self._notify(
            resource_type,
            resource_id,
            LockUpdate(is_locked=True, locked_by=outcome.record.holder_username),
        )
        return AcquireResult(success=True, locked_by=None)

    async def release(
        self,
        resource_type: ResourceType | str,
        resource_id: str,
        identity: Identity,
    ) -> ReleaseResult:
        """
        Release the lock on a resource.

        By default the record is deleted whoever asks, and the result is
        always successful. With ``require_holder_for_release`` a live lock
        held by someone else is kept and the result carries
        ``error="not_holder"`` and the holder's name.

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        resource_type = ResourceType(resource_type)
        key = lock_key(resource_type, resource_id)
        holder = identity.user_id if self._require_holder else None

        with self._tracer.span(
            "collabsync.lock.release",
            {
                ATTR_RESOURCE_TYPE: resource_type.value,
                ATTR_RESOURCE_ID: resource_id,
                ATTR_LOCK_KEY: key,
                ATTR_USER_ID: identity.user_id,
            },
        ) as span:
            try:
                outcome = await self._store.release(key, self._clock(), holder_user_id=holder)
            except StoreUnavailableError as e:
                self._store_failed("release", key, e)
                raise
            if span:
                span.set_attribute(ATTR_LOCK_OUTCOME, outcome.status.value)

        if outcome.status is ReleaseStatus.NOT_HOLDER:
            self._stats.release_denied += 1
            locked_by = outcome.record.holder_username if outcome.record else None
            logger.info(
                f"{identity.username} may not release {key} held by {locked_by}",
                extra={"lock_key": key, "user_id": identity.user_id},
            )
            return ReleaseResult(success=False, error=NOT_HOLDER, locked_by=locked_by)

        if outcome.status is ReleaseStatus.NOT_LOCKED:
            self._stats.release_noop += 1
            return ReleaseResult(success=True)

        self._stats.released += 1
        if outcome.record and outcome.record.holder_user_id != identity.user_id:
            logger.warning(
                f"{identity.username} released {key} held by {outcome.record.holder_username}",
                extra={"lock_key": key, "user_id": identity.user_id},
            )
        else:
            logger.info(f"{identity.username} released {key}", extra={"lock_key": key})

        await self._notify(
            resource_type,
            resource_id,
            LockUpdate(is_locked=False, locked_by=None),
        )
        return ReleaseResult(success=True)

    async def check(
        self,
        resource_type: ResourceType | str,
        resource_id: str,
    ) -> LockStatus:
        """
        Report who holds a resource, without changing anything.

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        resource_type = ResourceType(resource_type)
        key = lock_key(resource_type, resource_id)

        with self._tracer.span(
            "collabsync.lock.check",
            {
                ATTR_RESOURCE_TYPE: resource_type.value,
                ATTR_RESOURCE_ID: resource_id,
                ATTR_LOCK_KEY: key,
            },
        ):
            try:
                record = await self._store.get(key, self._clock())
            except StoreUnavailableError as e:
                self._store_failed("check", key, e)
                raise

        self._stats.checks += 1
        return LockStatus.from_record(record)

    async def _notify(
        self,
        resource_type: ResourceType,
        resource_id: str,
        update: LockUpdate,
    ) -> None:
        if self._broadcaster is None:
            return
        try:
            await self._broadcaster.publish_lock_update(resource_type, resource_id, update)
        except BroadcastError as e:
            logger.warning(
                f"Lock update for {resource_type.value}:{resource_id} not delivered: {e}",
                extra={"resource_type": resource_type.value, "resource_id": resource_id},
            )

    def get_stats_dict(self) -> dict[str, int]:
        return {
            "acquired": self._stats.acquired,
            "refreshed": self._stats.refreshed,
            "contended": self._stats.contended,
            "released": self._stats.released,
            "release_noop": self._stats.release_noop,
            "release_denied": self._stats.release_denied,
            "checks": self._stats.checks,
            "store_errors": self._stats.store_errors,
        }


__all__ = ["LockManager", "LockManagerStats", "NOT_HOLDER"]
