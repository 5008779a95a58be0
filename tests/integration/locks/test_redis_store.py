"""
Integration tests for RedisLockStore.

These tests run against a real Redis container and verify:
- Atomic acquire, refresh and contention through the Lua scripts
- Passive expiry of records Redis has not evicted yet
- Unconditional and holder-checked release
- Records that carry only the holder fields
- Expiry judged by the Redis clock when process clocks disagree
- Key prefixing and sharing one Redis between several stores
- LockManager end to end on the Redis store
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest

from collabsync.broadcast import EventBroadcaster, InMemoryTransport
from collabsync.locks import (
    AcquireStatus,
    LockManager,
    LockRecord,
    ReleaseStatus,
)
from collabsync.locks.models import to_epoch_ms
from collabsync.types import LOCK_TTL, ResourceType
from tests.integration.conftest import skip_if_no_redis_infra

pytestmark = [pytest.mark.integration, pytest.mark.redis, skip_if_no_redis_infra]

KEY = "lock:member:M1"


def record_for(user_id: str, username: str, acquired_at: datetime | None = None) -> LockRecord:
    return LockRecord(
        resource_type=ResourceType.MEMBER,
        resource_id="M1",
        holder_user_id=user_id,
        holder_username=username,
        acquired_at=acquired_at or datetime.now(UTC),
    )


async def store_raw(redis_client, key: str, user_id: str, acquired_at: datetime) -> None:
    """Write a record the way another process would, without a Redis expiry."""
    await redis_client.set(
        key,
        json.dumps(
            {
                "resourceType": "member",
                "resourceId": "M1",
                "userId": user_id,
                "username": f"user-{user_id}",
                "acquiredAt": to_epoch_ms(acquired_at),
            }
        ),
    )


# =============================================================================
# Acquire
# =============================================================================


class TestAcquire:
    """Tests for RedisLockStore.acquire."""

    async def test_acquire_free_resource(self, redis_lock_store, redis_client):
        outcome = await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        assert outcome.status is AcquireStatus.ACQUIRED
        assert outcome.record.holder_username == "admin"
        stored = json.loads(await redis_client.get(KEY))
        assert stored["userId"] == "1"
        assert stored["username"] == "admin"

    async def test_key_carries_ttl(self, redis_lock_store, redis_client):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        pttl = await redis_client.pttl(KEY)
        assert 0 < pttl <= int(LOCK_TTL.total_seconds() * 1000)

    async def test_contention_keeps_holder(self, redis_lock_store, redis_client):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))
        before = await redis_client.get(KEY)

        outcome = await redis_lock_store.acquire(KEY, record_for("2", "editor"))

        assert outcome.status is AcquireStatus.CONTENDED
        assert outcome.record.holder_username == "admin"
        assert await redis_client.get(KEY) == before

    async def test_same_user_refreshes(self, redis_lock_store, redis_client):
        first = datetime.now(UTC) - timedelta(minutes=10)
        await store_raw(redis_client, KEY, "1", first)

        outcome = await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        assert outcome.status is AcquireStatus.REFRESHED
        stored = await redis_lock_store.get(KEY, datetime.now(UTC))
        assert stored is not None
        assert stored.acquired_at - first > timedelta(minutes=9)
        assert await redis_client.pttl(KEY) > int(timedelta(minutes=14).total_seconds() * 1000)

    async def test_acquired_at_is_server_time(self, redis_lock_store, redis_client):
        """The candidate's own timestamp is not what gets stored."""
        stale = datetime.now(UTC) - timedelta(hours=3)

        outcome = await redis_lock_store.acquire(KEY, record_for("1", "admin", stale))

        seconds, micros = await redis_client.time()
        server_now = seconds * 1000 + micros // 1000
        assert abs(to_epoch_ms(outcome.record.acquired_at) - server_now) < 5_000

    async def test_expired_record_is_free(self, redis_lock_store, redis_client):
        """A record past its TTL but not yet evicted does not block."""
        await store_raw(redis_client, KEY, "1", datetime.now(UTC) - timedelta(minutes=16))

        outcome = await redis_lock_store.acquire(KEY, record_for("2", "editor"))

        assert outcome.status is AcquireStatus.ACQUIRED
        assert outcome.record.holder_username == "editor"

    async def test_corrupt_record_is_free(self, redis_lock_store, redis_client):
        await redis_client.set(KEY, "not json")

        outcome = await redis_lock_store.acquire(KEY, record_for("2", "editor"))

        assert outcome.status is AcquireStatus.ACQUIRED

    async def test_concurrent_acquires_grant_one(self, redis_lock_store_factory, redis_client):
        """Two processes racing for the same resource: exactly one wins."""
        stores = [redis_lock_store_factory() for _ in range(2)]

        outcomes = await asyncio.gather(
            stores[0].acquire(KEY, record_for("1", "admin")),
            stores[1].acquire(KEY, record_for("2", "editor")),
        )

        statuses = sorted(o.status.value for o in outcomes)
        assert statuses == ["acquired", "contended"]


# =============================================================================
# Release
# =============================================================================


class TestRelease:
    """Tests for RedisLockStore.release."""

    async def test_release_held(self, redis_lock_store, redis_client):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        outcome = await redis_lock_store.release(KEY, datetime.now(UTC))

        assert outcome.status is ReleaseStatus.RELEASED
        assert outcome.record is not None
        assert outcome.record.holder_username == "admin"
        assert await redis_client.exists(KEY) == 0

    async def test_release_absent(self, redis_lock_store):
        outcome = await redis_lock_store.release(KEY, datetime.now(UTC))

        assert outcome.status is ReleaseStatus.NOT_LOCKED
        assert outcome.record is None

    async def test_unconditional_release_by_other_user(self, redis_lock_store, redis_client):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        outcome = await redis_lock_store.release(KEY, datetime.now(UTC))

        assert outcome.status is ReleaseStatus.RELEASED
        assert await redis_client.exists(KEY) == 0

    async def test_holder_checked_release_refused(self, redis_lock_store, redis_client):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        outcome = await redis_lock_store.release(KEY, datetime.now(UTC), holder_user_id="2")

        assert outcome.status is ReleaseStatus.NOT_HOLDER
        assert outcome.record is not None
        assert outcome.record.holder_username == "admin"
        assert await redis_client.exists(KEY) == 1

    async def test_holder_checked_release_by_holder(self, redis_lock_store):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        outcome = await redis_lock_store.release(KEY, datetime.now(UTC), holder_user_id="1")

        assert outcome.status is ReleaseStatus.RELEASED

    async def test_release_expired_record(self, redis_lock_store, redis_client):
        await store_raw(redis_client, KEY, "1", datetime.now(UTC) - timedelta(minutes=16))

        outcome = await redis_lock_store.release(KEY, datetime.now(UTC))

        assert outcome.status is ReleaseStatus.NOT_LOCKED
        assert await redis_client.exists(KEY) == 0

    async def test_release_corrupt_record(self, redis_lock_store, redis_client):
        await redis_client.set(KEY, "{")

        outcome = await redis_lock_store.release(KEY, datetime.now(UTC))

        assert outcome.status is ReleaseStatus.NOT_LOCKED
        assert outcome.record is None
        assert await redis_client.exists(KEY) == 0


# =============================================================================
# Get, prefix and connection
# =============================================================================


class TestGet:
    """Tests for RedisLockStore.get."""

    async def test_get_live_record(self, redis_lock_store):
        await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        record = await redis_lock_store.get(KEY, datetime.now(UTC))

        assert record is not None
        assert record.holder_user_id == "1"
        assert record.resource_type is ResourceType.MEMBER

    async def test_get_absent(self, redis_lock_store):
        assert await redis_lock_store.get(KEY, datetime.now(UTC)) is None

    async def test_get_expired(self, redis_lock_store, redis_client):
        await store_raw(redis_client, KEY, "1", datetime.now(UTC) - timedelta(minutes=16))

        assert await redis_lock_store.get(KEY, datetime.now(UTC)) is None

    async def test_get_corrupt(self, redis_lock_store, redis_client):
        await redis_client.set(KEY, json.dumps({"userId": "1"}))

        assert await redis_lock_store.get(KEY, datetime.now(UTC)) is None


class TestKeyPrefix:
    async def test_prefixed_keys(self, redis_lock_store_factory, redis_client):
        store = redis_lock_store_factory(key_prefix="parish-a")

        await store.acquire(KEY, record_for("1", "admin"))

        assert await redis_client.exists("parish-a:lock:member:M1") == 1
        assert await redis_client.exists(KEY) == 0

    async def test_prefixes_isolate_stores(self, redis_lock_store_factory, redis_client):
        a = redis_lock_store_factory(key_prefix="a")
        b = redis_lock_store_factory(key_prefix="b")

        await a.acquire(KEY, record_for("1", "admin"))
        outcome = await b.acquire(KEY, record_for("2", "editor"))

        assert outcome.status is AcquireStatus.ACQUIRED


class TestConnection:
    async def test_ping(self, redis_lock_store):
        assert await redis_lock_store.ping() is True
        assert redis_lock_store.is_connected is True

    async def test_close_and_reconnect(self, redis_lock_store):
        await redis_lock_store.ping()
        await redis_lock_store.close()

        assert redis_lock_store.is_connected is False
        assert await redis_lock_store.get(KEY, datetime.now(UTC)) is None


# =============================================================================
# LockManager on Redis
# =============================================================================


class TestManagerOnRedis:
    """The admin/editor scenario across two processes sharing one Redis."""

    async def test_two_processes(self, redis_lock_store_factory, redis_client, admin, editor):
        transport = InMemoryTransport()
        transport.connect("watcher")
        broadcaster = EventBroadcaster(transport, enable_tracing=False)
        process_a = LockManager(redis_lock_store_factory(), broadcaster, enable_tracing=False)
        process_b = LockManager(redis_lock_store_factory(), broadcaster, enable_tracing=False)
        await broadcaster.subscribe_lock_updates("watcher", "member", "M1")

        granted = await process_a.acquire("member", "M1", admin)
        refused = await process_b.acquire("member", "M1", editor)
        status = await process_b.check("member", "M1")
        released = await process_b.release("member", "M1", admin)
        after = await process_a.acquire("member", "M1", editor)

        assert granted.success is True
        assert refused.success is False
        assert refused.locked_by == "admin"
        assert status.is_locked is True
        assert status.locked_by == "admin"
        assert released.success is True
        assert after.success is True
        updates = [
            data for event, data in transport.received("watcher")
            if event == "lock:update:member:M1"
        ]
        assert [u["lockedBy"] for u in updates] == ["admin", None, "editor"]


# =============================================================================
# Records without resource fields
# =============================================================================


class TestHolderOnlyRecords:
    """Records carrying only userId, username and acquiredAt are live locks."""

    @pytest.fixture
    async def held_by_admin(self, redis_client):
        seconds, micros = await redis_client.time()
        await redis_client.set(
            KEY,
            json.dumps(
                {
                    "userId": 1,
                    "username": "admin",
                    "acquiredAt": seconds * 1000 + micros // 1000,
                }
            ),
        )

    async def test_store_reports_real_holder(self, redis_lock_store, held_by_admin):
        outcome = await redis_lock_store.acquire(KEY, record_for("2", "editor"))

        assert outcome.status is AcquireStatus.CONTENDED
        assert outcome.record.holder_username == "admin"
        assert outcome.record.holder_user_id == "1"
        assert outcome.record.resource_type is ResourceType.MEMBER
        assert outcome.record.resource_id == "M1"

    async def test_get_sees_the_lock(self, redis_lock_store, held_by_admin):
        record = await redis_lock_store.get(KEY, datetime.now(UTC))

        assert record is not None
        assert record.holder_username == "admin"

    async def test_holder_refreshes_numeric_user_id(self, redis_lock_store, held_by_admin):
        outcome = await redis_lock_store.acquire(KEY, record_for("1", "admin"))

        assert outcome.status is AcquireStatus.REFRESHED

    async def test_acquire_and_check_agree(
        self, redis_lock_store, held_by_admin, editor
    ):
        manager = LockManager(redis_lock_store, enable_tracing=False)

        result = await manager.acquire("member", "M1", editor)
        status = await manager.check("member", "M1")

        assert result.success is False
        assert result.locked_by == "admin"
        assert status.is_locked is True
        assert status.locked_by == "admin"

    async def test_record_without_username_is_free(self, redis_lock_store, redis_client):
        seconds, _ = await redis_client.time()
        await redis_client.set(KEY, json.dumps({"userId": 1, "acquiredAt": seconds * 1000}))

        outcome = await redis_lock_store.acquire(KEY, record_for("2", "editor"))

        assert outcome.status is AcquireStatus.ACQUIRED
        assert outcome.record.holder_username == "editor"


# =============================================================================
# Clock skew between processes
# =============================================================================


class TestClockSkew:
    """Expiry follows the Redis server clock, not each process's clock."""

    async def test_fast_clock_cannot_steal_live_lock(
        self, redis_lock_store_factory, redis_client, admin, editor
    ):
        now = datetime.now(UTC)
        on_time = LockManager(
            redis_lock_store_factory(), clock=lambda: now, enable_tracing=False
        )
        running_ahead = LockManager(
            redis_lock_store_factory(),
            clock=lambda: now + timedelta(minutes=16),
            enable_tracing=False,
        )

        first = await on_time.acquire("member", "M1", admin)
        second = await running_ahead.acquire("member", "M1", editor)
        status = await running_ahead.check("member", "M1")

        assert first.success is True
        assert second.success is False
        assert second.locked_by == "admin"
        assert status.is_locked is True
        assert status.locked_by == "admin"

    async def test_slow_clock_does_not_extend_lock(
        self, redis_lock_store_factory, redis_client, admin, editor
    ):
        """A record past its TTL on the server is free whatever the caller's time."""
        await store_raw(redis_client, KEY, "1", datetime.now(UTC) - timedelta(minutes=16))
        lagging = LockManager(
            redis_lock_store_factory(),
            clock=lambda: datetime.now(UTC) - timedelta(minutes=30),
            enable_tracing=False,
        )

        status = await lagging.check("member", "M1")
        result = await lagging.acquire("member", "M1", editor)

        assert status.is_locked is False
        assert result.success is True

    async def test_fast_clock_release_is_not_a_noop(
        self, redis_lock_store_factory, redis_client, admin
    ):
        now = datetime.now(UTC)
        await LockManager(
            redis_lock_store_factory(), clock=lambda: now, enable_tracing=False
        ).acquire("member", "M1", admin)
        running_ahead = LockManager(
            redis_lock_store_factory(),
            clock=lambda: now + timedelta(minutes=16),
            require_holder_for_release=True,
            enable_tracing=False,
        )

        result = await running_ahead.release("member", "M1", admin)

        assert result.success is True
        assert running_ahead.stats.released == 1
        assert await redis_client.exists(KEY) == 0
