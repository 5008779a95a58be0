
"""Redis lock store implementation.

Lock records live in plain Redis string keys with a millisecond expiry
(``SET ... PX``). Acquire, release and check each run as one Lua script,
so every decision happens in a single atomic round trip against the
Redis server clock, shared by every server process that points at the
same Redis.

Example:
    >>> from collabsync.locks.redis import RedisLockStore, RedisLockStoreConfig
    >>>
    >>> store = RedisLockStore(RedisLockStoreConfig(redis_url="redis://localhost:6379"))
    >>> manager = LockManager(store, broadcaster)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from collabsync.exceptions import StoreUnavailableError
from collabsync.locks.interface import LockStore
from collabsync.locks.models import (
    AcquireOutcome,
    AcquireStatus,
    LockRecord,
    ReleaseOutcome,
    ReleaseStatus,
)
from collabsync.types import LOCK_TTL

logger = logging.getLogger(__name__)

# Shared by every script. Time comes from the Redis server so all
# processes judge expiry by one clock. A record is a live lock when it
# decodes to an object with numeric acquiredAt, non-null userId and
# username, and acquiredAt + ttl is still ahead; LockRecord.from_json
# accepts exactly these records.
_PRELUDE = """
local function now_ms()
  local t = redis.call('TIME')
  return tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
end

local function live_record(raw, now, ttl)
  if not raw then
    return nil
  end
  local ok, record = pcall(cjson.decode, raw)
  if not ok or type(record) ~= 'table' then
    return nil
  end
  local acquired = tonumber(record['acquiredAt'])
  if not acquired then
    return nil
  end
  if record['userId'] == nil or record['userId'] == cjson.null then
    return nil
  end
  if record['username'] == nil or record['username'] == cjson.null then
    return nil
  end
  if acquired + ttl <= now then
    return nil
  end
  return record
end
"""

# KEYS[1] lock key
# ARGV[1] candidate record JSON, ARGV[2] requester user id, ARGV[3] ttl (ms)
# Returns {status, record}: 1 acquired, 2 refreshed, 0 contended.
# The written record carries the server time as acquiredAt.
ACQUIRE_SCRIPT = _PRELUDE + """
local now = now_ms()
local ttl = tonumber(ARGV[3])
local current = redis.call('GET', KEYS[1])
local holder = live_record(current, now, ttl)
local status = 1
if holder then
  if tostring(holder['userId']) ~= ARGV[2] then
    return {0, current}
  end
  status = 2
end
local record = cjson.decode(ARGV[1])
record['acquiredAt'] = now
local stored = cjson.encode(record)
redis.call('SET', KEYS[1], stored, 'PX', ttl)
return {status, stored}
"""

# KEYS[1] lock key
# ARGV[1] required holder user id ('' = unconditional), ARGV[2] ttl (ms)
# Returns {status, record}: 1 released, 0 not locked, 2 not holder.
# Expired or unreadable records are deleted and count as not locked.
RELEASE_SCRIPT = _PRELUDE + """
local current = redis.call('GET', KEYS[1])
if not current then
  return {0, ''}
end
local holder = live_record(current, now_ms(), tonumber(ARGV[2]))
if not holder then
  redis.call('DEL', KEYS[1])
  return {0, ''}
end
if ARGV[1] ~= '' and tostring(holder['userId']) ~= ARGV[1] then
  return {2, current}
end
redis.call('DEL', KEYS[1])
return {1, current}
"""

# KEYS[1] lock key
# ARGV[1] ttl (ms)
# Returns the record if it is a live lock, nil otherwise.
GET_SCRIPT = _PRELUDE + """
local current = redis.call('GET', KEYS[1])
if live_record(current, now_ms(), tonumber(ARGV[1])) then
  return current
end
return false
"""

_ACQUIRE_STATUS = {
    1: AcquireStatus.ACQUIRED,
    2: AcquireStatus.REFRESHED,
    0: AcquireStatus.CONTENDED,
}

_RELEASE_STATUS = {
    1: ReleaseStatus.RELEASED,
    0: ReleaseStatus.NOT_LOCKED,
    2: ReleaseStatus.NOT_HOLDER,
}


@dataclass
class RedisLockStoreConfig:
    """Configuration for the Redis lock store.

    Attributes:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379")
        key_prefix: Namespace prepended to every lock key (default: none)
        ttl: Lock lifetime used to judge logical expiry of stored records
        socket_timeout: Socket timeout in seconds (default: 5.0)
        socket_connect_timeout: Socket connection timeout in seconds (default: 5.0)
        single_connection_client: Use single connection instead of pool (default: False).
            Useful for testing to avoid event loop issues.
    """

    redis_url: str = "redis://localhost:6379"
    key_prefix: str = ""
    ttl: timedelta = LOCK_TTL
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    single_connection_client: bool = False

    def full_key(self, key: str) -> str:
        """Apply the namespace prefix to a lock key."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key


class RedisLockStore(LockStore):
    """
    Lock store backed by Redis.

    Connects lazily on first use. Any Redis or socket failure surfaces as
    StoreUnavailableError; the client is kept and retried on the next
    call, so the store recovers on its own once Redis is back.
    """

    def __init__(self, config: RedisLockStoreConfig | None = None) -> None:
        self._config = config or RedisLockStoreConfig()
        self._redis: Redis | None = None
        self._acquire_script = None
        self._release_script = None
        self._get_script = None

    @property
    def config(self) -> RedisLockStoreConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._redis is not None

    def _client(self) -> Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(
                self._config.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=self._config.socket_timeout,
                socket_connect_timeout=self._config.socket_connect_timeout,
                single_connection_client=self._config.single_connection_client,
            )
            self._acquire_script = self._redis.register_script(ACQUIRE_SCRIPT)
            self._release_script = self._redis.register_script(RELEASE_SCRIPT)
            self._get_script = self._redis.register_script(GET_SCRIPT)
            logger.info(
                "Created Redis lock store client",
                extra={"redis_url": self._config.redis_url},
            )
        return self._redis

    def _parse(self, raw: str | None, key: str) -> LockRecord | None:
        if not raw:
            return None
        try:
            return LockRecord.from_json(raw, ttl=self._config.ttl, key=key)
        except ValueError as e:
            full_key = self._config.full_key(key)
            logger.warning(
                f"Ignoring malformed lock record at {full_key}: {e}",
                extra={"lock_key": full_key},
            )
            return None

    @property
    def _ttl_ms(self) -> int:
        return int(self._config.ttl.total_seconds() * 1000)

    async def acquire(self, key: str, record: LockRecord) -> AcquireOutcome:
        """
        Acquire, refresh or report contention in one script call.

        The stored record's acquired_at is the Redis server time, not
        ``record.acquired_at``.
        """
        full_key = self._config.full_key(key)
        self._client()
        try:
            status, raw = await self._acquire_script(  # type: ignore[misc]
                keys=[full_key],
                args=[record.to_json(), record.holder_user_id, self._ttl_ms],
            )
        except (RedisError, OSError) as e:
            logger.error(f"Redis acquire failed for {full_key}: {e}", exc_info=True)
            raise StoreUnavailableError("acquire", key, str(e)) from e

        stored = self._parse(raw, key)
        if stored is None:
            # never reached while the script and from_json agree on liveness
            raise StoreUnavailableError("acquire", key, "unreadable lock record")
        return AcquireOutcome(_ACQUIRE_STATUS[int(status)], stored)

    async def release(
        self,
        key: str,
        now: datetime,
        *,
        holder_user_id: str | None = None,
    ) -> ReleaseOutcome:
        """
        Delete a lock record in one script call.

        Expiry is judged by the Redis server clock; ``now`` is not used.
        """
        full_key = self._config.full_key(key)
        self._client()
        try:
            status, raw = await self._release_script(  # type: ignore[misc]
                keys=[full_key],
                args=[holder_user_id or "", self._ttl_ms],
            )
        except (RedisError, OSError) as e:
            logger.error(f"Redis release failed for {full_key}: {e}", exc_info=True)
            raise StoreUnavailableError("release", key, str(e)) from e

        return ReleaseOutcome(_RELEASE_STATUS[int(status)], self._parse(raw, key))

    async def get(self, key: str, now: datetime) -> LockRecord | None:
        """
        Read the live record, if any.

        Expiry is judged by the Redis server clock; ``now`` is not used.
        """
        full_key = self._config.full_key(key)
        self._client()
        try:
            raw = await self._get_script(keys=[full_key], args=[self._ttl_ms])  # type: ignore[misc]
        except (RedisError, OSError) as e:
            logger.error(f"Redis get failed for {full_key}: {e}", exc_info=True)
            raise StoreUnavailableError("get", key, str(e)) from e

        return self._parse(raw, key)

    async def ping(self) -> bool:
        try:
            return bool(await self._client().ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis lock store ping failed: {e}")
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._acquire_script = None
            self._release_script = None
            self._get_script = None
            logger.info("Closed Redis lock store client")


__all__ = [
    "RedisLockStore",
    "RedisLockStoreConfig",
    "ACQUIRE_SCRIPT",
    "RELEASE_SCRIPT",
    "GET_SCRIPT",
]
