"""
Shared pytest fixtures for integration tests.

This module provides Redis test infrastructure using testcontainers for
automatic container management.

If testcontainers or Docker is not available, tests are automatically skipped.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import pytest
import pytest_asyncio
import redis.asyncio as aioredis

from collabsync.locks import RedisLockStore, RedisLockStoreConfig

# ============================================================================
# Testcontainers Detection
# ============================================================================

TESTCONTAINERS_AVAILABLE = False

try:
    from testcontainers.redis import RedisContainer

    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    RedisContainer = None  # type: ignore[assignment, misc]


def is_docker_available() -> bool:
    """Check if Docker is available for running containers."""
    import subprocess

    try:
        result = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


DOCKER_AVAILABLE = is_docker_available()


# ============================================================================
# Skip Conditions
# ============================================================================

skip_if_no_redis_infra = pytest.mark.skipif(
    not (TESTCONTAINERS_AVAILABLE and DOCKER_AVAILABLE),
    reason="Redis test infrastructure not available",
)


# ============================================================================
# Redis Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def redis_container() -> Generator[Any, None, None]:
    """
    Provide Redis container for integration tests.

    Container is shared across all tests in the session.
    """
    if not TESTCONTAINERS_AVAILABLE or not DOCKER_AVAILABLE:
        pytest.skip("Redis testcontainer not available")

    container = RedisContainer("redis:7")
    container.start()

    yield container

    container.stop()


@pytest.fixture(scope="session")
def redis_connection_url(redis_container: Any) -> str:
    """Get Redis connection URL from container."""
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    return f"redis://{host}:{port}"


@pytest_asyncio.fixture
async def redis_client(redis_connection_url: str) -> AsyncGenerator[aioredis.Redis, None]:
    """
    Provide a raw async Redis client connected to the container.

    Flushes the database before and after each test for isolation.
    """
    client = aioredis.from_url(
        redis_connection_url,
        decode_responses=True,
        single_connection_client=True,
    )
    await client.flushall()

    yield client

    await client.flushall()
    await client.aclose()


# ============================================================================
# Lock Store Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def redis_lock_store_factory(
    redis_connection_url: str,
) -> AsyncGenerator[Callable[..., RedisLockStore], None]:
    """
    Factory fixture for RedisLockStore instances.

    Each store built here points at the same container, the way several
    server processes share one Redis. Stores are closed on teardown.
    """
    created: list[RedisLockStore] = []

    def create_store(**overrides: Any) -> RedisLockStore:
        config = RedisLockStoreConfig(
            redis_url=redis_connection_url,
            single_connection_client=True,
            **overrides,
        )
        store = RedisLockStore(config)
        created.append(store)
        return store

    yield create_store

    for store in created:
        await store.close()


@pytest_asyncio.fixture
async def redis_lock_store(
    redis_lock_store_factory: Callable[..., RedisLockStore],
    redis_client: aioredis.Redis,
) -> AsyncGenerator[RedisLockStore, None]:
    """Provide a RedisLockStore against a flushed database."""
    yield redis_lock_store_factory()
