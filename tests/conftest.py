"""
Shared pytest fixtures for the collabsync tests.

This module provides:
- Identity fixtures (admin, editor) matching the documented scenario
- Token fixtures (secret, token_factory)
- A controllable clock for TTL tests
- In-memory lock store, transport, broadcaster and lock manager
- A fully wired CollabServer on in-memory components
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from collabsync.auth import ConnectionGate, Identity, JWTTokenVerifier, create_access_token
from collabsync.broadcast import EventBroadcaster, InMemoryTransport
from collabsync.locks import InMemoryLockStore, LockManager
from collabsync.observability import MockTracer
from collabsync.server import CollabServer
from collabsync.sessions import SessionRegistry
from tests.fixtures import FrozenClock

TEST_SECRET = "test-secret-for-collabsync"


# ============================================================================
# Identities and tokens
# ============================================================================


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id="1", username="admin", role="ADMIN")


@pytest.fixture
def editor() -> Identity:
    return Identity(user_id="2", username="editor", role="EDITOR")


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Mint tokens signed with the test secret."""

    def create(claims: Identity | dict[str, Any], **kwargs: Any) -> str:
        return create_access_token(claims, TEST_SECRET, **kwargs)

    return create


# ============================================================================
# Components
# ============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def tracer() -> MockTracer:
    return MockTracer()


@pytest.fixture
def lock_store() -> InMemoryLockStore:
    return InMemoryLockStore()


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def broadcaster(transport: InMemoryTransport) -> EventBroadcaster:
    return EventBroadcaster(transport, enable_tracing=False)


@pytest.fixture
def lock_manager(
    lock_store: InMemoryLockStore,
    broadcaster: EventBroadcaster,
    clock: FrozenClock,
) -> LockManager:
    return LockManager(lock_store, broadcaster, clock=clock, enable_tracing=False)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def server(
    registry: SessionRegistry,
    lock_manager: LockManager,
    broadcaster: EventBroadcaster,
    transport: InMemoryTransport,
) -> CollabServer:
    gate = ConnectionGate(JWTTokenVerifier(TEST_SECRET))
    return CollabServer(gate, registry, lock_manager, broadcaster, transport)
