"""
Shared test doubles for the collabsync tests.

Usage:
    from tests.fixtures import (
        FailingTransport,
        FrozenClock,
        UnavailableLockStore,
    )
"""

from tests.fixtures.clock import FrozenClock
from tests.fixtures.stores import UnavailableLockStore
from tests.fixtures.transports import FailingTransport

__all__ = [
    "FrozenClock",
    "UnavailableLockStore",
    "FailingTransport",
]
