"""
Shared fixtures for relay unit tests.

Time is injected everywhere, so tests drive expiry with a fake clock
instead of sleeping.
"""

import pytest

from docrelay.core.relay.tracker import TransferTracker
from docrelay.infrastructure.storage.client import (
    InMemoryObjectStore,
    StorageConfig,
    create_object_store,
)


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock):
    """1 KiB ceiling, 60 second TTL."""
    store = create_object_store(StorageConfig(max_bytes=1024, ttl_seconds=60), clock=clock)
    yield store
    store.close()


@pytest.fixture
def tracker(clock: FakeClock) -> TransferTracker:
    return TransferTracker(clock=clock)


@pytest.fixture
def paired(store: InMemoryObjectStore, tracker: TransferTracker):
    """Store and tracker wired the way the app wires them."""
    store.add_eviction_listener(tracker.evict)
    return store, tracker
