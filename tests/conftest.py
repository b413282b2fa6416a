"""
Shared pytest fixtures for boundedstore tests.
"""
import pytest

from boundedstore.bounded import BoundedIndexStore
from boundedstore.mechanism import InMemoryMechanism
from boundedstore.storage import ExpiringStore


class FakeClock:
    """Controllable clock returning epoch milliseconds."""

    def __init__(self, now: int = 1_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mechanism():
    return InMemoryMechanism()


@pytest.fixture
def base_store(mechanism, clock):
    return ExpiringStore(mechanism, clock=clock)


@pytest.fixture
def make_store(base_store):
    """Factory for bounded stores sharing the same mechanism and clock."""

    def _make(max_items: int = 3) -> BoundedIndexStore:
        return BoundedIndexStore(base_store, max_items)

    return _make


@pytest.fixture
def store(make_store):
    return make_store(3)
