"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path

import pytest

from eavlog.adapters.storage.sqlite_events import (
    AsyncSQLiteEventStore,
    SQLiteEventStore,
)


class FakeClock:
    """Clock returning a preset timestamp, advanced by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def event_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for event storage tests."""
    return str(tmp_path / "events.db")


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock for deterministic event timestamps."""
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> Generator[SQLiteEventStore, None, None]:
    """In-memory sync event store with proper cleanup."""
    store = SQLiteEventStore(":memory:", clock=clock)
    yield store
    store.close()


@pytest.fixture
def file_store_factory(
    event_db_path: str, clock: FakeClock
) -> Callable[[], SQLiteEventStore]:
    """Factory creating independent stores over the same database file."""

    def _store() -> SQLiteEventStore:
        return SQLiteEventStore(event_db_path, clock=clock)

    return _store


@pytest.fixture
async def async_memory_store(clock: FakeClock) -> AsyncGenerator[AsyncSQLiteEventStore, None]:
    """In-memory async event store with proper cleanup."""
    store = AsyncSQLiteEventStore(":memory:", clock=clock)
    yield store
    await store.close()
