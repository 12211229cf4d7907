"""Pytest fixtures for timeclock engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from timeclock_engine.calculators.types import ClockAction, ClockEvent
from timeclock_engine.database import create_all, get_engine, make_session_factory
from timeclock_engine.services.event_store import InMemoryEventStore


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Build an aware UTC datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_event(
    worker_id: UUID,
    action: ClockAction,
    timestamp: datetime,
    sequence: int = 0,
    notes: str | None = None,
) -> ClockEvent:
    return ClockEvent(
        worker_id=worker_id,
        action=action,
        timestamp=timestamp,
        sequence=sequence,
        notes=notes,
    )


class TickingClock:
    """Deterministic clock that advances a fixed step on every read."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


async def seed_events(
    store: InMemoryEventStore,
    worker_id: UUID,
    pairs: list[tuple[ClockAction, datetime]],
) -> list[ClockEvent]:
    """Append events in order, threading the expected sequence."""
    stored = []
    for index, (action, timestamp) in enumerate(pairs):
        stored.append(await store.append(make_event(worker_id, action, timestamp), index))
    return stored


@pytest.fixture
def worker_id() -> UUID:
    return uuid4()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return TickingClock(utc(2025, 1, 15, 9, 0))


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    return InMemoryEventStore()


# Each test gets its own SQLite file; an in-memory database is per connection
@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema applied."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'timeclock.db'}")
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)
