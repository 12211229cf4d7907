"""Append-only clock event store.

The store provides:
- Conditional append keyed on the worker's latest sequence (optimistic
  concurrency for check-then-act clock actions)
- Ordered range queries per worker
- Latest-event lookups by action for O(1) open-session checks

Two adapters share the protocol: SqlEventStore for persistence and
InMemoryEventStore for single-process use and tests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeclock_engine.calculators.types import (
    ClockAction,
    ClockEvent,
    TimeRange,
    ensure_utc,
)
from timeclock_engine.errors import UpstreamError
from timeclock_engine.models import TimeEntry

logger = logging.getLogger(__name__)


class StaleAppendError(Exception):
    """Raised when the worker's log moved past the expected sequence."""

    def __init__(self, worker_id: UUID, expected_sequence: int, actual_sequence: int | None = None):
        self.worker_id = worker_id
        self.expected_sequence = expected_sequence
        self.actual_sequence = actual_sequence
        msg = f"Time entry log for worker {worker_id} is no longer at sequence {expected_sequence}"
        if actual_sequence is not None:
            msg += f" (now {actual_sequence})"
        super().__init__(msg)


class EventStore(Protocol):
    """Ordered, append-only log of clock events per worker."""

    async def append(self, event: ClockEvent, expected_sequence: int) -> ClockEvent:
        """Append event iff the worker's latest sequence equals expected_sequence.

        Returns the stored event with its assigned sequence.

        Raises:
            StaleAppendError: If another event was appended in between
        """
        ...

    async def query(
        self,
        worker_id: UUID,
        time_range: TimeRange | None = None,
    ) -> list[ClockEvent]:
        """Events for one worker, ascending by (timestamp, sequence)."""
        ...

    async def query_last(self, worker_id: UUID, action: ClockAction) -> ClockEvent | None:
        """Latest event of the given action for the worker."""
        ...

    async def latest(self, worker_id: UUID) -> ClockEvent | None:
        """Most recently appended event (highest sequence) for the worker."""
        ...


class InMemoryEventStore:
    """Process-local event store guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._events: dict[UUID, list[ClockEvent]] = {}
        self._lock = asyncio.Lock()

    async def append(self, event: ClockEvent, expected_sequence: int) -> ClockEvent:
        async with self._lock:
            log = self._events.setdefault(event.worker_id, [])
            current = log[-1].sequence if log else 0
            if current != expected_sequence:
                raise StaleAppendError(event.worker_id, expected_sequence, current)
            stored = replace(
                event,
                timestamp=ensure_utc(event.timestamp),
                sequence=expected_sequence + 1,
            )
            log.append(stored)
            return stored

    async def query(
        self,
        worker_id: UUID,
        time_range: TimeRange | None = None,
    ) -> list[ClockEvent]:
        events = self._events.get(worker_id, [])
        if time_range is not None:
            events = [e for e in events if time_range.contains(e.timestamp)]
        return sorted(events, key=ClockEvent.sort_key)

    async def query_last(self, worker_id: UUID, action: ClockAction) -> ClockEvent | None:
        matching = [e for e in self._events.get(worker_id, []) if e.action == action]
        if not matching:
            return None
        return max(matching, key=ClockEvent.sort_key)

    async def latest(self, worker_id: UUID) -> ClockEvent | None:
        events = self._events.get(worker_id, [])
        return events[-1] if events else None


class SqlEventStore:
    """Event store backed by the time_entry table.

    Each call runs in its own session so independent reads can proceed
    concurrently. The unique (worker_id, sequence) constraint turns a lost
    append race into an IntegrityError, reported as StaleAppendError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, event: ClockEvent, expected_sequence: int) -> ClockEvent:
        stored = replace(
            event,
            timestamp=ensure_utc(event.timestamp),
            sequence=expected_sequence + 1,
        )
        try:
            async with self._session_factory() as session:
                current = await session.scalar(
                    select(func.max(TimeEntry.sequence)).where(
                        TimeEntry.worker_id == event.worker_id
                    )
                )
                if (current or 0) != expected_sequence:
                    raise StaleAppendError(event.worker_id, expected_sequence, current or 0)

                session.add(
                    TimeEntry(
                        time_entry_id=stored.event_id,
                        worker_id=stored.worker_id,
                        sequence=stored.sequence,
                        action=stored.action.value,
                        timestamp=stored.timestamp,
                        division=stored.division,
                        notes=stored.notes,
                    )
                )
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    raise StaleAppendError(event.worker_id, expected_sequence) from None
        except SQLAlchemyError as exc:
            logger.exception("Failed to append time entry for worker %s", event.worker_id)
            raise UpstreamError(
                "Time entry store unavailable",
                {"worker_id": str(event.worker_id)},
            ) from exc
        return stored

    async def query(
        self,
        worker_id: UUID,
        time_range: TimeRange | None = None,
    ) -> list[ClockEvent]:
        stmt = select(TimeEntry).where(TimeEntry.worker_id == worker_id)
        if time_range is not None and time_range.start is not None:
            stmt = stmt.where(TimeEntry.timestamp >= time_range.start)
        if time_range is not None and time_range.end is not None:
            stmt = stmt.where(TimeEntry.timestamp < time_range.end)
        stmt = stmt.order_by(TimeEntry.timestamp.asc(), TimeEntry.sequence.asc())

        rows = await self._fetch(stmt, worker_id)
        return [self._to_event(row) for row in rows]

    async def query_last(self, worker_id: UUID, action: ClockAction) -> ClockEvent | None:
        stmt = (
            select(TimeEntry)
            .where(TimeEntry.worker_id == worker_id, TimeEntry.action == action.value)
            .order_by(TimeEntry.timestamp.desc(), TimeEntry.sequence.desc())
            .limit(1)
        )
        rows = await self._fetch(stmt, worker_id)
        return self._to_event(rows[0]) if rows else None

    async def latest(self, worker_id: UUID) -> ClockEvent | None:
        stmt = (
            select(TimeEntry)
            .where(TimeEntry.worker_id == worker_id)
            .order_by(TimeEntry.sequence.desc())
            .limit(1)
        )
        rows = await self._fetch(stmt, worker_id)
        return self._to_event(rows[0]) if rows else None

    async def _fetch(self, stmt, worker_id: UUID) -> list[TimeEntry]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Failed to read time entries for worker %s", worker_id)
            raise UpstreamError(
                "Time entry store unavailable",
                {"worker_id": str(worker_id)},
            ) from exc

    @staticmethod
    def _to_event(row: TimeEntry) -> ClockEvent:
        return ClockEvent(
            worker_id=row.worker_id,
            action=ClockAction(row.action),
            timestamp=ensure_utc(row.timestamp),
            sequence=row.sequence,
            event_id=row.time_entry_id,
            division=row.division,
            notes=row.notes,
        )
