"""Clock actions with optimistic concurrency against the event store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from timeclock_engine.calculators.sessions import SessionReconstructor
from timeclock_engine.calculators.types import (
    ClockAction,
    ClockEvent,
    TimeRange,
    WorkInterval,
    ensure_utc,
)
from timeclock_engine.errors import ConflictError
from timeclock_engine.services.event_store import EventStore, StaleAppendError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClockService:
    """Accepts or rejects clock actions, then appends exactly one event.

    Every action is check-then-act: read the worker's latest events, decide,
    then append conditionally on the sequence observed during the read. If
    another device appended in between, the append fails and the action is
    rejected with ConflictError. Nothing is retried here.

    Rules:
    - clock_in: rejected while a session is open
    - clock_out: rejected when no session is open
    - meal_start: only directly after clock_in or meal_end
    - meal_end: only directly after meal_start
    """

    def __init__(self, store: EventStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    async def clock_in(
        self,
        worker_id: UUID,
        notes: str | None = None,
        division: str | None = None,
    ) -> WorkInterval:
        """Open a new work session."""
        expected = await self._current_sequence(worker_id)
        if await self.open_session(worker_id) is not None:
            raise ConflictError(
                "You already have an open time entry.",
                {"worker_id": str(worker_id)},
            )

        event = await self._append(worker_id, ClockAction.CLOCK_IN, expected, notes, division)
        logger.info("Worker %s clocked in (entry %s)", worker_id, event.event_id)
        return WorkInterval(
            worker_id=worker_id,
            started_at=event.timestamp,
            ended_at=None,
            source_event_ids=(event.event_id,),
            notes=event.notes,
        )

    async def clock_out(
        self,
        worker_id: UUID,
        notes: str | None = None,
        division: str | None = None,
    ) -> WorkInterval:
        """Close the worker's open session."""
        expected = await self._current_sequence(worker_id)
        opened = await self.open_session(worker_id)
        if opened is None:
            raise ConflictError(
                "No open time entry to close.",
                {"worker_id": str(worker_id)},
            )

        event = await self._append(worker_id, ClockAction.CLOCK_OUT, expected, notes, division)
        logger.info("Worker %s clocked out (entry %s)", worker_id, event.event_id)
        return WorkInterval(
            worker_id=worker_id,
            started_at=opened.started_at,
            ended_at=event.timestamp,
            source_event_ids=(*opened.source_event_ids, event.event_id),
            notes=notes,
        )

    async def start_meal(
        self,
        worker_id: UUID,
        notes: str | None = None,
        division: str | None = None,
    ) -> WorkInterval:
        """Start a meal break inside an open session."""
        last = await self.store.latest(worker_id)
        if last is None or last.action not in (ClockAction.CLOCK_IN, ClockAction.MEAL_END):
            raise ConflictError(
                "You must be clocked in to start a meal.",
                {"worker_id": str(worker_id)},
            )

        event = await self._append(
            worker_id, ClockAction.MEAL_START, last.sequence, notes, division
        )
        logger.info("Worker %s started a meal (entry %s)", worker_id, event.event_id)
        return WorkInterval(
            worker_id=worker_id,
            started_at=event.timestamp,
            ended_at=None,
            source_event_ids=(event.event_id,),
            notes=event.notes,
        )

    async def end_meal(
        self,
        worker_id: UUID,
        notes: str | None = None,
        division: str | None = None,
    ) -> WorkInterval:
        """End the worker's current meal break."""
        last = await self.store.latest(worker_id)
        if last is None or last.action != ClockAction.MEAL_START:
            raise ConflictError("No open meal to end.", {"worker_id": str(worker_id)})

        event = await self._append(
            worker_id, ClockAction.MEAL_END, last.sequence, notes, division
        )
        logger.info("Worker %s ended a meal (entry %s)", worker_id, event.event_id)
        return WorkInterval(
            worker_id=worker_id,
            started_at=last.timestamp,
            ended_at=event.timestamp,
            source_event_ids=(last.event_id, event.event_id),
            notes=notes,
        )

    async def open_session(self, worker_id: UUID) -> WorkInterval | None:
        """The worker's open session, from the latest clock_in/clock_out only."""
        last_in = await self.store.query_last(worker_id, ClockAction.CLOCK_IN)
        last_out = await self.store.query_last(worker_id, ClockAction.CLOCK_OUT)
        if not SessionReconstructor.is_open(last_in, last_out) or last_in is None:
            return None
        return WorkInterval(
            worker_id=worker_id,
            started_at=last_in.timestamp,
            ended_at=None,
            source_event_ids=(last_in.event_id,),
            notes=last_in.notes,
        )

    async def open_meal(self, worker_id: UUID) -> WorkInterval | None:
        """The worker's open meal break, if the latest event started one."""
        last = await self.store.latest(worker_id)
        if last is None or last.action != ClockAction.MEAL_START:
            return None
        return WorkInterval(
            worker_id=worker_id,
            started_at=last.timestamp,
            ended_at=None,
            source_event_ids=(last.event_id,),
            notes=last.notes,
        )

    async def list_intervals(self, worker_id: UUID, since: datetime) -> list[WorkInterval]:
        """Work intervals starting from `since`, newest first."""
        events = await self.store.query(worker_id, TimeRange(start=ensure_utc(since)))
        reconstruction = SessionReconstructor.reconstruct(events)
        return sorted(
            reconstruction.intervals,
            key=lambda interval: interval.started_at,
            reverse=True,
        )

    async def _current_sequence(self, worker_id: UUID) -> int:
        last = await self.store.latest(worker_id)
        return last.sequence if last is not None else 0

    async def _append(
        self,
        worker_id: UUID,
        action: ClockAction,
        expected_sequence: int,
        notes: str | None,
        division: str | None,
    ) -> ClockEvent:
        event = ClockEvent(
            worker_id=worker_id,
            action=action,
            timestamp=self.clock(),
            division=division,
            notes=notes,
        )
        try:
            return await self.store.append(event, expected_sequence)
        except StaleAppendError as exc:
            logger.warning(
                "Rejected %s for worker %s: concurrent write (expected sequence %d)",
                action.value,
                worker_id,
                expected_sequence,
            )
            raise ConflictError(
                "Another clock action for this worker was recorded at the same time.",
                {"worker_id": str(worker_id), "action": action.value},
            ) from exc
