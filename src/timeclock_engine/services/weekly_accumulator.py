"""Prior-week hours accumulation for overtime classification."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from timeclock_engine.calculators.sessions import SessionReconstructor
from timeclock_engine.calculators.types import (
    ZERO,
    TimeRange,
    WeeklyHourSummary,
    start_of_day,
    week_anchor,
)
from timeclock_engine.config import Settings
from timeclock_engine.errors import UpstreamError, ValidationError
from timeclock_engine.services.event_store import EventStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccumulatorConfig:
    """
    Weekly accumulator configuration.

    Attributes:
        max_concurrency: Upper bound on concurrent event store queries.
        zero_fill_on_error: If True, a worker whose events cannot be read
            contributes zero hours and is reported in degraded_workers instead
            of failing the whole batch. Default False (fail in full).
    """

    max_concurrency: int = 8
    zero_fill_on_error: bool = False

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> AccumulatorConfig:
        return cls(
            max_concurrency=settings.weekly_query_concurrency,
            zero_fill_on_error=settings.weekly_zero_fill_on_error,
        )


@dataclass(frozen=True)
class WeeklyHoursRequest:
    """One work event and the workers whose prior-week hours are needed."""

    work_event_id: UUID
    reference_date: date
    worker_ids: tuple[UUID, ...] = ()

    def __post_init__(self) -> None:
        if self.work_event_id is None:
            raise ValidationError("work_event_id is required")
        if not isinstance(self.reference_date, date):
            raise ValidationError(
                "reference_date must be a date",
                {"work_event_id": str(self.work_event_id)},
            )
        # Collapse duplicates while keeping first-seen order
        object.__setattr__(self, "worker_ids", tuple(dict.fromkeys(self.worker_ids)))

    @property
    def week_anchor(self) -> date:
        return week_anchor(self.reference_date)

    @property
    def window(self) -> TimeRange:
        """[Monday 00:00Z, reference_date 00:00Z)"""
        return TimeRange(
            start=start_of_day(self.week_anchor),
            end=start_of_day(self.reference_date),
        )


@dataclass
class WeeklyHoursResult:
    """Accumulated hours per work event per worker."""

    hours: dict[UUID, dict[UUID, Decimal]] = field(default_factory=dict)
    summaries: dict[UUID, list[WeeklyHourSummary]] = field(default_factory=dict)
    degraded_workers: dict[UUID, list[UUID]] = field(default_factory=dict)
    queries_issued: int = 0

    def hours_for(self, work_event_id: UUID, worker_id: UUID) -> Decimal:
        """Hours for the pair; missing combinations are zero."""
        return self.hours.get(work_event_id, {}).get(worker_id, ZERO)


class WeeklyAccumulator:
    """Sums hours each worker already worked earlier in the event's week.

    For each request:
    - If reference_date is the Monday anchor, every worker gets zero and the
      store is not queried
    - Otherwise each worker's events in [anchor 00:00Z, reference 00:00Z) are
      replayed and closed intervals are summed

    Sessions that cross either window boundary are not split: only pairs
    fully closed inside the window count.

    Per-worker queries run concurrently, bounded by max_concurrency. Unless
    zero_fill_on_error is set, the first UpstreamError cancels every query
    still pending or waiting for a slot.
    """

    def __init__(self, store: EventStore, config: AccumulatorConfig | None = None):
        self.store = store
        self.config = config or AccumulatorConfig()

    async def accumulate(self, requests: Sequence[WeeklyHoursRequest]) -> WeeklyHoursResult:
        result = WeeklyHoursResult()
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        jobs: list[tuple[WeeklyHoursRequest, UUID]] = []
        for request in requests:
            event_hours = result.hours.setdefault(request.work_event_id, {})
            event_summaries = result.summaries.setdefault(request.work_event_id, [])
            if request.reference_date == request.week_anchor:
                for worker_id in request.worker_ids:
                    event_hours[worker_id] = ZERO
                    event_summaries.append(self._summary(request, worker_id, ZERO))
                continue
            jobs.extend((request, worker_id) for worker_id in request.worker_ids)

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self._worker_hours(semaphore, request, worker_id))
                    for request, worker_id in jobs
                ]
        except ExceptionGroup as failure:
            # First failure cancels the remaining queries; surface it unwrapped
            raise failure.exceptions[0] from None
        result.queries_issued = len(jobs)

        for (request, worker_id), task in zip(jobs, tasks):
            hours = task.result()
            if hours is None:
                result.degraded_workers.setdefault(request.work_event_id, []).append(worker_id)
                hours = ZERO
            result.hours[request.work_event_id][worker_id] = hours
            result.summaries[request.work_event_id].append(
                self._summary(request, worker_id, hours)
            )

        return result

    async def _worker_hours(
        self,
        semaphore: asyncio.Semaphore,
        request: WeeklyHoursRequest,
        worker_id: UUID,
    ) -> Decimal | None:
        window = request.window
        try:
            async with semaphore:
                events = await self.store.query(worker_id, window)
        except UpstreamError:
            if not self.config.zero_fill_on_error:
                raise
            logger.warning(
                "Zero-filling prior-week hours for worker %s on event %s: event store unavailable",
                worker_id,
                request.work_event_id,
            )
            return None

        return SessionReconstructor.reconstruct(events, window).closed_hours

    @staticmethod
    def _summary(request: WeeklyHoursRequest, worker_id: UUID, hours: Decimal) -> WeeklyHourSummary:
        return WeeklyHourSummary(
            worker_id=worker_id,
            week_anchor=request.week_anchor,
            cutoff_instant=start_of_day(request.reference_date),
            accumulated_hours=hours,
        )
