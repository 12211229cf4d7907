"""Tests for the weekly accumulator."""

import asyncio
import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from timeclock_engine.calculators.types import ClockAction
from timeclock_engine.errors import UpstreamError, ValidationError
from timeclock_engine.services.event_store import InMemoryEventStore
from timeclock_engine.services.weekly_accumulator import (
    AccumulatorConfig,
    WeeklyAccumulator,
    WeeklyHoursRequest,
)

from tests.conftest import seed_events, utc

IN = ClockAction.CLOCK_IN
OUT = ClockAction.CLOCK_OUT


class SpyStore(InMemoryEventStore):
    """Counts queries and tracks peak concurrency."""

    def __init__(self, failing=()):
        super().__init__()
        self.query_calls = 0
        self.active = 0
        self.peak = 0
        self.failing = set(failing)

    async def query(self, worker_id, time_range=None):
        self.query_calls += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0)
            if worker_id in self.failing:
                raise UpstreamError("Time entry store unavailable")
            return await super().query(worker_id, time_range)
        finally:
            self.active -= 1


class TestWeeklyHoursRequest:
    """Test request validation and window math."""

    def test_window_for_wednesday(self):
        request = WeeklyHoursRequest(uuid4(), date(2025, 1, 15), (uuid4(),))

        assert request.week_anchor == date(2025, 1, 13)
        assert request.window.start == utc(2025, 1, 13)
        assert request.window.end == utc(2025, 1, 15)

    def test_sunday_anchors_to_previous_monday(self):
        request = WeeklyHoursRequest(uuid4(), date(2025, 1, 19))

        assert request.week_anchor == date(2025, 1, 13)

    def test_duplicate_workers_collapsed(self):
        worker = uuid4()

        request = WeeklyHoursRequest(uuid4(), date(2025, 1, 15), (worker, worker))

        assert request.worker_ids == (worker,)

    def test_unparsed_reference_date_rejected(self):
        with pytest.raises(ValidationError):
            WeeklyHoursRequest(uuid4(), "2025-01-15", ())

    def test_missing_event_id_rejected(self):
        with pytest.raises(ValidationError):
            WeeklyHoursRequest(None, date(2025, 1, 15), ())

    def test_config_validation(self):
        with pytest.raises(ValueError):
            AccumulatorConfig(max_concurrency=0)


class TestAccumulate:
    """Test prior-week hour accumulation."""

    async def test_reference_week_example(self):
        """Reference Wed 2025-01-15: only pairs closed inside [Mon, Wed) count."""
        store = SpyStore()
        worker = uuid4()
        await seed_events(
            store,
            worker,
            [
                # Previous week, outside the window
                (IN, utc(2025, 1, 12, 9, 0)),
                (OUT, utc(2025, 1, 12, 12, 0)),
                # Monday 10:00-12:00
                (IN, utc(2025, 1, 13, 10, 0)),
                (OUT, utc(2025, 1, 13, 12, 0)),
                # Tuesday 09:00-17:00, fully inside
                (IN, utc(2025, 1, 14, 9, 0)),
                (OUT, utc(2025, 1, 14, 17, 0)),
                # Crosses the cutoff, excluded entirely
                (IN, utc(2025, 1, 14, 22, 0)),
                (OUT, utc(2025, 1, 15, 2, 0)),
            ],
        )
        event_id = uuid4()

        result = await WeeklyAccumulator(store).accumulate(
            [WeeklyHoursRequest(event_id, date(2025, 1, 15), (worker,))]
        )

        assert result.hours_for(event_id, worker) == Decimal("10")
        assert result.queries_issued == 1
        assert result.degraded_workers == {}
        [summary] = result.summaries[event_id]
        assert summary.week_anchor == date(2025, 1, 13)
        assert summary.cutoff_instant == utc(2025, 1, 15)
        assert summary.accumulated_hours == Decimal("10")

    async def test_monday_reference_is_zero_without_queries(self):
        store = SpyStore()
        workers = (uuid4(), uuid4())
        await seed_events(
            store,
            workers[0],
            [(IN, utc(2025, 1, 12, 9, 0)), (OUT, utc(2025, 1, 12, 17, 0))],
        )
        event_id = uuid4()

        result = await WeeklyAccumulator(store).accumulate(
            [WeeklyHoursRequest(event_id, date(2025, 1, 13), workers)]
        )

        assert store.query_calls == 0
        assert result.queries_issued == 0
        assert result.hours[event_id] == {workers[0]: Decimal("0"), workers[1]: Decimal("0")}

    async def test_empty_worker_list(self):
        event_id = uuid4()

        result = await WeeklyAccumulator(SpyStore()).accumulate(
            [WeeklyHoursRequest(event_id, date(2025, 1, 15), ())]
        )

        assert result.hours == {event_id: {}}

    async def test_missing_combination_defaults_to_zero(self):
        result = await WeeklyAccumulator(SpyStore()).accumulate([])

        assert result.hours_for(uuid4(), uuid4()) == Decimal("0")

    async def test_batch_across_events(self):
        store = SpyStore()
        worker = uuid4()
        await seed_events(
            store,
            worker,
            [(IN, utc(2025, 1, 13, 9, 0)), (OUT, utc(2025, 1, 13, 13, 0))],
        )
        tuesday_event, friday_event = uuid4(), uuid4()

        result = await WeeklyAccumulator(store).accumulate(
            [
                WeeklyHoursRequest(tuesday_event, date(2025, 1, 14), (worker,)),
                WeeklyHoursRequest(friday_event, date(2025, 1, 17), (worker,)),
            ]
        )

        assert result.hours_for(tuesday_event, worker) == Decimal("4")
        assert result.hours_for(friday_event, worker) == Decimal("4")
        assert store.query_calls == 2

    async def test_concurrency_is_bounded(self):
        store = SpyStore()
        workers = tuple(uuid4() for _ in range(6))

        await WeeklyAccumulator(store, AccumulatorConfig(max_concurrency=2)).accumulate(
            [WeeklyHoursRequest(uuid4(), date(2025, 1, 16), workers)]
        )

        assert store.query_calls == 6
        assert store.peak <= 2


class TestUpstreamFailures:
    """Test abort-by-default and opt-in zero-fill."""

    async def test_aborts_by_default(self):
        failing = uuid4()
        store = SpyStore(failing={failing})

        with pytest.raises(UpstreamError):
            await WeeklyAccumulator(store).accumulate(
                [WeeklyHoursRequest(uuid4(), date(2025, 1, 15), (uuid4(), failing))]
            )

    async def test_first_failure_cancels_pending_queries(self):
        workers = tuple(uuid4() for _ in range(5))
        store = SpyStore(failing=set(workers))
        accumulator = WeeklyAccumulator(store, AccumulatorConfig(max_concurrency=1))

        with pytest.raises(UpstreamError):
            await accumulator.accumulate(
                [WeeklyHoursRequest(uuid4(), date(2025, 1, 15), workers)]
            )
        calls_at_failure = store.query_calls
        await asyncio.sleep(0.05)

        assert calls_at_failure < len(workers)
        assert store.query_calls == calls_at_failure
        assert store.active == 0

    async def test_zero_fill_reports_degraded_workers(self, caplog):
        healthy, failing = uuid4(), uuid4()
        store = SpyStore(failing={failing})
        await seed_events(
            store,
            healthy,
            [(IN, utc(2025, 1, 14, 9, 0)), (OUT, utc(2025, 1, 14, 15, 0))],
        )
        event_id = uuid4()
        accumulator = WeeklyAccumulator(store, AccumulatorConfig(zero_fill_on_error=True))

        with caplog.at_level(logging.WARNING):
            result = await accumulator.accumulate(
                [WeeklyHoursRequest(event_id, date(2025, 1, 15), (healthy, failing))]
            )

        assert result.hours_for(event_id, healthy) == Decimal("6")
        assert result.hours_for(event_id, failing) == Decimal("0")
        assert result.degraded_workers == {event_id: [failing]}
        assert any("Zero-filling" in record.getMessage() for record in caplog.records)
