"""Type definitions for the hours and payment pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

HOURS_PRECISION = Decimal("0.0001")  # 4 decimal places for hour totals
MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)
ZERO = Decimal("0")


class ClockAction(str, Enum):
    """Actions recorded in the time-entry log."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    MEAL_START = "meal_start"
    MEAL_END = "meal_end"


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime.

    Naive datetimes are taken to already be in UTC (SQLite drops tzinfo).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    """Midnight UTC at the start of day."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def week_anchor(reference_date: date) -> date:
    """Monday of the ISO week containing reference_date."""
    return reference_date - timedelta(days=reference_date.weekday())


def duration_to_hours(duration: timedelta) -> Decimal:
    """Convert a duration to decimal hours using whole microseconds."""
    micros = (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds
    return (Decimal(micros) / MICROSECONDS_PER_HOUR).quantize(
        HOURS_PRECISION, rounding=ROUND_HALF_UP
    )


@dataclass(frozen=True)
class ClockEvent:
    """An immutable entry in a worker's time-entry log."""

    worker_id: UUID
    action: ClockAction
    timestamp: datetime
    sequence: int = 0  # Per-worker insertion order, assigned by the store
    event_id: UUID = field(default_factory=uuid4)
    division: str | None = None
    notes: str | None = None

    def sort_key(self) -> tuple[datetime, int]:
        return (self.timestamp, self.sequence)


@dataclass(frozen=True)
class TimeRange:
    """Half-open instant range [start, end). Either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("TimeRange end must not precede start")

    def contains(self, instant: datetime) -> bool:
        if self.start is not None and instant < self.start:
            return False
        if self.end is not None and instant >= self.end:
            return False
        return True


@dataclass(frozen=True)
class WorkInterval:
    """A work span derived from a ClockIn/ClockOut pair.

    ended_at is None while the session is still open.
    """

    worker_id: UUID
    started_at: datetime
    ended_at: datetime | None = None
    source_event_ids: tuple[UUID, ...] = ()
    notes: str | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def duration(self) -> timedelta | None:
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    @property
    def hours(self) -> Decimal:
        """Closed duration in hours; open intervals count as zero."""
        duration = self.duration
        if duration is None:
            return ZERO
        return duration_to_hours(duration)


@dataclass(frozen=True)
class WeeklyHourSummary:
    """Hours a worker accumulated earlier in the same week."""

    worker_id: UUID
    week_anchor: date
    cutoff_instant: datetime
    accumulated_hours: Decimal


@dataclass(frozen=True)
class HourBreakdown:
    """Hours split into pay tiers."""

    regular: Decimal = ZERO
    overtime: Decimal = ZERO
    doubletime: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.doubletime


@dataclass(frozen=True)
class EventPayment:
    """Per-worker figures supplied by the event payment collaborator."""

    base_rate: Decimal
    commission: Decimal = ZERO
    tips: Decimal = ZERO
    division: str | None = None


@dataclass(frozen=True)
class PaymentInputs:
    """Everything the calculator needs for one (work event, worker) pair."""

    hours: HourBreakdown
    base_rate: Decimal
    commission: Decimal = ZERO
    tips: Decimal = ZERO
    adjustment: Decimal = ZERO


@dataclass(frozen=True)
class PaymentSummary:
    """Final payment figures for one worker on one work event."""

    regular_pay: Decimal
    overtime_pay: Decimal
    doubletime_pay: Decimal
    commission: Decimal
    tips: Decimal
    adjustment: Decimal
    total_pay: Decimal

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "regular_pay": str(self.regular_pay),
            "overtime_pay": str(self.overtime_pay),
            "doubletime_pay": str(self.doubletime_pay),
            "commission": str(self.commission),
            "tips": str(self.tips),
            "adjustment": str(self.adjustment),
            "total_pay": str(self.total_pay),
        }
