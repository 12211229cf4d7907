"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from timeclock_engine.calculators.types import ClockAction, WorkInterval


def _strip_time(value: Any) -> Any:
    """Accept full ISO timestamps where a calendar date is expected."""
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


# ============================================================================
# Time entry schemas
# ============================================================================


class ClockActionRequest(BaseModel):
    """Schema for clock in/out and meal start/end."""

    notes: str | None = Field(default=None, max_length=1000)
    division: str | None = Field(default=None, max_length=100)


class ClockEventRequest(ClockActionRequest):
    """Schema for a clock action named in the body."""

    action: ClockAction


class WorkIntervalResponse(BaseModel):
    """Schema for a work interval (or meal break)."""

    id: UUID | None = None
    worker_id: UUID
    started_at: datetime
    ended_at: datetime | None = None
    hours: Decimal | None = None
    is_open: bool
    notes: str | None = None

    @classmethod
    def from_interval(cls, interval: WorkInterval) -> "WorkIntervalResponse":
        return cls(
            id=interval.source_event_ids[0] if interval.source_event_ids else None,
            worker_id=interval.worker_id,
            started_at=interval.started_at,
            ended_at=interval.ended_at,
            hours=None if interval.is_open else interval.hours,
            is_open=interval.is_open,
            notes=interval.notes,
        )


class OpenEntryResponse(BaseModel):
    """Schema for the open-session / open-meal poll."""

    entry: WorkIntervalResponse | None = None


# ============================================================================
# Weekly hours schemas
# ============================================================================


class WeeklyHoursQuery(BaseModel):
    """One work event and the workers to accumulate."""

    work_event_id: UUID
    reference_date: date
    worker_ids: list[UUID] = Field(default_factory=list)

    @field_validator("reference_date", mode="before")
    @classmethod
    def strip_reference_time(cls, value: Any) -> Any:
        return _strip_time(value)


class WeeklyHoursBatchRequest(BaseModel):
    """Schema for a batch weekly hours query."""

    queries: list[WeeklyHoursQuery] = Field(default_factory=list)


class WeeklyHoursEntry(BaseModel):
    """Prior-week hours for one (work event, worker) pair."""

    work_event_id: UUID
    worker_id: UUID
    week_anchor: date
    cutoff_instant: datetime
    accumulated_hours: Decimal


class WeeklyHoursResponse(BaseModel):
    """Schema for the batch weekly hours response."""

    hours: dict[UUID, dict[UUID, Decimal]]
    entries: list[WeeklyHoursEntry]
    degraded_workers: dict[UUID, list[UUID]] = Field(default_factory=dict)


# ============================================================================
# Payment adjustment schemas
# ============================================================================


class AdjustmentItem(BaseModel):
    """A single adjustment to upsert. Zero deletes."""

    work_event_id: UUID
    worker_id: UUID
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    note: str | None = Field(default=None, max_length=500)


class AdjustmentUpsertRequest(BaseModel):
    """Schema for upserting adjustments."""

    adjustments: list[AdjustmentItem] = Field(min_length=1)


class AdjustmentUpsertResponse(BaseModel):
    """Schema for the upsert result."""

    saved: int
    deleted: int


class AdjustmentResponse(BaseModel):
    """Schema for a stored adjustment."""

    model_config = ConfigDict(from_attributes=True)

    work_event_id: UUID
    worker_id: UUID
    amount: Decimal
    note: str | None = None
    updated_by: UUID | None = None
    updated_at: datetime


class AdjustmentListResponse(BaseModel):
    """Schema for fetched adjustments."""

    items: list[AdjustmentResponse]
    adjustments: dict[UUID, dict[UUID, Decimal]]


# ============================================================================
# Payroll run schemas
# ============================================================================


class WorkerPaymentInput(BaseModel):
    """Hours and payment figures for one worker on an event."""

    worker_id: UUID
    hours: Decimal = Field(ge=0)
    base_rate: Decimal = Field(ge=0)
    commission: Decimal = Field(default=Decimal("0"), ge=0)
    tips: Decimal = Field(default=Decimal("0"), ge=0)
    division: str | None = None


class PayrollEventInput(BaseModel):
    """One work event in a payroll preview."""

    work_event_id: UUID
    reference_date: date
    state: str | None = Field(default=None, max_length=2)
    workers: list[WorkerPaymentInput] = Field(default_factory=list)
    tip_pool: Decimal | None = Field(default=None, ge=0)
    commission_pool: Decimal | None = Field(default=None, ge=0)

    @field_validator("reference_date", mode="before")
    @classmethod
    def strip_reference_time(cls, value: Any) -> Any:
        return _strip_time(value)


class PayrollPreviewRequest(BaseModel):
    """Schema for a payroll run preview."""

    events: list[PayrollEventInput] = Field(min_length=1)


class WorkerPaymentResponse(BaseModel):
    """Computed payment for one worker on one event."""

    work_event_id: UUID
    worker_id: UUID
    prior_week_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    doubletime_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    doubletime_pay: Decimal
    commission: Decimal
    tips: Decimal
    adjustment: Decimal
    total_pay: Decimal


class PayrollPreviewResponse(BaseModel):
    """Schema for payroll run preview response."""

    payments: list[WorkerPaymentResponse]
    total_pay: Decimal
    inputs_fingerprint: str


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
