"""Clock event (time entry) model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from timeclock_engine.models.base import Base, TimestampMixin


class TimeEntry(Base, TimestampMixin):
    """Append-only clock action.

    Rows are never updated or deleted. `sequence` is the per-worker insertion
    order; the unique (worker_id, sequence) constraint makes a stale append
    fail instead of interleaving two writers.
    """

    __tablename__ = "time_entry"

    time_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    division: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("worker_id", "sequence", name="time_entry_worker_sequence_unique"),
        CheckConstraint(
            "action IN ('clock_in', 'clock_out', 'meal_start', 'meal_end')",
            name="time_entry_action_check",
        ),
        CheckConstraint("sequence > 0", name="time_entry_sequence_positive"),
        Index("time_entry_worker_action_ts_idx", "worker_id", "action", "timestamp"),
        Index("time_entry_worker_ts_idx", "worker_id", "timestamp"),
    )
