"""ORM models."""

from timeclock_engine.models.adjustment import PaymentAdjustment
from timeclock_engine.models.base import Base, TimestampMixin
from timeclock_engine.models.time_entry import TimeEntry

__all__ = [
    "Base",
    "PaymentAdjustment",
    "TimeEntry",
    "TimestampMixin",
]
