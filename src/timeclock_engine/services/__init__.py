"""Timeclock engine services."""

from timeclock_engine.services.adjustment_ledger import (
    AdjustmentLedger,
    AdjustmentRecord,
    InMemoryAdjustmentLedger,
    SqlAdjustmentLedger,
)
from timeclock_engine.services.clock_service import ClockService
from timeclock_engine.services.event_payments import EventPaymentSource, InMemoryEventPaymentSource
from timeclock_engine.services.event_store import (
    EventStore,
    InMemoryEventStore,
    SqlEventStore,
    StaleAppendError,
)
from timeclock_engine.services.payroll_run_service import (
    PayrollRunRequest,
    PayrollRunResult,
    PayrollRunService,
)
from timeclock_engine.services.weekly_accumulator import (
    AccumulatorConfig,
    WeeklyAccumulator,
    WeeklyHoursRequest,
    WeeklyHoursResult,
)

__all__ = [
    "AccumulatorConfig",
    "AdjustmentLedger",
    "AdjustmentRecord",
    "ClockService",
    "EventPaymentSource",
    "EventStore",
    "InMemoryAdjustmentLedger",
    "InMemoryEventPaymentSource",
    "InMemoryEventStore",
    "PayrollRunRequest",
    "PayrollRunResult",
    "PayrollRunService",
    "SqlAdjustmentLedger",
    "SqlEventStore",
    "StaleAppendError",
    "WeeklyAccumulator",
    "WeeklyHoursRequest",
    "WeeklyHoursResult",
]
