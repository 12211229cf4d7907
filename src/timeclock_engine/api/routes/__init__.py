"""API routes."""

from timeclock_engine.api.routes.health import router as health_router
from timeclock_engine.api.routes.payment_adjustments import router as payment_adjustments_router
from timeclock_engine.api.routes.payroll_runs import router as payroll_runs_router
from timeclock_engine.api.routes.time_entries import router as time_entries_router
from timeclock_engine.api.routes.weekly_hours import router as weekly_hours_router

__all__ = [
    "health_router",
    "payment_adjustments_router",
    "payroll_runs_router",
    "time_entries_router",
    "weekly_hours_router",
]
