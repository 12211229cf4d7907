"""FastAPI dependencies for dependency injection."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeclock_engine.config import Settings, get_settings
from timeclock_engine.database import init_db
from timeclock_engine.errors import AuthError
from timeclock_engine.services.adjustment_ledger import AdjustmentLedger, SqlAdjustmentLedger
from timeclock_engine.services.clock_service import ClockService
from timeclock_engine.services.event_store import EventStore, SqlEventStore
from timeclock_engine.services.weekly_accumulator import AccumulatorConfig, WeeklyAccumulator


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the process-wide session factory."""
    _, factory = init_db()
    return factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def get_event_store(session_factory: SessionFactory) -> EventStore:
    return SqlEventStore(session_factory)


def get_adjustment_ledger(session_factory: SessionFactory) -> AdjustmentLedger:
    return SqlAdjustmentLedger(session_factory)


EventStoreDep = Annotated[EventStore, Depends(get_event_store)]


def get_clock_service(store: EventStoreDep) -> ClockService:
    return ClockService(store)


def get_weekly_accumulator(store: EventStoreDep) -> WeeklyAccumulator:
    return WeeklyAccumulator(store, AccumulatorConfig.from_settings(get_settings()))


def _parse_identity(value: str | None, header: str) -> UUID:
    if not value:
        raise AuthError(f"{header} header is required")
    try:
        return UUID(value)
    except ValueError:
        raise AuthError(f"Invalid {header} format") from None


async def get_worker_id(
    x_worker_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the authenticated worker from the gateway header."""
    return _parse_identity(x_worker_id, "X-Worker-ID")


async def get_staff_id(
    x_staff_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the authenticated staff member from the gateway header."""
    return _parse_identity(x_staff_id, "X-Staff-ID")


# Type aliases for cleaner dependency injection
ClockServiceDep = Annotated[ClockService, Depends(get_clock_service)]
AdjustmentLedgerDep = Annotated[AdjustmentLedger, Depends(get_adjustment_ledger)]
WeeklyAccumulatorDep = Annotated[WeeklyAccumulator, Depends(get_weekly_accumulator)]
WorkerId = Annotated[UUID, Depends(get_worker_id)]
StaffId = Annotated[UUID, Depends(get_staff_id)]
AppSettings = Annotated[Settings, Depends(get_settings)]
