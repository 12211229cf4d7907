"""Health, readiness and liveness endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeclock_engine.api.dependencies import AppSettings, SessionFactory
from timeclock_engine.models import PaymentAdjustment, TimeEntry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Engine version plus the state of each backing table."""

    status: str
    version: str
    timestamp: datetime
    database: str
    time_entries: str
    payment_adjustments: str
    zero_fill_on_error: bool


async def _table_status(
    session_factory: async_sessionmaker[AsyncSession], model: type
) -> str:
    """Read one row from the table; any storage failure reads as unhealthy."""
    try:
        async with session_factory() as session:
            await session.execute(select(model).limit(1))
    except (SQLAlchemyError, OSError):
        logger.warning("Health check failed for %s", model.__tablename__, exc_info=True)
        return "unhealthy"
    return "healthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(
    session_factory: SessionFactory,
    settings: AppSettings,
) -> HealthResponse:
    """Report the engine version and whether the event log and ledger are readable."""
    time_entries = await _table_status(session_factory, TimeEntry)
    adjustments = await _table_status(session_factory, PaymentAdjustment)
    database = "healthy" if "healthy" in (time_entries, adjustments) else "unhealthy"

    return HealthResponse(
        status="healthy" if time_entries == adjustments == "healthy" else "degraded",
        version=settings.engine_version,
        timestamp=datetime.now(timezone.utc),
        database=database,
        time_entries=time_entries,
        payment_adjustments=adjustments,
        zero_fill_on_error=settings.weekly_zero_fill_on_error,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(
    session_factory: SessionFactory, response: Response
) -> dict[str, str]:
    """Ready once clock actions can be read from the event log."""
    if await _table_status(session_factory, TimeEntry) != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready"}
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
