"""Time entry API endpoints: clock in/out, meal breaks, listing."""

from datetime import date, datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Query, status

from timeclock_engine.api.dependencies import ClockServiceDep, WorkerId
from timeclock_engine.api.schemas import (
    ClockActionRequest,
    ClockEventRequest,
    ErrorResponse,
    OpenEntryResponse,
    WorkIntervalResponse,
)
from timeclock_engine.calculators.types import ClockAction, start_of_day

router = APIRouter(prefix="/time-entries", tags=["time-entries"])

ERROR_RESPONSES = {401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


def _fields(payload: ClockActionRequest | None) -> dict[str, str | None]:
    if payload is None:
        return {"notes": None, "division": None}
    return {"notes": payload.notes, "division": payload.division}


# ============================================================================
# Work sessions
# ============================================================================


@router.post(
    "",
    response_model=WorkIntervalResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def clock_in(
    service: ClockServiceDep,
    worker_id: WorkerId,
    payload: ClockActionRequest | None = None,
) -> WorkIntervalResponse:
    """Clock in. Rejected with 409 while a session is open."""
    interval = await service.clock_in(worker_id, **_fields(payload))
    return WorkIntervalResponse.from_interval(interval)


@router.patch(
    "",
    response_model=WorkIntervalResponse,
    responses=ERROR_RESPONSES,
)
async def clock_out(
    service: ClockServiceDep,
    worker_id: WorkerId,
    payload: ClockActionRequest | None = None,
) -> WorkIntervalResponse:
    """Clock out. Rejected with 409 when no session is open."""
    interval = await service.clock_out(worker_id, **_fields(payload))
    return WorkIntervalResponse.from_interval(interval)


@router.get("/open", response_model=OpenEntryResponse)
async def get_open_entry(
    service: ClockServiceDep,
    worker_id: WorkerId,
) -> OpenEntryResponse:
    """Return the worker's open session, if any."""
    interval = await service.open_session(worker_id)
    if interval is None:
        return OpenEntryResponse(entry=None)
    return OpenEntryResponse(entry=WorkIntervalResponse.from_interval(interval))


@router.get("", response_model=list[WorkIntervalResponse])
async def list_entries(
    service: ClockServiceDep,
    worker_id: WorkerId,
    since: Annotated[date | None, Query()] = None,
) -> list[WorkIntervalResponse]:
    """List work intervals since a date (default today, UTC), newest first."""
    since_day = since or datetime.now(timezone.utc).date()
    intervals = await service.list_intervals(worker_id, start_of_day(since_day))
    return [WorkIntervalResponse.from_interval(i) for i in intervals]


@router.post(
    "/actions",
    response_model=WorkIntervalResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def record_action(
    service: ClockServiceDep,
    worker_id: WorkerId,
    payload: ClockEventRequest,
) -> WorkIntervalResponse:
    """Record any clock action, named by the `action` field."""
    handlers = {
        ClockAction.CLOCK_IN: service.clock_in,
        ClockAction.CLOCK_OUT: service.clock_out,
        ClockAction.MEAL_START: service.start_meal,
        ClockAction.MEAL_END: service.end_meal,
    }
    interval = await handlers[payload.action](worker_id, **_fields(payload))
    return WorkIntervalResponse.from_interval(interval)


# ============================================================================
# Meal breaks
# ============================================================================


@router.post(
    "/meal",
    response_model=WorkIntervalResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def start_meal(
    service: ClockServiceDep,
    worker_id: WorkerId,
    payload: ClockActionRequest | None = None,
) -> WorkIntervalResponse:
    """Start a meal break inside the open session."""
    interval = await service.start_meal(worker_id, **_fields(payload))
    return WorkIntervalResponse.from_interval(interval)


@router.patch(
    "/meal",
    response_model=WorkIntervalResponse,
    responses=ERROR_RESPONSES,
)
async def end_meal(
    service: ClockServiceDep,
    worker_id: WorkerId,
    payload: ClockActionRequest | None = None,
) -> WorkIntervalResponse:
    """End the current meal break."""
    interval = await service.end_meal(worker_id, **_fields(payload))
    return WorkIntervalResponse.from_interval(interval)


@router.get("/meal/open", response_model=OpenEntryResponse)
async def get_open_meal(
    service: ClockServiceDep,
    worker_id: WorkerId,
) -> OpenEntryResponse:
    """Return the worker's open meal break, if any."""
    interval = await service.open_meal(worker_id)
    if interval is None:
        return OpenEntryResponse(entry=None)
    return OpenEntryResponse(entry=WorkIntervalResponse.from_interval(interval))
