"""Batch prior-week hours endpoint."""

import logging

from fastapi import APIRouter

from timeclock_engine.api.dependencies import StaffId, WeeklyAccumulatorDep
from timeclock_engine.api.schemas import (
    ErrorResponse,
    WeeklyHoursBatchRequest,
    WeeklyHoursEntry,
    WeeklyHoursResponse,
)
from timeclock_engine.services.weekly_accumulator import WeeklyHoursRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weekly-hours", tags=["weekly-hours"])


@router.post(
    "",
    response_model=WeeklyHoursResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def weekly_hours(
    accumulator: WeeklyAccumulatorDep,
    staff_id: StaffId,
    payload: WeeklyHoursBatchRequest,
) -> WeeklyHoursResponse:
    """Hours each worker worked earlier in the week of each work event."""
    requests = [
        WeeklyHoursRequest(
            work_event_id=query.work_event_id,
            reference_date=query.reference_date,
            worker_ids=tuple(query.worker_ids),
        )
        for query in payload.queries
    ]
    result = await accumulator.accumulate(requests)
    logger.info(
        "Weekly hours for %d events requested by %s (%d store queries)",
        len(requests),
        staff_id,
        result.queries_issued,
    )

    entries = [
        WeeklyHoursEntry(
            work_event_id=work_event_id,
            worker_id=summary.worker_id,
            week_anchor=summary.week_anchor,
            cutoff_instant=summary.cutoff_instant,
            accumulated_hours=summary.accumulated_hours,
        )
        for work_event_id, summaries in result.summaries.items()
        for summary in summaries
    ]
    return WeeklyHoursResponse(
        hours=result.hours,
        entries=entries,
        degraded_workers=result.degraded_workers,
    )
