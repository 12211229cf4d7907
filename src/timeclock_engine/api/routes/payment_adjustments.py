"""Payment adjustment endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from timeclock_engine.api.dependencies import AdjustmentLedgerDep, StaffId
from timeclock_engine.api.schemas import (
    AdjustmentListResponse,
    AdjustmentResponse,
    AdjustmentUpsertRequest,
    AdjustmentUpsertResponse,
    ErrorResponse,
)
from timeclock_engine.errors import ValidationError
from timeclock_engine.services.adjustment_ledger import AdjustmentRecord, to_adjustment_map

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment-adjustments", tags=["payment-adjustments"])


def parse_event_ids(raw: str) -> list[UUID]:
    """Parse a comma-separated list of work event ids."""
    event_ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            event_ids.append(UUID(part))
        except ValueError:
            raise ValidationError("Invalid work event id", {"event_id": part}) from None
    if not event_ids:
        raise ValidationError("event_ids must name at least one work event")
    return event_ids


@router.get(
    "",
    response_model=AdjustmentListResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def list_adjustments(
    ledger: AdjustmentLedgerDep,
    staff_id: StaffId,
    event_ids: Annotated[str, Query(description="Comma-separated work event ids")],
) -> AdjustmentListResponse:
    """Fetch adjustments for the given work events. Absent means zero."""
    records = await ledger.fetch_records(parse_event_ids(event_ids))
    return AdjustmentListResponse(
        items=[AdjustmentResponse.model_validate(r) for r in records],
        adjustments=to_adjustment_map(records),
    )


@router.post(
    "",
    response_model=AdjustmentUpsertResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def upsert_adjustments(
    ledger: AdjustmentLedgerDep,
    staff_id: StaffId,
    payload: AdjustmentUpsertRequest,
) -> AdjustmentUpsertResponse:
    """Save adjustments; a zero amount removes the stored adjustment."""
    result = await ledger.upsert_many(
        [
            AdjustmentRecord(
                work_event_id=item.work_event_id,
                worker_id=item.worker_id,
                amount=item.amount,
                note=item.note,
                updated_by=staff_id,
            )
            for item in payload.adjustments
        ]
    )
    logger.info(
        "Staff %s saved %d and removed %d payment adjustments",
        staff_id,
        result.saved,
        result.deleted,
    )
    return AdjustmentUpsertResponse(saved=result.saved, deleted=result.deleted)
