"""Payroll run preview endpoint."""

from fastapi import APIRouter

from timeclock_engine.api.dependencies import AdjustmentLedgerDep, StaffId, WeeklyAccumulatorDep
from timeclock_engine.api.schemas import (
    ErrorResponse,
    PayrollPreviewRequest,
    PayrollPreviewResponse,
    WorkerPaymentResponse,
)
from timeclock_engine.calculators.types import EventPayment
from timeclock_engine.services.event_payments import InMemoryEventPaymentSource
from timeclock_engine.services.payroll_run_service import PayrollRunRequest, PayrollRunService

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


@router.post(
    "/preview",
    response_model=PayrollPreviewResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def preview_payroll_run(
    accumulator: WeeklyAccumulatorDep,
    ledger: AdjustmentLedgerDep,
    staff_id: StaffId,
    payload: PayrollPreviewRequest,
) -> PayrollPreviewResponse:
    """Compute payments for the given events without persisting anything.

    Rates, commissions and tips come from the request body; prior-week hours
    and adjustments are read from storage.
    """
    source = InMemoryEventPaymentSource()
    requests = []
    for event in payload.events:
        for worker in event.workers:
            source.set(
                event.work_event_id,
                worker.worker_id,
                EventPayment(
                    base_rate=worker.base_rate,
                    commission=worker.commission,
                    tips=worker.tips,
                    division=worker.division,
                ),
            )
        requests.append(
            PayrollRunRequest(
                work_event_id=event.work_event_id,
                reference_date=event.reference_date,
                worker_hours={w.worker_id: w.hours for w in event.workers},
                state=event.state,
                tip_pool=event.tip_pool,
                commission_pool=event.commission_pool,
            )
        )

    service = PayrollRunService(accumulator, ledger, source)
    result = await service.run(requests)

    return PayrollPreviewResponse(
        payments=[
            WorkerPaymentResponse(
                work_event_id=p.work_event_id,
                worker_id=p.worker_id,
                prior_week_hours=p.inputs.prior_week_hours,
                regular_hours=p.hours.regular,
                overtime_hours=p.hours.overtime,
                doubletime_hours=p.hours.doubletime,
                regular_pay=p.summary.regular_pay,
                overtime_pay=p.summary.overtime_pay,
                doubletime_pay=p.summary.doubletime_pay,
                commission=p.summary.commission,
                tips=p.summary.tips,
                adjustment=p.summary.adjustment,
                total_pay=p.summary.total_pay,
            )
            for p in result.payments
        ],
        total_pay=result.total_pay,
        inputs_fingerprint=result.inputs_fingerprint,
    )
