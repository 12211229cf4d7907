"""Payroll run service - snapshot read, then pure computation.

A run has two phases:
1. Read phase: prior-week hours, adjustments and event payment figures are
   read once and frozen into WorkerInputs snapshots
2. Compute phase: hours are classified and payments calculated from the
   snapshot only

The inputs fingerprint lets callers verify that a rerun saw the same inputs.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from timeclock_engine.calculators.distribution import prorate_tips, split_commission_pool
from timeclock_engine.calculators.hour_classifier import HourClassifier, TierPolicyRegistry
from timeclock_engine.calculators.payment_calculator import (
    EligibilityContext,
    PaymentCalculator,
    default_commission_policy,
)
from timeclock_engine.calculators.types import (
    ZERO,
    EventPayment,
    HourBreakdown,
    PaymentInputs,
    PaymentSummary,
)
from timeclock_engine.errors import UpstreamError, ValidationError
from timeclock_engine.services.adjustment_ledger import AdjustmentLedger
from timeclock_engine.services.event_payments import EventPaymentSource
from timeclock_engine.services.weekly_accumulator import WeeklyAccumulator, WeeklyHoursRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayrollRunRequest:
    """One work event to pay, with each worker's hours on that event.

    tip_pool / commission_pool, when given, replace the per-worker tips and
    commission from the event payment source with pool shares.
    """

    work_event_id: UUID
    reference_date: date
    worker_hours: Mapping[UUID, Decimal]
    state: str | None = None
    tip_pool: Decimal | None = None
    commission_pool: Decimal | None = None


@dataclass(frozen=True)
class WorkerInputs:
    """Frozen inputs for one (work event, worker) pair."""

    work_event_id: UUID
    worker_id: UUID
    state: str | None
    division: str | None
    event_hours: Decimal
    prior_week_hours: Decimal
    base_rate: Decimal
    commission: Decimal
    tips: Decimal
    adjustment: Decimal

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "work_event_id": str(self.work_event_id),
            "worker_id": str(self.worker_id),
            "state": self.state,
            "division": self.division,
            "event_hours": str(self.event_hours),
            "prior_week_hours": str(self.prior_week_hours),
            "base_rate": str(self.base_rate),
            "commission": str(self.commission),
            "tips": str(self.tips),
            "adjustment": str(self.adjustment),
        }


@dataclass(frozen=True)
class WorkerPayment:
    """Computed payment for one worker on one work event."""

    inputs: WorkerInputs
    hours: HourBreakdown
    summary: PaymentSummary

    @property
    def work_event_id(self) -> UUID:
        return self.inputs.work_event_id

    @property
    def worker_id(self) -> UUID:
        return self.inputs.worker_id


@dataclass
class PayrollRunResult:
    """Result of a payroll run."""

    payments: list[WorkerPayment] = field(default_factory=list)
    total_pay: Decimal = Decimal("0.00")
    inputs_fingerprint: str = ""

    def for_event(self, work_event_id: UUID) -> dict[UUID, PaymentSummary]:
        return {
            p.worker_id: p.summary for p in self.payments if p.work_event_id == work_event_id
        }


class PayrollRunService:
    """Computes payment summaries for a batch of work events."""

    def __init__(
        self,
        accumulator: WeeklyAccumulator,
        ledger: AdjustmentLedger,
        payment_source: EventPaymentSource,
        calculator: PaymentCalculator | None = None,
        tier_registry: TierPolicyRegistry | None = None,
    ):
        self.accumulator = accumulator
        self.ledger = ledger
        self.payment_source = payment_source
        self.calculator = calculator or PaymentCalculator(default_commission_policy)
        self.tier_registry = tier_registry or TierPolicyRegistry()

    async def run(self, requests: Sequence[PayrollRunRequest]) -> PayrollRunResult:
        snapshot = await self.snapshot(requests)

        payments: list[WorkerPayment] = []
        for inputs in snapshot:
            classifier = HourClassifier(self.tier_registry.policy_for(inputs.state))
            hours = classifier.classify(inputs.event_hours, inputs.prior_week_hours)
            summary = self.calculator.calculate(
                PaymentInputs(
                    hours=hours,
                    base_rate=inputs.base_rate,
                    commission=inputs.commission,
                    tips=inputs.tips,
                    adjustment=inputs.adjustment,
                ),
                self._context(inputs),
            )
            payments.append(WorkerPayment(inputs=inputs, hours=hours, summary=summary))

        total = sum((p.summary.total_pay for p in payments), Decimal("0.00"))
        result = PayrollRunResult(
            payments=payments,
            total_pay=total,
            inputs_fingerprint=self.fingerprint(snapshot),
        )
        logger.info(
            "Payroll run over %d events: %d payments, total %s",
            len(requests),
            len(payments),
            total,
        )
        return result

    async def snapshot(self, requests: Sequence[PayrollRunRequest]) -> tuple[WorkerInputs, ...]:
        """Read every input once and freeze it."""
        event_ids = list(dict.fromkeys(r.work_event_id for r in requests))
        if len(event_ids) != len(requests):
            raise ValidationError("Each work event may appear only once per run")

        weekly = await self.accumulator.accumulate(
            [
                WeeklyHoursRequest(
                    work_event_id=r.work_event_id,
                    reference_date=r.reference_date,
                    worker_ids=tuple(r.worker_hours),
                )
                for r in requests
            ]
        )
        if weekly.degraded_workers:
            raise UpstreamError(
                "Prior-week hours are incomplete; payroll run aborted",
                {
                    str(event_id): [str(w) for w in workers]
                    for event_id, workers in weekly.degraded_workers.items()
                },
            )

        adjustments = await self.ledger.fetch(event_ids)
        event_payments = await self.payment_source.fetch(event_ids)

        snapshot: list[WorkerInputs] = []
        for request in requests:
            figures = event_payments.get(request.work_event_id, {})
            missing = [str(w) for w in request.worker_hours if w not in figures]
            if missing:
                raise ValidationError(
                    "No payment record for workers on this event",
                    {"work_event_id": str(request.work_event_id), "worker_ids": missing},
                )

            tips, commissions = self._pool_shares(request, figures)
            event_adjustments = adjustments.get(request.work_event_id, {})
            for worker_id, event_hours in request.worker_hours.items():
                payment = figures[worker_id]
                snapshot.append(
                    WorkerInputs(
                        work_event_id=request.work_event_id,
                        worker_id=worker_id,
                        state=request.state,
                        division=payment.division,
                        event_hours=Decimal(event_hours),
                        prior_week_hours=weekly.hours_for(request.work_event_id, worker_id),
                        base_rate=payment.base_rate,
                        commission=commissions.get(worker_id, payment.commission),
                        tips=tips.get(worker_id, payment.tips),
                        adjustment=event_adjustments.get(worker_id, ZERO),
                    )
                )
        return tuple(snapshot)

    @staticmethod
    def fingerprint(snapshot: Sequence[WorkerInputs]) -> str:
        """Deterministic hash of the run inputs."""
        data = sorted(
            (inputs.to_canonical_dict() for inputs in snapshot),
            key=lambda d: (d["work_event_id"], d["worker_id"]),
        )
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def _pool_shares(
        self,
        request: PayrollRunRequest,
        figures: Mapping[UUID, EventPayment],
    ) -> tuple[dict[UUID, Decimal], dict[UUID, Decimal]]:
        tips: dict[UUID, Decimal] = {}
        commissions: dict[UUID, Decimal] = {}

        if request.tip_pool is not None:
            tips = prorate_tips(request.tip_pool, request.worker_hours)

        if request.commission_pool is not None:
            eligible = [
                worker_id
                for worker_id in request.worker_hours
                if self.calculator.commission_policy(
                    EligibilityContext(
                        work_event_id=request.work_event_id,
                        worker_id=worker_id,
                        division=figures[worker_id].division,
                        state=request.state,
                    )
                )
            ]
            shares = split_commission_pool(request.commission_pool, eligible)
            commissions = {w: shares.get(w, ZERO) for w in request.worker_hours}

        return tips, commissions

    @staticmethod
    def _context(inputs: WorkerInputs) -> EligibilityContext:
        return EligibilityContext(
            work_event_id=inputs.work_event_id,
            worker_id=inputs.worker_id,
            division=inputs.division,
            state=inputs.state,
        )
