"""Pure payment calculation for one worker on one work event."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal, localcontext
from uuid import UUID

from timeclock_engine.calculators.types import PaymentInputs, PaymentSummary
from timeclock_engine.errors import ValidationError

OVERTIME_MULTIPLIER = Decimal("1.5")
DOUBLETIME_MULTIPLIER = Decimal("2.0")
CENTS = Decimal("0.01")
MONEY_CONTEXT = Context(prec=34, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EligibilityContext:
    """Facts a commission policy may consult."""

    work_event_id: UUID | None = None
    worker_id: UUID | None = None
    division: str | None = None
    state: str | None = None


CommissionPolicy = Callable[[EligibilityContext], bool]


def always_eligible(context: EligibilityContext) -> bool:
    return True


def exclude_divisions(divisions: Iterable[str]) -> CommissionPolicy:
    """Build a policy that rejects workers in any of the given divisions."""
    excluded = frozenset(d.lower().strip() for d in divisions)

    def policy(context: EligibilityContext) -> bool:
        division = (context.division or "").lower().strip()
        return division not in excluded

    return policy


default_commission_policy = exclude_divisions({"trailers"})


def to_cents(amount: Decimal) -> int:
    """Round a decimal amount half-up to whole cents."""
    with localcontext(MONEY_CONTEXT):
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a 2-place decimal."""
    with localcontext(MONEY_CONTEXT):
        return (Decimal(cents) / 100).quantize(CENTS)


class PaymentCalculator:
    """Combines hour tiers, rate, commission, tips and adjustment.

    Formula:
        regular_pay    = regular_hours    * base_rate
        overtime_pay   = overtime_hours   * base_rate * 1.5
        doubletime_pay = doubletime_hours * base_rate * 2.0
        total_pay      = regular_pay + overtime_pay + doubletime_pay
                         + commission + tips + adjustment

    Each component is rounded to whole cents exactly once and the total is an
    integer sum of cents, so identical inputs always give identical output.
    Arithmetic runs in MONEY_CONTEXT regardless of the caller's decimal context.
    Commission eligibility is delegated to the injected policy.
    """

    def __init__(self, commission_policy: CommissionPolicy = always_eligible):
        self.commission_policy = commission_policy

    def calculate(
        self,
        inputs: PaymentInputs,
        context: EligibilityContext | None = None,
    ) -> PaymentSummary:
        self._validate(inputs)

        with localcontext(MONEY_CONTEXT):
            return self._summarize(inputs, context)

    def _summarize(
        self,
        inputs: PaymentInputs,
        context: EligibilityContext | None,
    ) -> PaymentSummary:
        rate = inputs.base_rate
        regular_cents = to_cents(inputs.hours.regular * rate)
        overtime_cents = to_cents(inputs.hours.overtime * rate * OVERTIME_MULTIPLIER)
        doubletime_cents = to_cents(inputs.hours.doubletime * rate * DOUBLETIME_MULTIPLIER)

        eligible = self.commission_policy(context or EligibilityContext())
        commission_cents = to_cents(inputs.commission) if eligible else 0
        tips_cents = to_cents(inputs.tips)
        adjustment_cents = to_cents(inputs.adjustment)

        total_cents = (
            regular_cents
            + overtime_cents
            + doubletime_cents
            + commission_cents
            + tips_cents
            + adjustment_cents
        )

        return PaymentSummary(
            regular_pay=from_cents(regular_cents),
            overtime_pay=from_cents(overtime_cents),
            doubletime_pay=from_cents(doubletime_cents),
            commission=from_cents(commission_cents),
            tips=from_cents(tips_cents),
            adjustment=from_cents(adjustment_cents),
            total_pay=from_cents(total_cents),
        )

    @staticmethod
    def _validate(inputs: PaymentInputs) -> None:
        checks = {
            "regular_hours": inputs.hours.regular,
            "overtime_hours": inputs.hours.overtime,
            "doubletime_hours": inputs.hours.doubletime,
            "base_rate": inputs.base_rate,
            "commission": inputs.commission,
            "tips": inputs.tips,
        }
        negative = {name: str(value) for name, value in checks.items() if value < 0}
        if negative:
            raise ValidationError("Payment inputs must be non-negative", negative)
