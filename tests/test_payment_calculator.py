"""Tests for the payment calculator."""

from decimal import ROUND_FLOOR, Decimal, localcontext
from uuid import uuid4

import pytest

from timeclock_engine.calculators.payment_calculator import (
    EligibilityContext,
    PaymentCalculator,
    default_commission_policy,
    exclude_divisions,
    from_cents,
    to_cents,
)
from timeclock_engine.calculators.types import HourBreakdown, PaymentInputs
from timeclock_engine.errors import ValidationError


def inputs(**overrides) -> PaymentInputs:
    values = {
        "hours": HourBreakdown(
            regular=Decimal("8"), overtime=Decimal("2"), doubletime=Decimal("0")
        ),
        "base_rate": Decimal("20"),
        "commission": Decimal("50"),
        "tips": Decimal("30"),
        "adjustment": Decimal("-10"),
    }
    values.update(overrides)
    return PaymentInputs(**values)


class TestCents:
    """Test cent conversion helpers."""

    def test_to_cents_half_up(self):
        assert to_cents(Decimal("10.125")) == 1013
        assert to_cents(Decimal("10.124")) == 1012
        assert to_cents(Decimal("-10.125")) == -1013

    def test_from_cents(self):
        assert from_cents(29000) == Decimal("290.00")
        assert from_cents(-5) == Decimal("-0.05")


class TestPaymentCalculator:
    """Test payment formula and rounding."""

    def test_reference_example(self):
        """160 + 60 + 0 + 50 + 30 - 10 = 290."""
        summary = PaymentCalculator().calculate(inputs())

        assert summary.regular_pay == Decimal("160.00")
        assert summary.overtime_pay == Decimal("60.00")
        assert summary.doubletime_pay == Decimal("0.00")
        assert summary.commission == Decimal("50.00")
        assert summary.tips == Decimal("30.00")
        assert summary.adjustment == Decimal("-10.00")
        assert summary.total_pay == Decimal("290.00")

    def test_doubletime_multiplier(self):
        summary = PaymentCalculator().calculate(
            inputs(
                hours=HourBreakdown(
                    regular=Decimal("8"), overtime=Decimal("4"), doubletime=Decimal("2")
                ),
                commission=Decimal("0"),
                tips=Decimal("0"),
                adjustment=Decimal("0"),
            )
        )

        assert summary.doubletime_pay == Decimal("80.00")
        assert summary.total_pay == Decimal("360.00")

    def test_each_component_rounded_once(self):
        """Total is the sum of already-rounded components."""
        summary = PaymentCalculator().calculate(
            inputs(
                hours=HourBreakdown(
                    regular=Decimal("1.3333"), overtime=Decimal("0.3333")
                ),
                base_rate=Decimal("15.25"),
                commission=Decimal("0"),
                tips=Decimal("0"),
                adjustment=Decimal("0"),
            )
        )

        assert summary.regular_pay == Decimal("20.33")
        assert summary.overtime_pay == Decimal("7.62")
        assert summary.total_pay == Decimal("27.95")

    def test_pure(self):
        """Identical inputs always yield identical output."""
        calculator = PaymentCalculator()
        first = calculator.calculate(inputs())
        second = calculator.calculate(inputs())

        assert first == second
        assert first.to_canonical_dict() == second.to_canonical_dict()

    def test_ignores_caller_decimal_context(self):
        """A low-precision ambient context does not change the cents."""
        worked = inputs(
            hours=HourBreakdown(
                regular=Decimal("7.5"), overtime=Decimal("0"), doubletime=Decimal("0")
            ),
            base_rate=Decimal("23.37"),
            commission=Decimal("0"),
            tips=Decimal("0"),
            adjustment=Decimal("0"),
        )
        expected = PaymentCalculator().calculate(worked)

        with localcontext() as ctx:
            ctx.prec = 3
            ctx.rounding = ROUND_FLOOR
            summary = PaymentCalculator().calculate(worked)

        assert expected.regular_pay == Decimal("175.28")
        assert summary == expected

    def test_negative_adjustment_can_reduce_below_zero(self):
        summary = PaymentCalculator().calculate(
            inputs(
                hours=HourBreakdown(regular=Decimal("1")),
                commission=Decimal("0"),
                tips=Decimal("0"),
                adjustment=Decimal("-25"),
            )
        )

        assert summary.total_pay == Decimal("-5.00")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"base_rate": Decimal("-1")},
            {"commission": Decimal("-0.01")},
            {"tips": Decimal("-5")},
            {"hours": HourBreakdown(regular=Decimal("-1"))},
        ],
    )
    def test_negative_inputs_rejected(self, overrides):
        with pytest.raises(ValidationError):
            PaymentCalculator().calculate(inputs(**overrides))


class TestCommissionPolicy:
    """Test injected commission eligibility."""

    def test_ineligible_worker_gets_no_commission(self):
        calculator = PaymentCalculator(default_commission_policy)
        context = EligibilityContext(worker_id=uuid4(), division="Trailers")

        summary = calculator.calculate(inputs(), context)

        assert summary.commission == Decimal("0.00")
        assert summary.total_pay == Decimal("240.00")

    def test_eligible_division_keeps_commission(self):
        calculator = PaymentCalculator(default_commission_policy)
        context = EligibilityContext(worker_id=uuid4(), division="vendor")

        summary = calculator.calculate(inputs(), context)

        assert summary.commission == Decimal("50.00")

    def test_exclude_divisions_is_case_insensitive(self):
        policy = exclude_divisions({"Lead"})

        assert policy(EligibilityContext(division="lead ")) is False
        assert policy(EligibilityContext(division=None)) is True
