"""Tests for tip and commission pool distribution."""

from decimal import Decimal
from uuid import uuid4

import pytest

from timeclock_engine.calculators.distribution import prorate_tips, split_commission_pool
from timeclock_engine.errors import ValidationError


class TestProrateTips:
    """Test hours-weighted tip split."""

    def test_proportional_to_hours(self):
        a, b = uuid4(), uuid4()

        shares = prorate_tips(Decimal("100"), {a: Decimal("3"), b: Decimal("1")})

        assert shares == {a: Decimal("75.00"), b: Decimal("25.00")}

    def test_remainder_cents_keep_exact_total(self):
        workers = [uuid4(), uuid4(), uuid4()]

        shares = prorate_tips(Decimal("10"), {w: Decimal("1") for w in workers})

        assert sum(shares.values()) == Decimal("10.00")
        assert sorted(shares.values()) == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
        # Equal remainders and hours: lowest id gets the extra cent
        assert shares[min(workers, key=str)] == Decimal("3.34")

    def test_largest_remainder_gets_leftover(self):
        a, b = uuid4(), uuid4()

        # 1.00 over 2h/1h: a = 66.67c, b = 33.33c
        shares = prorate_tips(Decimal("1"), {a: Decimal("2"), b: Decimal("1")})

        assert shares[a] == Decimal("0.67")
        assert shares[b] == Decimal("0.33")

    def test_ineligible_and_zero_hour_workers_get_nothing(self):
        a, b, c = uuid4(), uuid4(), uuid4()

        shares = prorate_tips(
            Decimal("100"),
            {a: Decimal("2"), b: Decimal("2"), c: Decimal("0")},
            eligible={a, c},
        )

        assert shares[a] == Decimal("100.00")
        assert shares[b] == Decimal("0")
        assert shares[c] == Decimal("0")

    def test_no_hours_returns_zero_shares(self):
        a = uuid4()

        assert prorate_tips(Decimal("50"), {a: Decimal("0")}) == {a: Decimal("0")}

    def test_negative_pool_rejected(self):
        with pytest.raises(ValidationError):
            prorate_tips(Decimal("-1"), {uuid4(): Decimal("1")})


class TestSplitCommissionPool:
    """Test equal commission split."""

    def test_equal_split_with_leftover_cent(self):
        workers = [uuid4(), uuid4(), uuid4()]

        shares = split_commission_pool(Decimal("100"), workers)

        assert sum(shares.values()) == Decimal("100.00")
        ordered = sorted(workers, key=str)
        assert shares[ordered[0]] == Decimal("33.34")
        assert shares[ordered[1]] == Decimal("33.33")
        assert shares[ordered[2]] == Decimal("33.33")

    def test_no_eligible_workers(self):
        assert split_commission_pool(Decimal("100"), []) == {}

    def test_negative_pool_rejected(self):
        with pytest.raises(ValidationError):
            split_commission_pool(Decimal("-5"), [uuid4()])
