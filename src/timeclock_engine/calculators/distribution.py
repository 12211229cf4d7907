"""Tip and commission pool distribution across an event's workers."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from decimal import Decimal
from uuid import UUID

from timeclock_engine.calculators.payment_calculator import from_cents, to_cents
from timeclock_engine.calculators.types import ZERO
from timeclock_engine.errors import ValidationError


def prorate_tips(
    total_tips: Decimal,
    hours_by_worker: Mapping[UUID, Decimal],
    eligible: Collection[UUID] | None = None,
) -> dict[UUID, Decimal]:
    """Split a tip pool in proportion to hours worked.

    Ineligible workers and workers with no hours get zero. Shares are whole
    cents; leftover cents go to the largest fractional remainders (ties broken
    by more hours, then worker id) so the shares sum exactly to the pool.
    """
    if total_tips < 0:
        raise ValidationError("total_tips must be non-negative", {"total_tips": str(total_tips)})

    shares = {worker_id: ZERO for worker_id in hours_by_worker}
    weights = {
        worker_id: hours
        for worker_id, hours in hours_by_worker.items()
        if hours > 0 and (eligible is None or worker_id in eligible)
    }
    total_hours = sum(weights.values(), ZERO)
    if not weights or total_hours == 0:
        return shares

    pool_cents = to_cents(total_tips)
    base: dict[UUID, int] = {}
    remainders: dict[UUID, Decimal] = {}
    for worker_id, hours in weights.items():
        exact = Decimal(pool_cents) * hours / total_hours
        floor = int(exact)
        base[worker_id] = floor
        remainders[worker_id] = exact - floor

    leftover = pool_cents - sum(base.values())
    order = sorted(
        weights,
        key=lambda w: (-remainders[w], -weights[w], str(w)),
    )
    for worker_id in order[:leftover]:
        base[worker_id] += 1

    for worker_id, cents in base.items():
        shares[worker_id] = from_cents(cents)
    return shares


def split_commission_pool(
    pool: Decimal,
    eligible_workers: Collection[UUID],
) -> dict[UUID, Decimal]:
    """Split a commission pool equally among eligible workers, in cents."""
    if pool < 0:
        raise ValidationError("commission pool must be non-negative", {"pool": str(pool)})
    if not eligible_workers:
        return {}

    ordered = sorted(eligible_workers, key=str)
    pool_cents = to_cents(pool)
    share, leftover = divmod(pool_cents, len(ordered))
    return {
        worker_id: from_cents(share + (1 if index < leftover else 0))
        for index, worker_id in enumerate(ordered)
    }
