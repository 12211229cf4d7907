"""Overtime and doubletime tier classification."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from timeclock_engine.calculators.types import ZERO, HourBreakdown
from timeclock_engine.errors import ValidationError


@dataclass(frozen=True)
class TierPolicy:
    """Hour thresholds for one jurisdiction.

    Attributes:
        weekly_overtime_threshold: Weekly hours above which regular hours
            become overtime. None disables the weekly rule.
        daily_overtime_threshold: Hours in a single work event above which
            time is overtime. None disables daily overtime.
        daily_doubletime_threshold: Hours in a single work event above which
            time is doubletime. None disables doubletime.
    """

    weekly_overtime_threshold: Decimal | None = Decimal("40")
    daily_overtime_threshold: Decimal | None = None
    daily_doubletime_threshold: Decimal | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in (
            "weekly_overtime_threshold",
            "daily_overtime_threshold",
            "daily_doubletime_threshold",
        ):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive")
        if (
            self.daily_overtime_threshold is not None
            and self.daily_doubletime_threshold is not None
            and self.daily_doubletime_threshold <= self.daily_overtime_threshold
        ):
            raise ValueError(
                "daily_doubletime_threshold must exceed daily_overtime_threshold"
            )


WEEKLY_ONLY = TierPolicy()
CALIFORNIA = TierPolicy(
    weekly_overtime_threshold=Decimal("40"),
    daily_overtime_threshold=Decimal("8"),
    daily_doubletime_threshold=Decimal("12"),
)


class TierPolicyRegistry:
    """Looks up the tier policy for a state code."""

    def __init__(
        self,
        policies: Mapping[str, TierPolicy] | None = None,
        default: TierPolicy = WEEKLY_ONLY,
    ):
        source = {"CA": CALIFORNIA} if policies is None else policies
        self._policies = {code.upper().strip(): policy for code, policy in source.items()}
        self.default = default

    def policy_for(self, state: str | None) -> TierPolicy:
        if not state:
            return self.default
        return self._policies.get(state.upper().strip(), self.default)


class HourClassifier:
    """Splits a worker's event hours into regular/overtime/doubletime.

    Order of application:
    1. Daily doubletime: event hours above the doubletime threshold
    2. Daily overtime: event hours between the overtime and doubletime
       thresholds
    3. Weekly overtime: remaining regular hours that push prior-week plus
       event hours above the weekly threshold

    Doubletime is never reclassified, and the tiers always sum to the event
    hours.
    """

    def __init__(self, policy: TierPolicy = WEEKLY_ONLY):
        self.policy = policy

    def classify(
        self,
        event_hours: Decimal,
        prior_week_hours: Decimal = ZERO,
    ) -> HourBreakdown:
        if event_hours < 0:
            raise ValidationError(
                "event_hours must be non-negative",
                {"event_hours": str(event_hours)},
            )
        if prior_week_hours < 0:
            raise ValidationError(
                "prior_week_hours must be non-negative",
                {"prior_week_hours": str(prior_week_hours)},
            )

        policy = self.policy
        doubletime = ZERO
        daily_cap = event_hours

        if policy.daily_doubletime_threshold is not None:
            doubletime = max(ZERO, event_hours - policy.daily_doubletime_threshold)
            daily_cap = min(event_hours, policy.daily_doubletime_threshold)

        overtime = ZERO
        if policy.daily_overtime_threshold is not None:
            overtime = max(ZERO, daily_cap - policy.daily_overtime_threshold)

        regular = event_hours - doubletime - overtime

        if policy.weekly_overtime_threshold is not None:
            weekly_excess = prior_week_hours + event_hours - policy.weekly_overtime_threshold
            shifted = min(regular, max(ZERO, weekly_excess))
            regular -= shifted
            overtime += shifted

        return HourBreakdown(regular=regular, overtime=overtime, doubletime=doubletime)
