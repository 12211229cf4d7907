"""Pure hours and payment calculations."""

from timeclock_engine.calculators.distribution import prorate_tips, split_commission_pool
from timeclock_engine.calculators.hour_classifier import (
    HourClassifier,
    TierPolicy,
    TierPolicyRegistry,
)
from timeclock_engine.calculators.payment_calculator import (
    EligibilityContext,
    PaymentCalculator,
    default_commission_policy,
    exclude_divisions,
)
from timeclock_engine.calculators.sessions import Reconstruction, SessionReconstructor

__all__ = [
    "EligibilityContext",
    "HourClassifier",
    "PaymentCalculator",
    "Reconstruction",
    "SessionReconstructor",
    "TierPolicy",
    "TierPolicyRegistry",
    "default_commission_policy",
    "exclude_divisions",
    "prorate_tips",
    "split_commission_pool",
]
