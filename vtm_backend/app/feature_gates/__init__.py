"""Feature gating utilities coordinating entitlement enforcement."""
from .context import SessionContext
from .exceptions import FeatureGateError
from .quota import DailyQuotaEvaluation, assert_daily_quota, evaluate_daily_quota

__all__ = [
    "DailyQuotaEvaluation",
    "FeatureGateError",
    "SessionContext",
    "assert_daily_quota",
    "evaluate_daily_quota",
]
