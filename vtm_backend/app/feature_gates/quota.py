"""Daily dictation quota evaluation utilities for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..entitlements.models import UNLIMITED_QUOTA
from .exceptions import FeatureGateError

_DEFAULT_WARN_RATIO = 0.9


@dataclass(frozen=True)
class DailyQuotaEvaluation:
    """Represents the outcome of a daily quota check."""

    quota_seconds: int
    used_seconds: int
    requested_seconds: int
    projected_seconds: int
    remaining_seconds: Optional[int]
    should_warn: bool
    allowed: bool

    @property
    def unlimited(self) -> bool:
        return self.quota_seconds == UNLIMITED_QUOTA

    def to_dict(self) -> dict[str, Optional[int] | bool]:
        """Serialize the evaluation for logging or API responses."""

        return {
            "quota_seconds": self.quota_seconds,
            "used_seconds": self.used_seconds,
            "requested_seconds": self.requested_seconds,
            "projected_seconds": self.projected_seconds,
            "remaining_seconds": self.remaining_seconds,
            "unlimited": self.unlimited,
            "should_warn": self.should_warn,
            "allowed": self.allowed,
        }


def evaluate_daily_quota(
    *,
    used_seconds: int,
    quota_seconds: int,
    requested_seconds: int = 0,
    warn_ratio: float = _DEFAULT_WARN_RATIO,
) -> DailyQuotaEvaluation:
    """Determine whether ``requested_seconds`` more dictation fits in today's quota.

    A quota of ``-1`` is unlimited and always allowed.
    """

    used = max(used_seconds, 0)
    requested = max(requested_seconds, 0)
    projected = used + requested

    if quota_seconds == UNLIMITED_QUOTA:
        return DailyQuotaEvaluation(
            quota_seconds=quota_seconds,
            used_seconds=used,
            requested_seconds=requested,
            projected_seconds=projected,
            remaining_seconds=None,
            should_warn=False,
            allowed=True,
        )

    return DailyQuotaEvaluation(
        quota_seconds=quota_seconds,
        used_seconds=used,
        requested_seconds=requested,
        projected_seconds=projected,
        remaining_seconds=max(quota_seconds - used, 0),
        should_warn=projected >= quota_seconds * warn_ratio,
        allowed=projected <= quota_seconds,
    )


def assert_daily_quota(
    *,
    used_seconds: int,
    quota_seconds: int,
    requested_seconds: int = 0,
    warn_ratio: float = _DEFAULT_WARN_RATIO,
    error_code: str = "daily_quota_exceeded",
) -> DailyQuotaEvaluation:
    """Raise when the requested dictation would exceed the daily quota."""

    evaluation = evaluate_daily_quota(
        used_seconds=used_seconds,
        quota_seconds=quota_seconds,
        requested_seconds=requested_seconds,
        warn_ratio=warn_ratio,
    )

    if not evaluation.allowed:
        raise FeatureGateError(
            code=error_code,
            message="Daily dictation quota exceeded.",
            detail={
                "quota_seconds": quota_seconds,
                "used_seconds": evaluation.used_seconds,
                "requested_seconds": evaluation.requested_seconds,
                "remaining_seconds": evaluation.remaining_seconds,
            },
        )

    return evaluation


__all__ = ["DailyQuotaEvaluation", "assert_daily_quota", "evaluate_daily_quota"]
