"""Convenience wrapper around session claims for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..entitlements.evaluator import FREE_ENTITLEMENT
from ..entitlements.models import EffectiveEntitlement
from ..sessions.models import SessionClaims
from .quota import DailyQuotaEvaluation, assert_daily_quota, evaluate_daily_quota


@dataclass(frozen=True)
class SessionContext:
    """Facade exposing gating-centric helpers for a verified session."""

    claims: SessionClaims
    now: Optional[datetime] = None

    @property
    def customer_identity(self) -> str:
        return self.claims.customer_identity

    @property
    def entitlement(self) -> EffectiveEntitlement:
        """The session's entitlement, downgraded if the plan lapsed mid-session."""

        snapshot = self.claims.entitlement
        if not snapshot.is_pro or snapshot.plan_expiry is None:
            return snapshot
        now = self.now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if now > snapshot.plan_expiry:
            return FREE_ENTITLEMENT
        return snapshot

    @property
    def is_pro(self) -> bool:
        return self.entitlement.is_pro

    @property
    def daily_quota_seconds(self) -> int:
        return self.entitlement.daily_quota_seconds

    def evaluate_daily_quota(self, *, used_seconds: int, requested_seconds: int = 0) -> DailyQuotaEvaluation:
        return evaluate_daily_quota(
            used_seconds=used_seconds,
            quota_seconds=self.daily_quota_seconds,
            requested_seconds=requested_seconds,
        )

    def assert_daily_quota(
        self,
        *,
        used_seconds: int,
        requested_seconds: int = 0,
        error_code: str = "daily_quota_exceeded",
    ) -> DailyQuotaEvaluation:
        """Raise when the requested dictation would exceed today's quota."""

        return assert_daily_quota(
            used_seconds=used_seconds,
            quota_seconds=self.daily_quota_seconds,
            requested_seconds=requested_seconds,
            error_code=error_code,
        )


__all__ = ["SessionContext"]
