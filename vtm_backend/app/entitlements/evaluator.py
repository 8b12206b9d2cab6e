"""Pure computation of the effective entitlement for a stored record."""
from __future__ import annotations

from datetime import datetime, timezone

from .models import (
    DEFAULT_DAILY_QUOTA_SECONDS,
    FREE_PLAN_ID,
    UNLIMITED_QUOTA,
    EffectiveEntitlement,
    EntitlementRecord,
)

FREE_ENTITLEMENT = EffectiveEntitlement(
    plan_id=FREE_PLAN_ID,
    is_pro=False,
    plan_expiry=None,
    daily_quota_seconds=DEFAULT_DAILY_QUOTA_SECONDS,
)


def evaluate(record: EntitlementRecord, now: datetime) -> EffectiveEntitlement:
    """Return what ``record`` entitles its subject to at ``now``.

    Expiry is lazy: a lapsed paid plan evaluates to the free entitlement but
    the stored record keeps its plan fields until the next payment rewrites
    them.
    """

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if not record.is_pro or record.plan_expiry is None:
        return FREE_ENTITLEMENT
    if now > record.plan_expiry:
        return FREE_ENTITLEMENT

    quota = record.daily_quota_seconds
    if quota is None:
        quota = UNLIMITED_QUOTA
    return EffectiveEntitlement(
        plan_id=record.plan_id,
        is_pro=True,
        plan_expiry=record.plan_expiry,
        daily_quota_seconds=quota,
    )


__all__ = ["FREE_ENTITLEMENT", "evaluate"]
