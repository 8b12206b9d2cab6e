"""Domain models for entitlements and plan computation."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .catalog import is_known_plan

FREE_PLAN_ID = "free"
DEFAULT_DAILY_QUOTA_SECONDS = 5400
UNLIMITED_QUOTA = -1
UNKNOWN = "Unknown"


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SurveyAnswers(BaseModel):
    """Onboarding survey answers; free-form and never state-bearing."""

    profession: str = UNKNOWN
    use_case: str = UNKNOWN
    source: str = UNKNOWN

    model_config = ConfigDict(frozen=True)


class AnalyticsProfile(BaseModel):
    country: Optional[str] = None
    input_language: Optional[str] = None
    survey: SurveyAnswers = Field(default_factory=SurveyAnswers)

    model_config = ConfigDict(frozen=True)


class EntitlementRecord(BaseModel):
    """Persisted plan state for a single subject."""

    subject_id: str
    customer_identity: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    plan_id: str = FREE_PLAN_ID
    is_pro: bool = False
    plan_expiry: Optional[datetime] = None
    daily_quota_seconds: int = DEFAULT_DAILY_QUOTA_SECONDS
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_seen_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    analytics: AnalyticsProfile = Field(default_factory=AnalyticsProfile)

    model_config = ConfigDict(frozen=True)

    @field_validator("plan_expiry", "created_at", "last_seen_at")
    @classmethod
    def _normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _utc(value)

    @field_validator("daily_quota_seconds")
    @classmethod
    def _validate_quota(cls, value: int) -> int:
        if value < 0 and value != UNLIMITED_QUOTA:
            raise ValueError("daily_quota_seconds must be >= 0 or -1 for unlimited")
        return value

    @field_validator("plan_id")
    @classmethod
    def _validate_plan(cls, value: str) -> str:
        if value != FREE_PLAN_ID and not is_known_plan(value):
            raise ValueError(f"unknown plan_id {value!r}")
        return value

    @model_validator(mode="after")
    def _pro_requires_expiry(self) -> "EntitlementRecord":
        if self.is_pro and self.plan_expiry is None:
            raise ValueError("is_pro requires a plan_expiry")
        return self


class PlanGrant(BaseModel):
    """Plan fields written to a record by payment reconciliation only."""

    plan_id: str
    plan_expiry: datetime
    daily_quota_seconds: int
    is_pro: bool = True

    model_config = ConfigDict(frozen=True)

    @field_validator("plan_expiry")
    @classmethod
    def _normalize_timezone(cls, value: datetime) -> datetime:
        return _utc(value)


class EffectiveEntitlement(BaseModel):
    """Entitlement as computed at a point in time, accounting for expiry."""

    plan_id: str
    is_pro: bool
    plan_expiry: Optional[datetime] = None
    daily_quota_seconds: int

    model_config = ConfigDict(frozen=True)

    @property
    def is_unlimited(self) -> bool:
        return self.daily_quota_seconds == UNLIMITED_QUOTA


__all__ = [
    "DEFAULT_DAILY_QUOTA_SECONDS",
    "FREE_PLAN_ID",
    "UNKNOWN",
    "UNLIMITED_QUOTA",
    "AnalyticsProfile",
    "EffectiveEntitlement",
    "EntitlementRecord",
    "PlanGrant",
    "SurveyAnswers",
]
