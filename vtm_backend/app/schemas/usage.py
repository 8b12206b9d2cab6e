"""API schemas for usage and quota checks."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..feature_gates import DailyQuotaEvaluation


class UsageCheckRequest(BaseModel):
    used_seconds: int = Field(alias="usedSeconds", ge=0)
    requested_seconds: int = Field(alias="requestedSeconds", ge=0, default=0)

    model_config = ConfigDict(populate_by_name=True)


class UsageCheckResponse(BaseModel):
    allowed: bool
    unlimited: bool
    should_warn: bool = Field(alias="shouldWarn")
    quota_seconds: int = Field(alias="quotaSeconds")
    remaining_seconds: Optional[int] = Field(alias="remainingSeconds", default=None)
    is_pro: bool = Field(alias="isPro")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_evaluation(cls, evaluation: DailyQuotaEvaluation, *, is_pro: bool) -> "UsageCheckResponse":
        return cls(
            allowed=evaluation.allowed,
            unlimited=evaluation.unlimited,
            should_warn=evaluation.should_warn,
            quota_seconds=evaluation.quota_seconds,
            remaining_seconds=evaluation.remaining_seconds,
            is_pro=is_pro,
        )


__all__ = ["UsageCheckRequest", "UsageCheckResponse"]
