"""Custom exceptions used for feature gating enforcement."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import status

from ..errors import ServiceError


@dataclass
class FeatureGateError(ServiceError):
    """Represents an actionable gating failure surfaced to API callers."""

    code: str = "entitlement_required"
    status_code: int = status.HTTP_403_FORBIDDEN


__all__ = ["FeatureGateError"]
