"""Claim payloads carried by signed session and payment-intent tokens."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..entitlements.models import EffectiveEntitlement


class TokenType(str, Enum):
    SESSION = "session"
    PAYMENT_INTENT = "payment_intent"


def _timestamp(value: datetime) -> int:
    return int(value.timestamp())


def _from_timestamp(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class SessionClaims(BaseModel):
    """Snapshot of identity and effective entitlement at issuance time."""

    customer_identity: str
    subject_id: str
    plan_id: str
    is_pro: bool
    plan_expiry: Optional[datetime] = None
    daily_quota_seconds: int
    issued_at: datetime
    expires_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def entitlement(self) -> EffectiveEntitlement:
        return EffectiveEntitlement(
            plan_id=self.plan_id,
            is_pro=self.is_pro,
            plan_expiry=self.plan_expiry,
            daily_quota_seconds=self.daily_quota_seconds,
        )

    def to_jwt_claims(self) -> Dict[str, Any]:
        return {
            "typ": TokenType.SESSION.value,
            "sub": self.subject_id,
            "cid": self.customer_identity,
            "plan": self.plan_id,
            "isPro": self.is_pro,
            "expiry": self.plan_expiry.isoformat() if self.plan_expiry else None,
            "quota": self.daily_quota_seconds,
            "iat": _timestamp(self.issued_at),
            "exp": _timestamp(self.expires_at),
        }

    @classmethod
    def from_jwt_claims(cls, claims: Dict[str, Any]) -> "SessionClaims":
        expiry = claims.get("expiry")
        return cls(
            customer_identity=claims["cid"],
            subject_id=claims["sub"],
            plan_id=claims["plan"],
            is_pro=claims["isPro"],
            plan_expiry=datetime.fromisoformat(expiry) if expiry else None,
            daily_quota_seconds=claims["quota"],
            issued_at=_from_timestamp(claims["iat"]),
            expires_at=_from_timestamp(claims["exp"]),
        )


class PaymentIntentClaims(BaseModel):
    """Short-lived binding of a subject to the plan they chose to buy."""

    subject_id: str
    customer_identity: str
    plan_id: str
    price: Decimal
    issued_at: datetime
    expires_at: datetime

    model_config = ConfigDict(frozen=True)

    def to_jwt_claims(self) -> Dict[str, Any]:
        return {
            "typ": TokenType.PAYMENT_INTENT.value,
            "sub": self.subject_id,
            "cid": self.customer_identity,
            "plan": self.plan_id,
            "price": f"{self.price:.2f}",
            "iat": _timestamp(self.issued_at),
            "exp": _timestamp(self.expires_at),
        }

    @classmethod
    def from_jwt_claims(cls, claims: Dict[str, Any]) -> "PaymentIntentClaims":
        return cls(
            subject_id=claims["sub"],
            customer_identity=claims["cid"],
            plan_id=claims["plan"],
            price=Decimal(claims["price"]),
            issued_at=_from_timestamp(claims["iat"]),
            expires_at=_from_timestamp(claims["exp"]),
        )


class IssuedToken(BaseModel):
    """Wrapper containing a signed token and its expiry."""

    token: str
    expires_at: datetime

    model_config = ConfigDict(frozen=True)


__all__ = ["IssuedToken", "PaymentIntentClaims", "SessionClaims", "TokenType"]
