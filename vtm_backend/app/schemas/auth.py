"""API schemas for authentication and session endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..registration import ProfileUpdate, SessionGrant, SurveyInput
from ..sessions import SessionClaims


class SyncRequest(BaseModel):
    firebase_token: str = Field(alias="firebaseToken")
    country: Optional[str] = None
    language: Optional[str] = None
    survey: Optional[SurveyInput] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_profile(self) -> ProfileUpdate:
        return ProfileUpdate(country=self.country, language=self.language, survey=self.survey)


class LoginRequest(SyncRequest):
    """First sign-in from a client; country and language are mandatory here."""

    country: str
    language: str


class EntitlementView(BaseModel):
    customer_identity: str = Field(alias="customerId")
    plan_id: str = Field(alias="planId")
    is_pro: bool = Field(alias="isPro")
    plan_expiry: Optional[datetime] = Field(alias="planExpiry", default=None)
    daily_quota_seconds: int = Field(alias="dailyQuotaSeconds")
    unlimited: bool

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "EntitlementView":
        entitlement = claims.entitlement
        return cls(
            customer_identity=claims.customer_identity,
            plan_id=entitlement.plan_id,
            is_pro=entitlement.is_pro,
            plan_expiry=entitlement.plan_expiry,
            daily_quota_seconds=entitlement.daily_quota_seconds,
            unlimited=entitlement.is_unlimited,
        )


class SessionResponse(BaseModel):
    success: bool = True
    session_token: str = Field(alias="sessionToken")
    expires_at: datetime = Field(alias="expiresAt")
    created: bool = False
    entitlement: EntitlementView

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_grant(cls, grant: SessionGrant) -> "SessionResponse":
        return cls(
            session_token=grant.token,
            expires_at=grant.expires_at,
            created=grant.created,
            entitlement=EntitlementView.from_claims(grant.claims),
        )


class SessionInfoResponse(BaseModel):
    valid: bool = True
    issued_at: datetime = Field(alias="issuedAt")
    expires_at: datetime = Field(alias="expiresAt")
    entitlement: EntitlementView

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "SessionInfoResponse":
        return cls(
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
            entitlement=EntitlementView.from_claims(claims),
        )


__all__ = ["EntitlementView", "LoginRequest", "SessionInfoResponse", "SessionResponse", "SyncRequest"]
