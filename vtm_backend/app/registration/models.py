"""Inputs and results of the registration/sync flow."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..sessions.models import SessionClaims


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class SurveyInput(BaseModel):
    """Survey answers as supplied by the client; blank answers count as absent."""

    profession: Optional[str] = None
    use_case: Optional[str] = Field(default=None, alias="useCase")
    source: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("profession", "use_case", "source")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class ProfileUpdate(BaseModel):
    country: Optional[str] = None
    language: Optional[str] = None
    survey: Optional[SurveyInput] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("country", "language")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class SessionGrant(BaseModel):
    """Outcome of a registration or sync: a fresh session token and its claims."""

    token: str
    expires_at: datetime
    claims: SessionClaims
    created: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def customer_identity(self) -> str:
        return self.claims.customer_identity


__all__ = ["ProfileUpdate", "SessionGrant", "SurveyInput"]
