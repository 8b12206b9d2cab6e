"""Whitelist validation for optional profile and survey fields."""
from __future__ import annotations

import re
from typing import FrozenSet, Optional

from ..errors import ValidationError
from .models import ProfileUpdate

SUPPORTED_LANGUAGES: FrozenSet[str] = frozenset(
    {
        "ar-SA",
        "bn-IN",
        "de-DE",
        "en-AU",
        "en-GB",
        "en-IN",
        "en-US",
        "es-ES",
        "es-MX",
        "fr-FR",
        "gu-IN",
        "hi-IN",
        "id-ID",
        "it-IT",
        "ja-JP",
        "kn-IN",
        "ko-KR",
        "ml-IN",
        "mr-IN",
        "nl-NL",
        "pa-IN",
        "pl-PL",
        "pt-BR",
        "pt-PT",
        "ru-RU",
        "ta-IN",
        "te-IN",
        "tr-TR",
        "ur-PK",
        "vi-VN",
        "zh-CN",
    }
)

PROFESSIONS: FrozenSet[str] = frozenset({"student", "developer", "writer", "business", "medical", "other"})
USE_CASES: FrozenSet[str] = frozenset({"notes", "emails", "documents", "coding", "chat", "accessibility", "other"})
SOURCES: FrozenSet[str] = frozenset({"search", "social", "friend", "youtube", "store", "other"})

_COUNTRY_CODE = re.compile(r"^[A-Z]{2}$")


def _check(field: str, value: Optional[str], allowed: FrozenSet[str]) -> None:
    if value is not None and value not in allowed:
        raise ValidationError(
            f"Invalid {field} selection",
            detail={"field": field, "value": value},
        )


def validate_profile(profile: ProfileUpdate) -> None:
    """Raise :class:`ValidationError` when any supplied field is outside its whitelist."""

    if profile.country is not None and not _COUNTRY_CODE.match(profile.country.upper()):
        raise ValidationError(
            "Invalid country code",
            detail={"field": "country", "value": profile.country},
        )
    _check("language", profile.language, SUPPORTED_LANGUAGES)
    if profile.survey is not None:
        _check("profession", profile.survey.profession, PROFESSIONS)
        _check("useCase", profile.survey.use_case, USE_CASES)
        _check("source", profile.survey.source, SOURCES)


__all__ = ["PROFESSIONS", "SOURCES", "SUPPORTED_LANGUAGES", "USE_CASES", "validate_profile"]
