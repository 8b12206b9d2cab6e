"""Registration and sync flow."""

from .models import ProfileUpdate, SessionGrant, SurveyInput
from .service import RegistrationService, merge_analytics
from .validation import PROFESSIONS, SOURCES, SUPPORTED_LANGUAGES, USE_CASES, validate_profile

__all__ = [
    "PROFESSIONS",
    "SOURCES",
    "SUPPORTED_LANGUAGES",
    "USE_CASES",
    "ProfileUpdate",
    "RegistrationService",
    "SessionGrant",
    "SurveyInput",
    "merge_analytics",
    "validate_profile",
]
