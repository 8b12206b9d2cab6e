"""Entitlement records, plan catalog and effective-entitlement evaluation."""

from .catalog import PLAN_CATALOG, PlanDefinition, get_plan_definition, is_known_plan, list_plans
from .evaluator import FREE_ENTITLEMENT, evaluate
from .models import (
    DEFAULT_DAILY_QUOTA_SECONDS,
    FREE_PLAN_ID,
    UNKNOWN,
    UNLIMITED_QUOTA,
    AnalyticsProfile,
    EffectiveEntitlement,
    EntitlementRecord,
    PlanGrant,
    SurveyAnswers,
)
from .repository import EntitlementRepository, PostgresEntitlementRepository

__all__ = [
    "PLAN_CATALOG",
    "PlanDefinition",
    "get_plan_definition",
    "is_known_plan",
    "list_plans",
    "FREE_ENTITLEMENT",
    "evaluate",
    "DEFAULT_DAILY_QUOTA_SECONDS",
    "FREE_PLAN_ID",
    "UNKNOWN",
    "UNLIMITED_QUOTA",
    "AnalyticsProfile",
    "EffectiveEntitlement",
    "EntitlementRecord",
    "PlanGrant",
    "SurveyAnswers",
    "EntitlementRepository",
    "PostgresEntitlementRepository",
]
