"""Static catalog of purchasable plans."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Mapping

from ..errors import InvalidPlan


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a paid plan and the entitlement it grants."""

    plan_id: str
    price: Decimal
    validity_days: int
    quota_seconds: int
    display_name: str

    @property
    def is_unlimited(self) -> bool:
        return self.quota_seconds == -1

    @property
    def price_text(self) -> str:
        return f"{self.price:.2f}"


def _plan(plan_id: str, price: str, validity_days: int, quota_seconds: int, display_name: str) -> PlanDefinition:
    return PlanDefinition(
        plan_id=plan_id,
        price=Decimal(price),
        validity_days=validity_days,
        quota_seconds=quota_seconds,
        display_name=display_name,
    )


PLAN_CATALOG: Mapping[str, PlanDefinition] = {
    plan.plan_id: plan
    for plan in (
        _plan("daily_4hr", "4.99", 30, 14400, "Creator Pro"),
        _plan("daily_2hr", "2.99", 30, 7200, "Starter Flex"),
        _plan("pro_monthly", "5.99", 30, -1, "Monthly Pro"),
        _plan("pro_yearly", "35.99", 365, -1, "Yearly Saver"),
        _plan("lifetime_pro", "199.99", 36500, -1, "Lifetime Access"),
        _plan("pass_1day", "2.99", 1, -1, "1 Day Pass"),
    )
}


def get_plan_definition(plan_id: str) -> PlanDefinition:
    """Return a plan definition, raising :class:`InvalidPlan` if unsupported."""

    try:
        return PLAN_CATALOG[plan_id]
    except KeyError as exc:
        raise InvalidPlan(
            f"Unknown plan: {plan_id}",
            detail={"plan_id": plan_id},
        ) from exc


def list_plans() -> Dict[str, PlanDefinition]:
    return dict(PLAN_CATALOG)


def is_known_plan(plan_id: str) -> bool:
    return plan_id in PLAN_CATALOG


__all__ = ["PLAN_CATALOG", "PlanDefinition", "get_plan_definition", "is_known_plan", "list_plans"]
