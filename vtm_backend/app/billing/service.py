"""Core service coordinating payment intents, orders and reconciliation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional, Protocol, Tuple
from urllib import parse as urllib_parse

from ..entitlements.catalog import PlanDefinition, get_plan_definition
from ..entitlements.models import PlanGrant
from ..errors import AuthError, ReconciliationInconsistency, ServiceError, ValidationError
from ..sessions.issuer import SessionIssuer
from ..sessions.models import PaymentIntentClaims
from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    PaymentLedgerEntry,
    PaymentLink,
    PaymentOrder,
    ReconciliationResult,
)
from .processor import PaymentProcessor

logger = logging.getLogger("billing")


class BillingEventLogger(Protocol):
    """Captures structured billing audit events."""

    def log(self, event: BillingAuditEvent) -> None:
        ...


class BillingRepository(Protocol):
    """Persistence operations required by the billing service."""

    def get_ledger_entry(self, order_id: str) -> Optional[PaymentLedgerEntry]:
        ...

    def apply_payment(self, entry: PaymentLedgerEntry, grant: PlanGrant) -> bool:
        """Record ``entry`` and grant the plan atomically.

        Returns ``False`` when the order was already recorded, in which case
        nothing is changed.
        """


def build_plan_grant(plan: PlanDefinition, now: datetime) -> PlanGrant:
    return PlanGrant(
        plan_id=plan.plan_id,
        plan_expiry=now + timedelta(days=plan.validity_days),
        daily_quota_seconds=plan.quota_seconds,
        is_pro=True,
    )


@dataclass
class BillingService:
    """Moves a subject from an authenticated session to a paid entitlement."""

    repository: BillingRepository
    processor: PaymentProcessor
    session_issuer: SessionIssuer
    event_logger: BillingEventLogger
    app_base_url: str = "http://localhost:3000"
    currency: str = "USD"
    gateway: str = "PayPal"
    clock: Optional[Callable[[], datetime]] = None

    def _now(self) -> datetime:
        if self.clock is None:
            return datetime.now(timezone.utc)
        now = self.clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now

    def issue_payment_intent(self, session_token: str, plan_id: str) -> PaymentLink:
        """Exchange a session token for a short-lived payment-intent link."""

        session = self.session_issuer.verify(session_token)
        plan = get_plan_definition(plan_id)
        issued, claims = self.session_issuer.issue_payment_intent(
            session.subject_id, session.customer_identity, plan
        )
        query = urllib_parse.urlencode({"token": issued.token})
        url = f"{self.app_base_url.rstrip('/')}/pay?{query}"
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.PAYMENT_LINK_ISSUED,
                actor_id=session.customer_identity,
                metadata={"plan_id": plan.plan_id},
            )
        )
        return PaymentLink(
            url=url,
            token=issued.token,
            plan_id=plan.plan_id,
            price=claims.price,
            expires_at=issued.expires_at,
        )

    def describe_payment_intent(self, payment_token: str) -> Tuple[PaymentIntentClaims, PlanDefinition]:
        claims = self.session_issuer.verify_payment_intent(payment_token)
        return claims, get_plan_definition(claims.plan_id)

    def create_order(self, payment_token: str) -> PaymentOrder:
        claims, plan = self.describe_payment_intent(payment_token)
        order_id, approve_url = self.processor.create_order(
            amount=plan.price,
            currency=self.currency,
            description=plan.display_name,
            reference_id=claims.customer_identity,
        )
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.ORDER_CREATED,
                order_id=order_id,
                actor_id=claims.customer_identity,
                metadata={"plan_id": plan.plan_id},
            )
        )
        return PaymentOrder(
            order_id=order_id,
            plan_id=plan.plan_id,
            amount=plan.price,
            currency=self.currency,
            approve_url=approve_url,
        )

    def reconcile_payment(self, order_id: str, payment_token: str) -> ReconciliationResult:
        """Apply a captured order to the paying subject's entitlement exactly once.

        A repeated ``order_id`` returns success with ``already_applied`` set
        and changes nothing, even once the intent token has expired, provided
        the token belongs to the same subject. An order the processor does not report as
        completed grants nothing.
        """

        if not order_id or not order_id.strip():
            raise ValidationError("Order id is required", detail={"field": "orderID"})
        order_id = order_id.strip()

        # A recorded order replays its outcome even after the intent token lapsed.
        claims = self.session_issuer.verify_payment_intent(payment_token, allow_expired=True)
        existing = self.repository.get_ledger_entry(order_id)
        if existing is not None:
            if existing.subject_id != claims.subject_id:
                raise AuthError(
                    "Payment token does not match the recorded order",
                    detail={"order_id": order_id},
                )
            return self._replayed(existing)

        claims = self.session_issuer.verify_payment_intent(payment_token)
        plan = get_plan_definition(claims.plan_id)

        capture = self.processor.capture_order(order_id)
        if not capture.is_completed:
            logger.info(
                "Order %s for %s not completed (status=%s)",
                order_id,
                claims.customer_identity,
                capture.provider_status,
            )
            self.event_logger.log(
                BillingAuditEvent(
                    event_type=BillingAuditEventType.PAYMENT_INCOMPLETE,
                    order_id=order_id,
                    actor_id=claims.customer_identity,
                    metadata={"status": capture.provider_status or "unknown"},
                )
            )
            return ReconciliationResult(order_id=order_id, granted=False, plan_id=plan.plan_id)

        now = self._now()
        grant = build_plan_grant(plan, now)
        entry = PaymentLedgerEntry(
            order_id=order_id,
            subject_id=claims.subject_id,
            customer_identity=claims.customer_identity,
            plan_id=plan.plan_id,
            amount=capture.amount if capture.amount is not None else plan.price,
            currency=capture.currency or self.currency,
            gateway=self.gateway,
            captured_at=now,
        )
        if capture.amount is not None and capture.amount != plan.price:
            logger.warning(
                "Order %s captured %s but plan %s costs %s",
                order_id,
                capture.amount,
                plan.plan_id,
                plan.price,
            )

        try:
            applied = self.repository.apply_payment(entry, grant)
        except ReconciliationInconsistency as exc:
            self._report_inconsistency(entry, exc)
            raise
        except (ServiceError, LookupError, RuntimeError, OSError) as exc:
            # Funds were captured, so any persistence failure needs an operator.
            inconsistency = ReconciliationInconsistency(
                "Payment captured but entitlement could not be updated",
                detail={"order_id": entry.order_id, "subject_id": entry.subject_id},
            )
            self._report_inconsistency(entry, exc)
            raise inconsistency from exc

        if not applied:
            stored = self.repository.get_ledger_entry(order_id)
            return self._replayed(stored or entry)

        logger.info(
            "Granted %s to %s until %s (order %s)",
            plan.plan_id,
            claims.customer_identity,
            grant.plan_expiry.isoformat(),
            order_id,
        )
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.PAYMENT_CAPTURED,
                order_id=order_id,
                actor_id=claims.customer_identity,
                metadata={"plan_id": plan.plan_id, "amount": _amount_text(entry.amount)},
            )
        )
        return ReconciliationResult(
            order_id=order_id,
            granted=True,
            plan_id=plan.plan_id,
            plan_expiry=grant.plan_expiry,
            ledger_entry=entry,
        )

    def _replayed(self, entry: PaymentLedgerEntry) -> ReconciliationResult:
        logger.info("Order %s already applied to %s", entry.order_id, entry.customer_identity)
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.PAYMENT_REPLAYED,
                order_id=entry.order_id,
                actor_id=entry.customer_identity,
            )
        )
        return ReconciliationResult(
            order_id=entry.order_id,
            granted=True,
            already_applied=True,
            plan_id=entry.plan_id,
            ledger_entry=entry,
        )

    def _report_inconsistency(self, entry: PaymentLedgerEntry, exc: Exception) -> None:
        logger.critical(
            "Reconciliation failed for order %s subject=%s plan=%s: %s",
            entry.order_id,
            entry.subject_id,
            entry.plan_id,
            exc,
        )
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.RECONCILIATION_FAILED,
                order_id=entry.order_id,
                actor_id=entry.customer_identity,
                metadata={"plan_id": entry.plan_id, "error": str(exc)},
            )
        )


def _amount_text(amount: Decimal) -> str:
    return f"{amount.quantize(Decimal('0.01'))}"


__all__ = [
    "BillingEventLogger",
    "BillingRepository",
    "BillingService",
    "build_plan_grant",
]
