"""Domain models for the billing system."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CaptureStatus(str, Enum):
    """Completion state reported by the payment processor for an order."""

    COMPLETED = "COMPLETED"
    INCOMPLETE = "INCOMPLETE"


class LedgerStatus(str, Enum):
    COMPLETED = "COMPLETED"


class CaptureResult(BaseModel):
    order_id: str
    status: CaptureStatus
    provider_status: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_completed(self) -> bool:
        return self.status == CaptureStatus.COMPLETED


class PaymentOrder(BaseModel):
    """An order created with the payment processor, awaiting buyer approval."""

    order_id: str
    plan_id: str
    amount: Decimal
    currency: str
    approve_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PaymentLink(BaseModel):
    """Hand-off from an authenticated session into the payment page."""

    url: str
    token: str
    plan_id: str
    price: Decimal
    expires_at: datetime

    model_config = ConfigDict(frozen=True)


class PaymentLedgerEntry(BaseModel):
    """Durable record of one successfully reconciled external order."""

    order_id: str
    subject_id: str
    customer_identity: str
    plan_id: str
    amount: Decimal
    currency: str = Field(default="USD", min_length=3, max_length=3)
    gateway: str = "PayPal"
    status: LedgerStatus = LedgerStatus.COMPLETED
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()


class ReconciliationResult(BaseModel):
    """Outcome of applying a captured order to a subject's entitlement."""

    order_id: str
    granted: bool
    already_applied: bool = False
    plan_id: Optional[str] = None
    plan_expiry: Optional[datetime] = None
    ledger_entry: Optional[PaymentLedgerEntry] = None

    model_config = ConfigDict(frozen=True)


class BillingAuditEventType(str, Enum):
    """Audit event categories emitted by the billing subsystem."""

    PAYMENT_LINK_ISSUED = "payment_link_issued"
    ORDER_CREATED = "order_created"
    PAYMENT_CAPTURED = "payment_captured"
    PAYMENT_REPLAYED = "payment_replayed"
    PAYMENT_INCOMPLETE = "payment_incomplete"
    RECONCILIATION_FAILED = "reconciliation_failed"


class BillingAuditEvent(BaseModel):
    """Structured audit event for analytics and operator alerting."""

    event_type: BillingAuditEventType
    order_id: Optional[str] = None
    actor_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)


__all__ = [
    "BillingAuditEvent",
    "BillingAuditEventType",
    "CaptureResult",
    "CaptureStatus",
    "LedgerStatus",
    "PaymentLedgerEntry",
    "PaymentLink",
    "PaymentOrder",
    "ReconciliationResult",
]
