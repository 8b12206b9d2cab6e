"""Billing domain services and models."""

from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    CaptureResult,
    CaptureStatus,
    LedgerStatus,
    PaymentLedgerEntry,
    PaymentLink,
    PaymentOrder,
    ReconciliationResult,
)
from .processor import PayPalPaymentProcessor, PaymentProcessor, SandboxPaymentProcessor
from .service import BillingEventLogger, BillingRepository, BillingService, build_plan_grant

__all__ = [
    "BillingAuditEvent",
    "BillingAuditEventType",
    "BillingEventLogger",
    "BillingRepository",
    "BillingService",
    "CaptureResult",
    "CaptureStatus",
    "LedgerStatus",
    "PayPalPaymentProcessor",
    "PaymentLedgerEntry",
    "PaymentLink",
    "PaymentOrder",
    "PaymentProcessor",
    "ReconciliationResult",
    "SandboxPaymentProcessor",
    "build_plan_grant",
]
