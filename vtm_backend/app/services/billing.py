"""Application wiring for the billing service."""
from __future__ import annotations

import logging
from functools import lru_cache

from ..billing import (
    BillingAuditEvent,
    BillingEventLogger,
    BillingService,
    PaymentProcessor,
    PayPalPaymentProcessor,
    SandboxPaymentProcessor,
)
from ..billing.repository import PostgresBillingRepository
from .sessions import get_app_config, get_session_issuer


logger = logging.getLogger("billing")


class LoggingBillingEventLogger(BillingEventLogger):
    """Simple event logger forwarding billing audit events to logging."""

    def log(self, event: BillingAuditEvent) -> None:
        logger.info(
            "Billing event %s order=%s actor=%s metadata=%s",
            event.event_type.value,
            event.order_id,
            event.actor_id,
            event.metadata,
        )


def build_payment_processor() -> PaymentProcessor:
    config = get_app_config()
    if not config.payment_processor_enabled:
        logger.warning("PayPal credentials missing; using sandbox payment processor")
        return SandboxPaymentProcessor()
    return PayPalPaymentProcessor(
        client_id=config.paypal_client_id or "",
        client_secret=config.paypal_client_secret or "",
        base_url=config.paypal_base_url,
        timeout=config.external_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_billing_service() -> BillingService:
    config = get_app_config()
    service = BillingService(
        repository=PostgresBillingRepository(),
        processor=build_payment_processor(),
        session_issuer=get_session_issuer(),
        event_logger=LoggingBillingEventLogger(),
        app_base_url=config.app_base_url,
        currency=config.payment_currency,
    )
    return service


__all__ = ["build_payment_processor", "get_billing_service", "LoggingBillingEventLogger"]
