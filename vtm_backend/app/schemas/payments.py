"""API schemas for payment endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import PaymentLink, PaymentOrder, ReconciliationResult
from ..entitlements.catalog import PlanDefinition
from ..sessions import PaymentIntentClaims


class CreateLinkRequest(BaseModel):
    plan_id: str = Field(alias="planId")

    model_config = ConfigDict(populate_by_name=True)


class PaymentLinkResponse(BaseModel):
    url: str
    payment_token: str = Field(alias="paymentToken")
    plan_id: str = Field(alias="planId")
    price: str
    expires_at: datetime = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_link(cls, link: PaymentLink) -> "PaymentLinkResponse":
        return cls(
            url=link.url,
            payment_token=link.token,
            plan_id=link.plan_id,
            price=f"{link.price:.2f}",
            expires_at=link.expires_at,
        )


class PaymentTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    valid: bool = True
    plan_id: str = Field(alias="planId")
    plan_name: str = Field(alias="planName")
    price: str
    expires_at: datetime = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_intent(cls, claims: PaymentIntentClaims, plan: PlanDefinition) -> "VerifyTokenResponse":
        return cls(
            plan_id=plan.plan_id,
            plan_name=plan.display_name,
            price=plan.price_text,
            expires_at=claims.expires_at,
        )


class CreateOrderResponse(BaseModel):
    order_id: str = Field(alias="orderId")
    approve_url: Optional[str] = Field(alias="approveUrl", default=None)
    amount: str
    currency: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_order(cls, order: PaymentOrder) -> "CreateOrderResponse":
        return cls(
            order_id=order.order_id,
            approve_url=order.approve_url,
            amount=f"{order.amount:.2f}",
            currency=order.currency,
        )


class CaptureRequest(BaseModel):
    order_id: str = Field(alias="orderID")
    token: str

    model_config = ConfigDict(populate_by_name=True)


class CaptureResponse(BaseModel):
    success: bool
    granted: bool
    already_applied: bool = Field(alias="alreadyApplied", default=False)
    order_id: str = Field(alias="orderId")
    plan_id: Optional[str] = Field(alias="planId", default=None)
    plan_expiry: Optional[datetime] = Field(alias="planExpiry", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "CaptureResponse":
        return cls(
            success=result.granted,
            granted=result.granted,
            already_applied=result.already_applied,
            order_id=result.order_id,
            plan_id=result.plan_id,
            plan_expiry=result.plan_expiry,
        )


__all__ = [
    "CaptureRequest",
    "CaptureResponse",
    "CreateLinkRequest",
    "CreateOrderResponse",
    "PaymentLinkResponse",
    "PaymentTokenRequest",
    "VerifyTokenResponse",
]
