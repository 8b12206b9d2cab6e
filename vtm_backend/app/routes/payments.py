"""API routes exposing the payment flow."""
from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from ..entitlements.catalog import list_plans
from ..errors import AuthError, InvalidPlan
from ..schemas.payments import (
    CaptureRequest,
    CaptureResponse,
    CreateLinkRequest,
    CreateOrderResponse,
    PaymentLinkResponse,
    PaymentTokenRequest,
    VerifyTokenResponse,
)
from ..services.billing import get_billing_service
from .dependencies import get_session_token

router = APIRouter(prefix="/api/payment", tags=["payment"])


@router.get("/plans")
def read_plans() -> List[Dict[str, object]]:
    return [
        {
            "planId": plan.plan_id,
            "name": plan.display_name,
            "price": plan.price_text,
            "days": plan.validity_days,
            "dailyQuotaSeconds": plan.quota_seconds,
        }
        for plan in list_plans().values()
    ]


@router.post("/create-link", response_model=PaymentLinkResponse)
def create_payment_link(
    payload: CreateLinkRequest,
    session_token: str = Depends(get_session_token),
) -> PaymentLinkResponse:
    link = get_billing_service().issue_payment_intent(session_token, payload.plan_id)
    return PaymentLinkResponse.from_link(link)


@router.post("/verify-token", response_model=VerifyTokenResponse)
def verify_payment_token(payload: PaymentTokenRequest):
    try:
        claims, plan = get_billing_service().describe_payment_intent(payload.token)
    except (AuthError, InvalidPlan) as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "error": exc.code, "message": exc.message},
        )
    return VerifyTokenResponse.from_intent(claims, plan)


@router.post("/create-order", response_model=CreateOrderResponse)
def create_order(payload: PaymentTokenRequest) -> CreateOrderResponse:
    order = get_billing_service().create_order(payload.token)
    return CreateOrderResponse.from_order(order)


@router.post("/capture", response_model=CaptureResponse)
def capture_order(payload: CaptureRequest, response: Response) -> CaptureResponse:
    result = get_billing_service().reconcile_payment(payload.order_id, payload.token)
    if not result.granted:
        response.status_code = status.HTTP_402_PAYMENT_REQUIRED
    return CaptureResponse.from_result(result)


__all__ = ["router"]
