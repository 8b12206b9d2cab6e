"""API routes for quota-gated usage checks."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..feature_gates import SessionContext
from ..schemas.usage import UsageCheckRequest, UsageCheckResponse
from ..sessions import SessionClaims
from .dependencies import get_session_claims

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.post("/check", response_model=UsageCheckResponse)
def check_usage(
    payload: UsageCheckRequest,
    claims: SessionClaims = Depends(get_session_claims),
) -> UsageCheckResponse:
    context = SessionContext(claims)
    evaluation = context.evaluate_daily_quota(
        used_seconds=payload.used_seconds,
        requested_seconds=payload.requested_seconds,
    )
    return UsageCheckResponse.from_evaluation(evaluation, is_pro=context.is_pro)


@router.post("/authorize", response_model=UsageCheckResponse)
def authorize_usage(
    payload: UsageCheckRequest,
    claims: SessionClaims = Depends(get_session_claims),
) -> UsageCheckResponse:
    """Admit a dictation request, or fail with 403 once today's quota is spent."""

    context = SessionContext(claims)
    evaluation = context.assert_daily_quota(
        used_seconds=payload.used_seconds,
        requested_seconds=payload.requested_seconds,
    )
    return UsageCheckResponse.from_evaluation(evaluation, is_pro=context.is_pro)


__all__ = ["router"]
