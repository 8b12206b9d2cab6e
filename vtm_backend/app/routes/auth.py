"""API routes for sign-in, token refresh and session inspection."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas.auth import LoginRequest, SessionInfoResponse, SessionResponse, SyncRequest
from ..services.sessions import get_registration_service
from ..sessions import SessionClaims
from .dependencies import get_session_claims

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/auth/login", response_model=SessionResponse)
def login(payload: LoginRequest) -> SessionResponse:
    service = get_registration_service()
    grant = service.register_or_sync(payload.firebase_token, payload.to_profile())
    return SessionResponse.from_grant(grant)


@router.post("/auth/sync", response_model=SessionResponse)
def sync(payload: SyncRequest) -> SessionResponse:
    service = get_registration_service()
    grant = service.register_or_sync(
        payload.firebase_token,
        payload.to_profile(),
        create_if_missing=False,
    )
    return SessionResponse.from_grant(grant)


@router.get("/session", response_model=SessionInfoResponse)
def read_session(claims: SessionClaims = Depends(get_session_claims)) -> SessionInfoResponse:
    return SessionInfoResponse.from_claims(claims)


__all__ = ["router"]
