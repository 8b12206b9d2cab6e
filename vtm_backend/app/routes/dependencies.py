"""Shared FastAPI dependencies for session-authenticated routes."""
from __future__ import annotations

from typing import Optional

from fastapi import Header

from ..errors import AuthError
from ..sessions import SessionClaims
from ..services.sessions import get_session_issuer

SESSION_HEADER = "x-session-token"


def get_session_claims(
    session_token: Optional[str] = Header(None, alias=SESSION_HEADER),
) -> SessionClaims:
    if not session_token:
        raise AuthError("Session token required", detail={"header": SESSION_HEADER})
    return get_session_issuer().verify(session_token)


def get_session_token(
    session_token: Optional[str] = Header(None, alias=SESSION_HEADER),
) -> str:
    if not session_token:
        raise AuthError("Session token required", detail={"header": SESSION_HEADER})
    return session_token


__all__ = ["SESSION_HEADER", "get_session_claims", "get_session_token"]
