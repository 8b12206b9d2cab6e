"""Issues and verifies signed session and payment-intent tokens."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError
from pydantic import ValidationError as PydanticValidationError

from ..entitlements.catalog import PlanDefinition
from ..entitlements.models import EffectiveEntitlement
from ..errors import SignatureInvalid, TokenExpired, TokenMalformed
from .models import IssuedToken, PaymentIntentClaims, SessionClaims, TokenType

JWT_ALGORITHM = "HS256"


class SessionIssuer:
    """Signs capability snapshots with a process-wide HMAC key.

    Session tokens live for hours and payment-intent tokens for minutes; each
    carries a ``typ`` claim so one kind is never accepted in place of the
    other. Expiry is checked against the injected clock rather than wall time.
    """

    def __init__(
        self,
        secret: str,
        *,
        session_ttl: timedelta = timedelta(hours=6),
        payment_intent_ttl: timedelta = timedelta(minutes=30),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not secret:
            raise ValueError("secret must be provided")
        if payment_intent_ttl >= session_ttl:
            raise ValueError("payment_intent_ttl must be shorter than session_ttl")
        self._secret = secret
        self._session_ttl = session_ttl
        self._payment_intent_ttl = payment_intent_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.replace(microsecond=0)

    def issue(
        self,
        subject_id: str,
        customer_identity: str,
        effective: EffectiveEntitlement,
    ) -> tuple[IssuedToken, SessionClaims]:
        issued_at = self._now()
        claims = SessionClaims(
            customer_identity=customer_identity,
            subject_id=subject_id,
            plan_id=effective.plan_id,
            is_pro=effective.is_pro,
            plan_expiry=effective.plan_expiry,
            daily_quota_seconds=effective.daily_quota_seconds,
            issued_at=issued_at,
            expires_at=issued_at + self._session_ttl,
        )
        token = jwt.encode(claims.to_jwt_claims(), self._secret, algorithm=JWT_ALGORITHM)
        return IssuedToken(token=token, expires_at=claims.expires_at), claims

    def verify(self, token: str) -> SessionClaims:
        payload = self._decode(token, TokenType.SESSION)
        try:
            return SessionClaims.from_jwt_claims(payload)
        except (KeyError, TypeError, ValueError, PydanticValidationError) as exc:
            raise TokenMalformed("Session token payload is malformed") from exc

    def issue_payment_intent(
        self,
        subject_id: str,
        customer_identity: str,
        plan: PlanDefinition,
    ) -> tuple[IssuedToken, PaymentIntentClaims]:
        issued_at = self._now()
        claims = PaymentIntentClaims(
            subject_id=subject_id,
            customer_identity=customer_identity,
            plan_id=plan.plan_id,
            price=plan.price,
            issued_at=issued_at,
            expires_at=issued_at + self._payment_intent_ttl,
        )
        token = jwt.encode(claims.to_jwt_claims(), self._secret, algorithm=JWT_ALGORITHM)
        return IssuedToken(token=token, expires_at=claims.expires_at), claims

    def verify_payment_intent(self, token: str, *, allow_expired: bool = False) -> PaymentIntentClaims:
        """Return the intent claims; ``allow_expired`` still checks signature and type."""

        payload = self._decode(token, TokenType.PAYMENT_INTENT, allow_expired=allow_expired)
        try:
            return PaymentIntentClaims.from_jwt_claims(payload)
        except (KeyError, TypeError, ValueError, ArithmeticError, PydanticValidationError) as exc:
            raise TokenMalformed("Payment token payload is malformed") from exc

    def _decode(self, token: str, expected: TokenType, *, allow_expired: bool = False) -> Dict[str, Any]:
        if not token:
            raise TokenMalformed("Token missing")
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise TokenMalformed("Token could not be decoded") from exc

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTClaimsError as exc:
            raise TokenMalformed("Token claims are invalid") from exc
        except JWTError as exc:
            raise SignatureInvalid("Token signature is invalid") from exc

        if payload.get("typ") != expected.value:
            raise TokenMalformed(
                "Unexpected token type",
                detail={"expected": expected.value},
            )
        expires_at = payload.get("exp")
        if not isinstance(expires_at, int):
            raise TokenMalformed("Token missing expiry")
        if not allow_expired and self._now().timestamp() >= expires_at:
            raise TokenExpired("Token expired")
        return payload


__all__ = ["JWT_ALGORITHM", "SessionIssuer"]
