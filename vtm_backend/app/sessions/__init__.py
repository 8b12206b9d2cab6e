"""Signed session and payment-intent tokens."""

from .issuer import JWT_ALGORITHM, SessionIssuer
from .models import IssuedToken, PaymentIntentClaims, SessionClaims, TokenType

__all__ = [
    "JWT_ALGORITHM",
    "IssuedToken",
    "PaymentIntentClaims",
    "SessionClaims",
    "SessionIssuer",
    "TokenType",
]
