"""Error taxonomy shared by the identity, entitlement and billing flows."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status


@dataclass
class ServiceError(Exception):
    """Base class for domain failures surfaced to API callers."""

    message: str
    code: str = "service_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload

    @property
    def retryable(self) -> bool:
        return False

    def to_http_exception(self) -> HTTPException:
        """Convert the domain error into a FastAPI HTTPException."""

        return HTTPException(status_code=self.status_code, detail=dict(self.payload))


@dataclass
class ValidationError(ServiceError):
    """Bad input, rejected before any mutation."""

    code: str = "validation_error"
    status_code: int = status.HTTP_400_BAD_REQUEST


@dataclass
class InvalidPlan(ValidationError):
    code: str = "invalid_plan"


@dataclass
class AuthError(ServiceError):
    """Credential or token could not be trusted; the client must re-authenticate."""

    code: str = "auth_error"
    status_code: int = status.HTTP_401_UNAUTHORIZED


@dataclass
class InvalidCredential(AuthError):
    code: str = "invalid_credential"


@dataclass
class TokenExpired(AuthError):
    code: str = "token_expired"


@dataclass
class TokenMalformed(AuthError):
    code: str = "token_malformed"


@dataclass
class SignatureInvalid(AuthError):
    code: str = "signature_invalid"


@dataclass
class NotFound(ServiceError):
    code: str = "not_found"
    status_code: int = status.HTTP_404_NOT_FOUND


@dataclass
class ExternalServiceError(ServiceError):
    """Identity provider, payment processor or store unavailable."""

    code: str = "external_service_error"
    status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE

    @property
    def retryable(self) -> bool:
        return True


@dataclass
class ReconciliationInconsistency(ServiceError):
    """Money moved but entitlement and ledger state diverged.

    Requires operator attention. Callers must not retry automatically since a
    retry could apply the plan twice.
    """

    code: str = "reconciliation_inconsistency"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "AuthError",
    "ExternalServiceError",
    "InvalidCredential",
    "InvalidPlan",
    "NotFound",
    "ReconciliationInconsistency",
    "ServiceError",
    "SignatureInvalid",
    "TokenExpired",
    "TokenMalformed",
    "ValidationError",
]
