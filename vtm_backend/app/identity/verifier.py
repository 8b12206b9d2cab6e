"""Verification of bearer credentials issued by the external identity provider."""
from __future__ import annotations

import json
import logging
import socket
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol
from urllib import error as urllib_error, request as urllib_request

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError
from pydantic import BaseModel, ConfigDict

from ..errors import ExternalServiceError, InvalidCredential

logger = logging.getLogger(__name__)

FIREBASE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
)
FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"


class VerifiedIdentity(BaseModel):
    """Stable subject and profile fields extracted from a verified credential."""

    subject_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class IdentityVerifier(Protocol):
    def verify(self, credential: str) -> VerifiedIdentity:
        """Return the verified identity or raise :class:`InvalidCredential`."""


JwksFetcher = Callable[[str, float], Dict[str, Any]]


def _fetch_jwks(url: str, timeout: float) -> Dict[str, Any]:
    try:
        with urllib_request.urlopen(url, timeout=timeout) as response:
            body = response.read()
        return json.loads(body.decode("utf-8"))
    except (urllib_error.URLError, socket.timeout, json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Identity provider key fetch failed", extra={"jwks_url": url, "error": str(exc)})
        raise ExternalServiceError("Identity provider unavailable") from exc


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens against Google's published signing keys."""

    def __init__(
        self,
        project_id: str,
        *,
        timeout: float = 10.0,
        cache_ttl_seconds: int = 3600,
        jwks_url: str = FIREBASE_JWKS_URL,
        fetcher: Optional[JwksFetcher] = None,
    ) -> None:
        if not project_id:
            raise ValueError("project_id must be provided")
        self._project_id = project_id
        self._timeout = timeout
        self._cache_ttl = cache_ttl_seconds
        self._jwks_url = jwks_url
        self._fetcher = fetcher or _fetch_jwks
        self._keys: Dict[str, Dict[str, Any]] = {}
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def _signing_key(self, kid: str) -> Dict[str, Any]:
        with self._lock:
            stale = time.monotonic() - self._fetched_at > self._cache_ttl
            if stale or kid not in self._keys:
                jwks = self._fetcher(self._jwks_url, self._timeout)
                self._keys = {key["kid"]: key for key in jwks.get("keys", []) if "kid" in key}
                self._fetched_at = time.monotonic()
            key = self._keys.get(kid)
        if key is None:
            raise InvalidCredential("Credential signed with an unknown key")
        return key

    def verify(self, credential: str) -> VerifiedIdentity:
        if not credential:
            raise InvalidCredential("Credential missing")
        try:
            header = jwt.get_unverified_header(credential)
        except JWTError as exc:
            raise InvalidCredential("Credential is not a valid token") from exc

        kid = header.get("kid")
        if not kid:
            raise InvalidCredential("Credential header missing key id")

        try:
            claims = jwt.decode(
                credential,
                self._signing_key(kid),
                algorithms=["RS256"],
                audience=self._project_id,
                issuer=f"{FIREBASE_ISSUER_PREFIX}{self._project_id}",
                options={"verify_at_hash": False},
            )
        except ExpiredSignatureError as exc:
            raise InvalidCredential("Credential expired") from exc
        except (JWTClaimsError, JWTError) as exc:
            raise InvalidCredential("Credential rejected") from exc

        subject = claims.get("sub")
        if not subject:
            raise InvalidCredential("Credential missing subject")
        return VerifiedIdentity(
            subject_id=str(subject),
            email=claims.get("email"),
            display_name=claims.get("name"),
        )


__all__ = ["FirebaseIdentityVerifier", "IdentityVerifier", "VerifiedIdentity"]
