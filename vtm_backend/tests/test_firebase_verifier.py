"""Tests for Firebase ID token verification."""
from __future__ import annotations

import time
from typing import Any, Dict, List

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from vtm_backend.app.errors import ExternalServiceError, InvalidCredential
from vtm_backend.app.identity import FirebaseIdentityVerifier

PROJECT_ID = "voice-typing-master"


@pytest.fixture(scope="module")
def signing_key() -> Dict[str, Any]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    public_jwk = jwk.construct(public_pem, algorithm="RS256").to_dict()
    public_jwk["kid"] = "key-1"
    return {"private_pem": private_pem, "jwk": public_jwk}


class FakeFetcher:
    def __init__(self, jwks: Dict[str, Any]) -> None:
        self.jwks = jwks
        self.calls: List[str] = []

    def __call__(self, url: str, timeout: float) -> Dict[str, Any]:
        self.calls.append(url)
        return self.jwks


def _credential(signing_key: Dict[str, Any], **overrides: Any) -> str:
    now = int(time.time())
    claims = {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "sub": "firebase-uid-alice",
        "email": "alice@example.com",
        "name": "Alice",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, signing_key["private_pem"], algorithm="RS256", headers={"kid": "key-1"})


def test_valid_credential_yields_identity(signing_key: Dict[str, Any]) -> None:
    fetcher = FakeFetcher({"keys": [signing_key["jwk"]]})
    verifier = FirebaseIdentityVerifier(PROJECT_ID, fetcher=fetcher)

    identity = verifier.verify(_credential(signing_key))
    verifier.verify(_credential(signing_key))

    assert identity.subject_id == "firebase-uid-alice"
    assert identity.email == "alice@example.com"
    assert identity.display_name == "Alice"
    assert len(fetcher.calls) == 1


def test_credential_for_other_project_is_rejected(signing_key: Dict[str, Any]) -> None:
    verifier = FirebaseIdentityVerifier(PROJECT_ID, fetcher=FakeFetcher({"keys": [signing_key["jwk"]]}))

    with pytest.raises(InvalidCredential):
        verifier.verify(_credential(signing_key, aud="someone-else"))


def test_expired_credential_is_rejected(signing_key: Dict[str, Any]) -> None:
    verifier = FirebaseIdentityVerifier(PROJECT_ID, fetcher=FakeFetcher({"keys": [signing_key["jwk"]]}))

    with pytest.raises(InvalidCredential):
        verifier.verify(_credential(signing_key, exp=int(time.time()) - 60))


def test_unknown_signing_key_is_rejected(signing_key: Dict[str, Any]) -> None:
    verifier = FirebaseIdentityVerifier(PROJECT_ID, fetcher=FakeFetcher({"keys": []}))

    with pytest.raises(InvalidCredential):
        verifier.verify(_credential(signing_key))


@pytest.mark.parametrize("credential", ["", "garbage"])
def test_malformed_credential_is_rejected(credential: str) -> None:
    verifier = FirebaseIdentityVerifier(PROJECT_ID, fetcher=FakeFetcher({"keys": []}))

    with pytest.raises(InvalidCredential):
        verifier.verify(credential)


def test_key_fetch_failure_is_retryable(signing_key: Dict[str, Any]) -> None:
    def failing_fetcher(url: str, timeout: float) -> Dict[str, Any]:
        raise ExternalServiceError("Identity provider unavailable")

    verifier = FirebaseIdentityVerifier(PROJECT_ID, fetcher=failing_fetcher)

    with pytest.raises(ExternalServiceError):
        verifier.verify(_credential(signing_key))
