"""Tests for signed session and payment-intent tokens."""
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from jose import jwt

from vtm_backend.app.entitlements import FREE_ENTITLEMENT, EffectiveEntitlement, get_plan_definition
from vtm_backend.app.errors import SignatureInvalid, TokenExpired, TokenMalformed
from vtm_backend.app.sessions import JWT_ALGORITHM, SessionIssuer

from conftest import START, FakeClock


def _pro_entitlement() -> EffectiveEntitlement:
    return EffectiveEntitlement(
        plan_id="pro_monthly",
        is_pro=True,
        plan_expiry=START + timedelta(days=30),
        daily_quota_seconds=-1,
    )


def test_session_round_trip_preserves_claims(issuer: SessionIssuer) -> None:
    issued, claims = issuer.issue("alice", "VTM-20260130-1001", _pro_entitlement())

    verified = issuer.verify(issued.token)

    assert verified == claims
    assert verified.customer_identity == "VTM-20260130-1001"
    assert verified.is_pro is True
    assert verified.plan_expiry == START + timedelta(days=30)
    assert verified.daily_quota_seconds == -1
    assert issued.expires_at == START + timedelta(hours=6)


def test_free_session_carries_no_plan_expiry(issuer: SessionIssuer) -> None:
    issued, _ = issuer.issue("alice", "VTM-20260130-1001", FREE_ENTITLEMENT)

    verified = issuer.verify(issued.token)

    assert verified.plan_id == "free"
    assert verified.plan_expiry is None
    assert verified.daily_quota_seconds == 5400


def test_expired_session_is_rejected(issuer: SessionIssuer, clock: FakeClock) -> None:
    issued, _ = issuer.issue("alice", "VTM-20260130-1001", FREE_ENTITLEMENT)

    clock.advance(hours=6)

    with pytest.raises(TokenExpired):
        issuer.verify(issued.token)


def test_tampered_payload_fails_signature_check(issuer: SessionIssuer) -> None:
    issued, _ = issuer.issue("alice", "VTM-20260130-1001", FREE_ENTITLEMENT)
    header, payload, signature = issued.token.split(".")
    forged = jwt.encode(
        {**jwt.get_unverified_claims(issued.token), "isPro": True},
        "test-secret",
        algorithm=JWT_ALGORITHM,
    ).split(".")[1]

    with pytest.raises(SignatureInvalid):
        issuer.verify(".".join([header, forged, signature]))


def test_token_signed_with_other_key_is_rejected(issuer: SessionIssuer, clock: FakeClock) -> None:
    other = SessionIssuer("another-secret", clock=clock)
    issued, _ = other.issue("alice", "VTM-20260130-1001", FREE_ENTITLEMENT)

    with pytest.raises(SignatureInvalid):
        issuer.verify(issued.token)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_malformed_tokens_are_rejected(issuer: SessionIssuer, token: str) -> None:
    with pytest.raises(TokenMalformed):
        issuer.verify(token)


def test_payment_intent_cannot_be_used_as_session(issuer: SessionIssuer) -> None:
    issued, _ = issuer.issue_payment_intent("alice", "VTM-20260130-1001", get_plan_definition("pro_monthly"))

    with pytest.raises(TokenMalformed):
        issuer.verify(issued.token)


def test_payment_intent_round_trip_and_short_lifetime(issuer: SessionIssuer, clock: FakeClock) -> None:
    issued, claims = issuer.issue_payment_intent("alice", "VTM-20260130-1001", get_plan_definition("pro_yearly"))

    verified = issuer.verify_payment_intent(issued.token)
    assert verified == claims
    assert verified.price == Decimal("35.99")
    assert issued.expires_at == START + timedelta(minutes=30)

    clock.advance(minutes=31)
    with pytest.raises(TokenExpired):
        issuer.verify_payment_intent(issued.token)


def test_expired_payment_intent_can_be_read_when_allowed(issuer: SessionIssuer, clock: FakeClock) -> None:
    issued, claims = issuer.issue_payment_intent("alice", "VTM-20260130-1001", get_plan_definition("pass_1day"))
    clock.advance(hours=2)

    assert issuer.verify_payment_intent(issued.token, allow_expired=True) == claims

    forged = SessionIssuer("other-secret", clock=clock).issue_payment_intent(
        "alice", "VTM-20260130-1001", get_plan_definition("pass_1day")
    )[0]
    with pytest.raises(SignatureInvalid):
        issuer.verify_payment_intent(forged.token, allow_expired=True)


def test_issuer_configuration_is_validated() -> None:
    with pytest.raises(ValueError):
        SessionIssuer("")
    with pytest.raises(ValueError):
        SessionIssuer("secret", session_ttl=timedelta(minutes=30), payment_intent_ttl=timedelta(minutes=30))
