"""Tests for the registration and sync flow."""
from __future__ import annotations

from datetime import timedelta

import pytest

from vtm_backend.app.entitlements import EntitlementRecord
from vtm_backend.app.errors import InvalidCredential, NotFound, ValidationError
from vtm_backend.app.identity import CUSTOMER_ID_SEQUENCE, InMemorySequenceAllocator
from vtm_backend.app.registration import ProfileUpdate, RegistrationService, SurveyInput
from vtm_backend.app.sessions import SessionIssuer

from conftest import START, FakeClock, FakeIdentityVerifier, InMemoryEntitlementRepository


def test_first_registration_creates_free_record_with_identity(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
    issuer: SessionIssuer,
) -> None:
    grant = registration_service.register_or_sync(
        "alice-token",
        ProfileUpdate(country="in", language="en-US"),
    )

    assert grant.created is True
    assert grant.customer_identity == "VTM-20260130-1001"
    claims = issuer.verify(grant.token)
    assert claims.plan_id == "free"
    assert claims.is_pro is False
    assert claims.daily_quota_seconds == 5400

    record = entitlement_repository.get("alice")
    assert record is not None
    assert record.email == "alice@example.com"
    assert record.display_name == "Alice"
    assert record.analytics.country == "IN"
    assert record.analytics.input_language == "en-US"
    assert record.created_at == START


def test_repeat_sync_is_idempotent(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
    sequences: InMemorySequenceAllocator,
    clock: FakeClock,
) -> None:
    first = registration_service.register_or_sync("alice-token")
    clock.advance(hours=2)
    second = registration_service.register_or_sync("alice-token")

    assert second.created is False
    assert second.customer_identity == first.customer_identity
    assert sequences.peek(CUSTOMER_ID_SEQUENCE) == 1001
    assert len(entitlement_repository.records) == 1
    assert entitlement_repository.get("alice").last_seen_at == START + timedelta(hours=2)


def test_distinct_subjects_receive_distinct_identities(registration_service: RegistrationService) -> None:
    alice = registration_service.register_or_sync("alice-token")
    bob = registration_service.register_or_sync("bob-token")

    assert alice.customer_identity == "VTM-20260130-1001"
    assert bob.customer_identity == "VTM-20260130-1002"
    assert bob.claims.plan_id == "free"


def test_disallowed_language_is_rejected_before_any_mutation(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
    verifier: FakeIdentityVerifier,
    sequences: InMemorySequenceAllocator,
) -> None:
    with pytest.raises(ValidationError) as exc:
        registration_service.register_or_sync("alice-token", ProfileUpdate(language="martian"))

    assert exc.value.payload["field"] == "language"
    assert entitlement_repository.records == {}
    assert verifier.calls == []
    assert sequences.peek(CUSTOMER_ID_SEQUENCE) == 1000


@pytest.mark.parametrize(
    "profile",
    [
        ProfileUpdate(country="India"),
        ProfileUpdate(survey=SurveyInput(profession="astronaut")),
        ProfileUpdate(survey=SurveyInput(useCase="gaming")),
        ProfileUpdate(survey=SurveyInput(source="billboard")),
    ],
)
def test_disallowed_profile_values_are_rejected(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
    profile: ProfileUpdate,
) -> None:
    with pytest.raises(ValidationError):
        registration_service.register_or_sync("alice-token", profile)

    assert entitlement_repository.records == {}


def test_invalid_credential_creates_nothing(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
) -> None:
    with pytest.raises(InvalidCredential):
        registration_service.register_or_sync("forged-token")

    assert entitlement_repository.records == {}


def test_sync_without_creation_reports_unknown_subject(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
) -> None:
    with pytest.raises(NotFound):
        registration_service.register_or_sync("alice-token", create_if_missing=False)

    assert entitlement_repository.records == {}


def test_legacy_record_without_identity_is_repaired(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
    sequences: InMemorySequenceAllocator,
) -> None:
    entitlement_repository.records["alice"] = EntitlementRecord(subject_id="alice", customer_identity=None)

    grant = registration_service.register_or_sync("alice-token", create_if_missing=False)

    assert grant.created is False
    assert grant.customer_identity == "VTM-20260130-1001"
    assert entitlement_repository.get("alice").customer_identity == "VTM-20260130-1001"

    again = registration_service.register_or_sync("alice-token")
    assert again.customer_identity == "VTM-20260130-1001"
    assert sequences.peek(CUSTOMER_ID_SEQUENCE) == 1001


def test_survey_merge_keeps_previous_answers(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
) -> None:
    registration_service.register_or_sync(
        "alice-token",
        ProfileUpdate(survey=SurveyInput(profession="student", useCase="notes")),
    )
    registration_service.register_or_sync(
        "alice-token",
        ProfileUpdate(survey=SurveyInput(source="friend", profession="  ")),
    )

    survey = entitlement_repository.get("alice").analytics.survey
    assert survey.profession == "student"
    assert survey.use_case == "notes"
    assert survey.source == "friend"


def test_sync_never_writes_plan_fields(
    registration_service: RegistrationService,
    entitlement_repository: InMemoryEntitlementRepository,
) -> None:
    registration_service.register_or_sync("alice-token")
    paid = entitlement_repository.records["alice"].model_copy(
        update={
            "plan_id": "daily_4hr",
            "is_pro": True,
            "plan_expiry": START + timedelta(days=30),
            "daily_quota_seconds": 14400,
        }
    )
    entitlement_repository.records["alice"] = paid

    grant = registration_service.register_or_sync("alice-token", ProfileUpdate(language="hi-IN"))

    stored = entitlement_repository.get("alice")
    assert stored.plan_id == "daily_4hr"
    assert stored.daily_quota_seconds == 14400
    assert grant.claims.is_pro is True
    assert grant.claims.daily_quota_seconds == 14400
