"""Registration and sync: find-or-create the entitlement record, then issue a session."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..entitlements.evaluator import evaluate
from ..entitlements.models import AnalyticsProfile, EntitlementRecord, SurveyAnswers
from ..entitlements.repository import EntitlementRepository
from ..errors import NotFound
from ..identity.allocator import IdentityAllocator
from ..identity.verifier import IdentityVerifier, VerifiedIdentity
from ..sessions.issuer import SessionIssuer
from .models import ProfileUpdate, SessionGrant
from .validation import validate_profile

logger = logging.getLogger("registration")

DEFAULT_DISPLAY_NAME = "User"


def merge_analytics(existing: AnalyticsProfile, profile: ProfileUpdate) -> AnalyticsProfile:
    """Overlay supplied profile fields onto ``existing``; absent fields keep their prior value."""

    survey = existing.survey
    if profile.survey is not None:
        survey = SurveyAnswers(
            profession=profile.survey.profession or survey.profession,
            use_case=profile.survey.use_case or survey.use_case,
            source=profile.survey.source or survey.source,
        )
    return AnalyticsProfile(
        country=profile.country.upper() if profile.country else existing.country,
        input_language=profile.language or existing.input_language,
        survey=survey,
    )


def _current_time(clock: Optional[Callable[[], datetime]]) -> datetime:
    if clock is None:
        return datetime.now(timezone.utc)
    value = clock()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class RegistrationService:
    """Coordinates identity verification, record upkeep and session issuance."""

    repository: EntitlementRepository
    identity_verifier: IdentityVerifier
    identity_allocator: IdentityAllocator
    session_issuer: SessionIssuer
    clock: Optional[Callable[[], datetime]] = None

    def register_or_sync(
        self,
        credential: str,
        profile: Optional[ProfileUpdate] = None,
        *,
        create_if_missing: bool = True,
    ) -> SessionGrant:
        """Register a first-time subject or refresh a returning one.

        Safe to call repeatedly: a returning subject only has its profile
        merged and ``last_seen_at`` bumped before a new token is issued.
        Plan fields are never written here.
        """

        profile = profile or ProfileUpdate()
        validate_profile(profile)

        identity = self.identity_verifier.verify(credential)
        now = _current_time(self.clock)

        created = False
        record = self.repository.get(identity.subject_id)
        if record is None:
            if not create_if_missing:
                raise NotFound(
                    "No entitlement record for subject",
                    detail={"subject_id": identity.subject_id},
                )
            record = self._create_record(identity, now)
            created = True

        record = self._ensure_customer_identity(record)

        merged = record.model_copy(
            update={
                "email": identity.email or record.email,
                "display_name": identity.display_name or record.display_name or DEFAULT_DISPLAY_NAME,
                "last_seen_at": now,
                "analytics": merge_analytics(record.analytics, profile),
            }
        )
        stored = self.repository.save_profile(merged)

        effective = evaluate(stored, now)
        issued, claims = self.session_issuer.issue(stored.subject_id, stored.customer_identity, effective)
        logger.info(
            "Issued session for %s plan=%s pro=%s created=%s",
            stored.customer_identity,
            claims.plan_id,
            claims.is_pro,
            created,
        )
        return SessionGrant(token=issued.token, expires_at=issued.expires_at, claims=claims, created=created)

    def _create_record(self, identity: VerifiedIdentity, now: datetime) -> EntitlementRecord:
        customer_identity = self.identity_allocator.allocate_if_absent(None)
        record = EntitlementRecord(
            subject_id=identity.subject_id,
            customer_identity=customer_identity,
            email=identity.email,
            display_name=identity.display_name or DEFAULT_DISPLAY_NAME,
            created_at=now,
            last_seen_at=now,
        )
        stored = self.repository.create(record)
        if stored.customer_identity != customer_identity:
            logger.info(
                "Concurrent registration for %s kept %s, discarded %s",
                identity.subject_id,
                stored.customer_identity,
                customer_identity,
            )
        else:
            logger.info("Created entitlement record %s", customer_identity)
        return stored

    def _ensure_customer_identity(self, record: EntitlementRecord) -> EntitlementRecord:
        """Backfill an identity on records that predate identity assignment."""

        if record.customer_identity:
            return record
        customer_identity = self.identity_allocator.allocate_if_absent(record.customer_identity)
        repaired = self.repository.assign_customer_identity(record.subject_id, customer_identity)
        logger.info("Backfilled customer identity %s for %s", repaired.customer_identity, record.subject_id)
        return repaired


__all__ = ["RegistrationService", "merge_analytics"]
