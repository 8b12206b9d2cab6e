"""Shared in-memory fakes and fixtures for the backend test suite."""
from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pytest

from vtm_backend.app.billing import (
    BillingAuditEvent,
    BillingService,
    CaptureResult,
    CaptureStatus,
    PaymentLedgerEntry,
)
from vtm_backend.app.billing.service import BillingEventLogger, BillingRepository
from vtm_backend.app.entitlements.models import EntitlementRecord, PlanGrant
from vtm_backend.app.entitlements.repository import EntitlementRepository
from vtm_backend.app.errors import ExternalServiceError, InvalidCredential, ReconciliationInconsistency
from vtm_backend.app.identity import IdentityAllocator, InMemorySequenceAllocator, VerifiedIdentity
from vtm_backend.app.registration import RegistrationService
from vtm_backend.app.sessions import SessionIssuer

START = datetime(2026, 1, 30, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryEntitlementRepository(EntitlementRepository):
    def __init__(self) -> None:
        self.records: Dict[str, EntitlementRecord] = {}
        self.lock = threading.Lock()
        self.profile_writes = 0

    def get(self, subject_id: str) -> Optional[EntitlementRecord]:
        return self.records.get(subject_id)

    def create(self, record: EntitlementRecord) -> EntitlementRecord:
        with self.lock:
            return self.records.setdefault(record.subject_id, record)

    def assign_customer_identity(self, subject_id: str, customer_identity: str) -> EntitlementRecord:
        with self.lock:
            record = self.records.get(subject_id)
            if record is None:
                raise LookupError(subject_id)
            if record.customer_identity is None:
                record = record.model_copy(update={"customer_identity": customer_identity})
                self.records[subject_id] = record
            return record

    def save_profile(self, record: EntitlementRecord) -> EntitlementRecord:
        with self.lock:
            stored = self.records.get(record.subject_id)
            if stored is None:
                raise LookupError(record.subject_id)
            updated = stored.model_copy(
                update={
                    "email": record.email,
                    "display_name": record.display_name,
                    "last_seen_at": record.last_seen_at,
                    "analytics": record.analytics,
                }
            )
            self.records[record.subject_id] = updated
            self.profile_writes += 1
            return updated


class InMemoryBillingRepository(BillingRepository):
    def __init__(self, entitlements: InMemoryEntitlementRepository) -> None:
        self.entitlements = entitlements
        self.ledger: Dict[str, PaymentLedgerEntry] = {}
        self.grants_applied = 0
        self.fail_with: Optional[Exception] = None

    def get_ledger_entry(self, order_id: str) -> Optional[PaymentLedgerEntry]:
        return self.ledger.get(order_id)

    def apply_payment(self, entry: PaymentLedgerEntry, grant: PlanGrant) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        with self.entitlements.lock:
            if entry.order_id in self.ledger:
                return False
            record = self.entitlements.records.get(entry.subject_id)
            if record is None:
                raise ReconciliationInconsistency(
                    "Ledger entry recorded but no entitlement record was updated",
                    detail={"order_id": entry.order_id},
                )
            self.entitlements.records[entry.subject_id] = record.model_copy(
                update={
                    "plan_id": grant.plan_id,
                    "is_pro": grant.is_pro,
                    "plan_expiry": grant.plan_expiry,
                    "daily_quota_seconds": grant.daily_quota_seconds,
                }
            )
            self.ledger[entry.order_id] = entry
            self.grants_applied += 1
            return True


class FakeIdentityVerifier:
    def __init__(self) -> None:
        self.identities: Dict[str, VerifiedIdentity] = {}
        self.calls: List[str] = []

    def add(self, credential: str, subject_id: str, *, email: Optional[str] = None, name: Optional[str] = None) -> None:
        self.identities[credential] = VerifiedIdentity(subject_id=subject_id, email=email, display_name=name)

    def verify(self, credential: str) -> VerifiedIdentity:
        self.calls.append(credential)
        identity = self.identities.get(credential)
        if identity is None:
            raise InvalidCredential("Credential rejected")
        return identity


class FakePaymentProcessor:
    def __init__(self) -> None:
        self.statuses: Dict[str, CaptureStatus] = {}
        self.created: List[Tuple[Decimal, str, str]] = []
        self.captures: List[str] = []
        self.unavailable = False

    def create_order(self, *, amount: Decimal, currency: str, description: str, reference_id: str):
        if self.unavailable:
            raise ExternalServiceError("Payment processor unavailable")
        order_id = f"ORDER-{len(self.created) + 1}"
        self.created.append((amount, currency, reference_id))
        self.statuses.setdefault(order_id, CaptureStatus.COMPLETED)
        return order_id, f"https://paypal.test/approve/{order_id}"

    def capture_order(self, order_id: str) -> CaptureResult:
        if self.unavailable:
            raise ExternalServiceError("Payment processor unavailable")
        self.captures.append(order_id)
        status = self.statuses.get(order_id, CaptureStatus.COMPLETED)
        return CaptureResult(order_id=order_id, status=status, provider_status=status.value)


class RecordingEventLogger(BillingEventLogger):
    def __init__(self) -> None:
        self.events: List[BillingAuditEvent] = []

    def log(self, event: BillingAuditEvent) -> None:
        self.events.append(event)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sequences() -> InMemorySequenceAllocator:
    return InMemorySequenceAllocator(seed=1000)


@pytest.fixture
def entitlement_repository() -> InMemoryEntitlementRepository:
    return InMemoryEntitlementRepository()


@pytest.fixture
def verifier() -> FakeIdentityVerifier:
    fake = FakeIdentityVerifier()
    fake.add("alice-token", "alice", email="alice@example.com", name="Alice")
    fake.add("bob-token", "bob", email="bob@example.com")
    return fake


@pytest.fixture
def issuer(clock: FakeClock) -> SessionIssuer:
    return SessionIssuer("test-secret", clock=clock)


@pytest.fixture
def registration_service(
    entitlement_repository: InMemoryEntitlementRepository,
    verifier: FakeIdentityVerifier,
    sequences: InMemorySequenceAllocator,
    issuer: SessionIssuer,
    clock: FakeClock,
) -> RegistrationService:
    return RegistrationService(
        repository=entitlement_repository,
        identity_verifier=verifier,
        identity_allocator=IdentityAllocator(sequences, prefix="VTM", clock=clock),
        session_issuer=issuer,
        clock=clock,
    )


@pytest.fixture
def billing_repository(entitlement_repository: InMemoryEntitlementRepository) -> InMemoryBillingRepository:
    return InMemoryBillingRepository(entitlement_repository)


@pytest.fixture
def processor() -> FakePaymentProcessor:
    return FakePaymentProcessor()


@pytest.fixture
def event_logger() -> RecordingEventLogger:
    return RecordingEventLogger()


@pytest.fixture
def billing_service(
    billing_repository: InMemoryBillingRepository,
    processor: FakePaymentProcessor,
    issuer: SessionIssuer,
    event_logger: RecordingEventLogger,
    clock: FakeClock,
) -> BillingService:
    return BillingService(
        repository=billing_repository,
        processor=processor,
        session_issuer=issuer,
        event_logger=event_logger,
        app_base_url="https://app.test",
        clock=clock,
    )
