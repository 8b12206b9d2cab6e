"""Application wiring for configuration, session issuance and registration."""
from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache

from ...config import AppConfig, load_app_config
from ..entitlements.repository import PostgresEntitlementRepository
from ..identity import FirebaseIdentityVerifier, IdentityAllocator, PostgresSequenceAllocator
from ..registration import RegistrationService
from ..sessions import SessionIssuer

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return load_app_config()


@lru_cache(maxsize=1)
def get_session_issuer() -> SessionIssuer:
    config = get_app_config()
    return SessionIssuer(
        config.jwt_secret_key,
        session_ttl=timedelta(minutes=config.session_ttl_minutes),
        payment_intent_ttl=timedelta(minutes=config.payment_intent_ttl_minutes),
    )


@lru_cache(maxsize=1)
def get_identity_verifier() -> FirebaseIdentityVerifier:
    config = get_app_config()
    if not config.firebase_project_id:
        raise RuntimeError("FIREBASE_PROJECT_ID must be configured to verify sign-in credentials")
    return FirebaseIdentityVerifier(
        config.firebase_project_id,
        timeout=config.external_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_registration_service() -> RegistrationService:
    config = get_app_config()
    sequences = PostgresSequenceAllocator(seed=config.customer_id_seed)
    service = RegistrationService(
        repository=PostgresEntitlementRepository(),
        identity_verifier=get_identity_verifier(),
        identity_allocator=IdentityAllocator(sequences, prefix=config.customer_id_prefix),
        session_issuer=get_session_issuer(),
    )
    logger.debug("Registration service configured prefix=%s", config.customer_id_prefix)
    return service


__all__ = [
    "get_app_config",
    "get_identity_verifier",
    "get_registration_service",
    "get_session_issuer",
]
