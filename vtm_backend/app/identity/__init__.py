"""Customer identity allocation and external credential verification."""

from .allocator import (
    CUSTOMER_ID_SEQUENCE,
    IdentityAllocator,
    InMemorySequenceAllocator,
    SequenceAllocator,
    format_customer_identity,
)
from .repository import PostgresSequenceAllocator
from .verifier import FirebaseIdentityVerifier, IdentityVerifier, VerifiedIdentity

__all__ = [
    "CUSTOMER_ID_SEQUENCE",
    "FirebaseIdentityVerifier",
    "IdentityAllocator",
    "IdentityVerifier",
    "InMemorySequenceAllocator",
    "PostgresSequenceAllocator",
    "SequenceAllocator",
    "VerifiedIdentity",
    "format_customer_identity",
]
