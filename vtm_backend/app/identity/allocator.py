"""Customer identity allocation on top of an atomic sequence counter."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

CUSTOMER_ID_SEQUENCE = "customerId"
DEFAULT_SEQUENCE_SEED = 1000
DEFAULT_PREFIX = "VTM"


class SequenceAllocator(Protocol):
    """Durable, atomically incrementing counters keyed by name."""

    def next(self, key: str) -> int:
        """Increment the counter for ``key`` and return the post-increment value."""


class InMemorySequenceAllocator:
    """Process-local allocator for tests and local development."""

    def __init__(self, *, seed: int = DEFAULT_SEQUENCE_SEED) -> None:
        self._seed = seed
        self._values: Dict[str, int] = {}
        self._lock = threading.Lock()

    def next(self, key: str) -> int:
        with self._lock:
            value = self._values.get(key, self._seed) + 1
            self._values[key] = value
            return value

    def peek(self, key: str) -> int:
        with self._lock:
            return self._values.get(key, self._seed)


def format_customer_identity(prefix: str, day: datetime, sequence: int) -> str:
    """Render ``PREFIX-YYYYMMDD-<seq>`` using the UTC calendar date of ``day``."""

    if day.tzinfo is None:
        day = day.replace(tzinfo=timezone.utc)
    utc_day = day.astimezone(timezone.utc)
    return f"{prefix}-{utc_day:%Y%m%d}-{sequence}"


class IdentityAllocator:
    """Assigns public customer identities, at most once per subject."""

    def __init__(
        self,
        sequences: SequenceAllocator,
        *,
        prefix: str = DEFAULT_PREFIX,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._sequences = sequences
        self._prefix = prefix
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def allocate_if_absent(self, existing_identity: Optional[str]) -> str:
        if existing_identity:
            return existing_identity

        today = self._clock()
        sequence = self._sequences.next(CUSTOMER_ID_SEQUENCE)
        identity = format_customer_identity(self._prefix, today, sequence)
        logger.info("Allocated customer identity %s", identity)
        return identity


__all__ = [
    "CUSTOMER_ID_SEQUENCE",
    "DEFAULT_PREFIX",
    "DEFAULT_SEQUENCE_SEED",
    "IdentityAllocator",
    "InMemorySequenceAllocator",
    "SequenceAllocator",
    "format_customer_identity",
]
