"""PostgreSQL-backed sequence counters."""
from __future__ import annotations

from typing import Optional

from psycopg2.extensions import connection as PgConnection

from ..db import dict_cursor
from .allocator import DEFAULT_SEQUENCE_SEED


class PostgresSequenceAllocator:
    """Allocates sequence values with a single atomic upsert-and-increment.

    The counter row is created lazily at ``seed + 1`` so the first value handed
    out for a fresh key is ``seed + 1``, matching subsequent ``value + 1``
    increments.
    """

    def __init__(self, *, seed: int = DEFAULT_SEQUENCE_SEED, conn: Optional[PgConnection] = None) -> None:
        self._seed = seed
        self._conn = conn

    def next(self, key: str) -> int:
        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                """
                INSERT INTO sequence_counters (key, value)
                VALUES (%(key)s, %(seed)s + 1)
                ON CONFLICT (key) DO UPDATE SET value = sequence_counters.value + 1
                RETURNING value
                """,
                {"key": key, "seed": self._seed},
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError(f"Failed to allocate sequence value for {key}")
            return int(row["value"])


__all__ = ["PostgresSequenceAllocator"]
