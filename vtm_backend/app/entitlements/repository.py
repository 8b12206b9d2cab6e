"""Persistence layer for entitlement records."""
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from psycopg2.extensions import connection as PgConnection

from ..db import dict_cursor
from .models import AnalyticsProfile, EntitlementRecord, SurveyAnswers, UNKNOWN


class EntitlementRepository(Protocol):
    """Data access layer for entitlement records.

    Profile writes (``create``, ``save_profile``) never touch the plan fields;
    those are only written by payment reconciliation.
    """

    def get(self, subject_id: str) -> Optional[EntitlementRecord]:
        ...

    def create(self, record: EntitlementRecord) -> EntitlementRecord:
        """Insert ``record``; return the stored record if the subject already exists."""

    def assign_customer_identity(self, subject_id: str, customer_identity: str) -> EntitlementRecord:
        """Set the identity only when none is stored yet and return the stored record."""

    def save_profile(self, record: EntitlementRecord) -> EntitlementRecord:
        ...


_COLUMNS = """
    subject_id,
    customer_identity,
    email,
    display_name,
    plan_id,
    is_pro,
    plan_expiry,
    daily_quota_seconds,
    created_at,
    last_seen_at,
    country,
    input_language,
    survey_profession,
    survey_use_case,
    survey_source
"""


def row_to_record(row: Mapping[str, Any]) -> EntitlementRecord:
    return EntitlementRecord(
        subject_id=row["subject_id"],
        customer_identity=row.get("customer_identity"),
        email=row.get("email"),
        display_name=row.get("display_name"),
        plan_id=row["plan_id"],
        is_pro=bool(row["is_pro"]),
        plan_expiry=row.get("plan_expiry"),
        daily_quota_seconds=int(row["daily_quota_seconds"]),
        created_at=row["created_at"],
        last_seen_at=row["last_seen_at"],
        analytics=AnalyticsProfile(
            country=row.get("country"),
            input_language=row.get("input_language"),
            survey=SurveyAnswers(
                profession=row.get("survey_profession") or UNKNOWN,
                use_case=row.get("survey_use_case") or UNKNOWN,
                source=row.get("survey_source") or UNKNOWN,
            ),
        ),
    )


def _profile_params(record: EntitlementRecord) -> dict:
    return {
        "subject_id": record.subject_id,
        "email": record.email,
        "display_name": record.display_name,
        "last_seen_at": record.last_seen_at,
        "country": record.analytics.country,
        "input_language": record.analytics.input_language,
        "survey_profession": record.analytics.survey.profession,
        "survey_use_case": record.analytics.survey.use_case,
        "survey_source": record.analytics.survey.source,
    }


class PostgresEntitlementRepository:
    """Concrete repository persisting entitlement records in PostgreSQL."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    def get(self, subject_id: str) -> Optional[EntitlementRecord]:
        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                f"SELECT {_COLUMNS} FROM entitlement_records WHERE subject_id = %s LIMIT 1",
                (subject_id,),
            )
            row = cursor.fetchone()
            return row_to_record(row) if row else None

    def create(self, record: EntitlementRecord) -> EntitlementRecord:
        params = _profile_params(record)
        params.update(
            {
                "customer_identity": record.customer_identity,
                "plan_id": record.plan_id,
                "is_pro": record.is_pro,
                "plan_expiry": record.plan_expiry,
                "daily_quota_seconds": record.daily_quota_seconds,
                "created_at": record.created_at,
            }
        )
        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                f"""
                INSERT INTO entitlement_records ({_COLUMNS})
                VALUES (%(subject_id)s, %(customer_identity)s, %(email)s, %(display_name)s,
                        %(plan_id)s, %(is_pro)s, %(plan_expiry)s, %(daily_quota_seconds)s,
                        %(created_at)s, %(last_seen_at)s, %(country)s, %(input_language)s,
                        %(survey_profession)s, %(survey_use_case)s, %(survey_source)s)
                ON CONFLICT (subject_id) DO NOTHING
                RETURNING {_COLUMNS}
                """,
                params,
            )
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    f"SELECT {_COLUMNS} FROM entitlement_records WHERE subject_id = %s",
                    (record.subject_id,),
                )
                row = cursor.fetchone()
            if row is None:
                raise RuntimeError("Failed to persist entitlement record")
            return row_to_record(row)

    def assign_customer_identity(self, subject_id: str, customer_identity: str) -> EntitlementRecord:
        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                f"""
                UPDATE entitlement_records
                SET customer_identity = %s
                WHERE subject_id = %s AND customer_identity IS NULL
                RETURNING {_COLUMNS}
                """,
                (customer_identity, subject_id),
            )
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    f"SELECT {_COLUMNS} FROM entitlement_records WHERE subject_id = %s",
                    (subject_id,),
                )
                row = cursor.fetchone()
            if row is None:
                raise LookupError(f"Entitlement record not found for subject {subject_id}")
            return row_to_record(row)

    def save_profile(self, record: EntitlementRecord) -> EntitlementRecord:
        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                f"""
                UPDATE entitlement_records
                SET email = %(email)s,
                    display_name = %(display_name)s,
                    last_seen_at = %(last_seen_at)s,
                    country = %(country)s,
                    input_language = %(input_language)s,
                    survey_profession = %(survey_profession)s,
                    survey_use_case = %(survey_use_case)s,
                    survey_source = %(survey_source)s
                WHERE subject_id = %(subject_id)s
                RETURNING {_COLUMNS}
                """,
                _profile_params(record),
            )
            row = cursor.fetchone()
            if row is None:
                raise LookupError(f"Entitlement record not found for subject {record.subject_id}")
            return row_to_record(row)


__all__ = ["EntitlementRepository", "PostgresEntitlementRepository", "row_to_record"]
