"""Persistence layer for the payment ledger."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from psycopg2.extensions import connection as PgConnection

from ..db import dict_cursor
from ..entitlements.models import PlanGrant
from ..errors import ReconciliationInconsistency
from .models import LedgerStatus, PaymentLedgerEntry


def _row_to_ledger_entry(row: dict) -> PaymentLedgerEntry:
    return PaymentLedgerEntry(
        order_id=row["order_id"],
        subject_id=row["subject_id"],
        customer_identity=row["customer_identity"],
        plan_id=row["plan_id"],
        amount=Decimal(str(row["amount"])),
        currency=row["currency"],
        gateway=row["gateway"],
        status=LedgerStatus(row["status"]),
        captured_at=row["captured_at"],
    )


class PostgresBillingRepository:
    """Concrete repository persisting ledger entries in PostgreSQL."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    def get_ledger_entry(self, order_id: str) -> Optional[PaymentLedgerEntry]:
        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                """
                SELECT *
                FROM payment_ledger
                WHERE order_id = %s
                LIMIT 1
                """,
                (order_id,),
            )
            row = cursor.fetchone()
            return _row_to_ledger_entry(row) if row else None

    def apply_payment(self, entry: PaymentLedgerEntry, grant: PlanGrant) -> bool:
        """Insert the ledger entry and grant the plan in one transaction.

        Returns ``False`` without touching the entitlement record when a ledger
        entry for the order already exists. The ``order_id`` primary key makes
        concurrent duplicates wait for the first insert and then skip.
        """

        with dict_cursor(self._conn) as cursor:
            cursor.execute(
                """
                INSERT INTO payment_ledger (
                    order_id,
                    subject_id,
                    customer_identity,
                    plan_id,
                    amount,
                    currency,
                    gateway,
                    status,
                    captured_at
                )
                VALUES (%(order_id)s, %(subject_id)s, %(customer_identity)s, %(plan_id)s,
                        %(amount)s, %(currency)s, %(gateway)s, %(status)s, %(captured_at)s)
                ON CONFLICT (order_id) DO NOTHING
                """,
                {
                    "order_id": entry.order_id,
                    "subject_id": entry.subject_id,
                    "customer_identity": entry.customer_identity,
                    "plan_id": entry.plan_id,
                    "amount": entry.amount,
                    "currency": entry.currency,
                    "gateway": entry.gateway,
                    "status": entry.status.value,
                    "captured_at": entry.captured_at,
                },
            )
            if cursor.rowcount == 0:
                return False

            cursor.execute(
                """
                UPDATE entitlement_records
                SET plan_id = %(plan_id)s,
                    is_pro = %(is_pro)s,
                    plan_expiry = %(plan_expiry)s,
                    daily_quota_seconds = %(daily_quota_seconds)s
                WHERE subject_id = %(subject_id)s
                """,
                {
                    "plan_id": grant.plan_id,
                    "is_pro": grant.is_pro,
                    "plan_expiry": grant.plan_expiry,
                    "daily_quota_seconds": grant.daily_quota_seconds,
                    "subject_id": entry.subject_id,
                },
            )
            if cursor.rowcount != 1:
                raise ReconciliationInconsistency(
                    "Ledger entry recorded but no entitlement record was updated",
                    detail={"order_id": entry.order_id, "subject_id": entry.subject_id},
                )
            return True


__all__ = ["PostgresBillingRepository"]
