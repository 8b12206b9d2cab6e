"""Connection and cursor helpers shared by the PostgreSQL repositories."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .errors import ExternalServiceError

try:  # pragma: no cover - resolve connection helper when imported from FastAPI app
    from vtm_backend.app_context import get_conn
except ModuleNotFoundError as exc:  # pragma: no cover
    if exc.name != "vtm_backend":
        raise
    from ..app_context import get_conn  # type: ignore[no-redef]


logger = logging.getLogger(__name__)

_STORE_UNAVAILABLE = (psycopg2.OperationalError, psycopg2.InterfaceError)


def _store_error(exc: psycopg2.Error) -> ExternalServiceError:
    if isinstance(exc, _STORE_UNAVAILABLE):
        logger.warning("Database operation failed: %s", exc)
        return ExternalServiceError("Entitlement store unavailable")
    logger.error("Database statement rejected: %s", exc)
    return ExternalServiceError("Entitlement store rejected the operation")


def _rollback(connection: PgConnection) -> None:
    try:
        connection.rollback()
    except psycopg2.Error as exc:
        logger.warning("Rollback failed: %s", exc)


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None) -> Iterator[Tuple[PgConnection, bool]]:
    """Context manager that manages transaction boundaries for optional connections.

    Driver errors raised while the transaction is open, or by the final
    commit, surface as :class:`ExternalServiceError`.
    """

    if conn is not None:
        yield conn, False
        return

    try:
        connection = get_conn()
    except _STORE_UNAVAILABLE as exc:
        logger.warning("Database connection failed: %s", exc)
        raise ExternalServiceError("Entitlement store unavailable") from exc
    try:
        yield connection, True
        connection.commit()
    except psycopg2.Error as exc:
        _rollback(connection)
        raise _store_error(exc) from exc
    except Exception:
        _rollback(connection)
        raise
    finally:
        connection.close()


@contextmanager
def dict_cursor(conn: Optional[PgConnection] = None) -> Iterator[PgCursor]:
    """Yield a ``RealDictCursor``, mapping driver failures to :class:`ExternalServiceError`."""

    with managed_connection(conn) as (connection, _managed):
        cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        try:
            yield cursor
        except psycopg2.Error as exc:
            raise _store_error(exc) from exc
        finally:
            cursor.close()


__all__ = ["dict_cursor", "managed_connection"]
