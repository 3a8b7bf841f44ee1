"""
guildcoins.database.faults — Persistence Fault Tagging
=======================================================

Turns the open-ended family of SQLAlchemy / DBAPI exceptions into a small
closed set of tags.  The service layer switches on the tag instead of poking
at driver-specific exception shapes.

PostgreSQL reports constraint failures with SQLSTATE codes (``pgcode``);
SQLite only gives a message, so both are checked.
"""

from __future__ import annotations

import enum

from sqlalchemy import exc as sa_exc

# SQLSTATE class 23: integrity constraint violation
PG_UNIQUE_VIOLATION = "23505"
PG_CHECK_VIOLATION = "23514"
# SQLSTATE class 22: data exception
PG_STRING_TOO_LONG = "22001"
PG_NUMERIC_OUT_OF_RANGE = "22003"


class PersistenceFault(enum.StrEnum):
    """What went wrong in the store, as far as callers care."""
    UNIQUE_VIOLATION = "unique_violation"
    CHECK_VIOLATION = "check_violation"
    VALUE_TOO_LONG = "value_too_long"
    OUT_OF_RANGE = "out_of_range"
    UNAVAILABLE = "unavailable"
    OTHER = "other"


def _sqlstate(error: sa_exc.DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def fault_of(error: sa_exc.SQLAlchemyError) -> PersistenceFault:
    """Tag a SQLAlchemy exception.

    Connection-level failures (dropped sockets, pool exhaustion, locked
    SQLite files) are ``UNAVAILABLE`` and may be retried by the caller.
    """
    if isinstance(error, sa_exc.IntegrityError):
        code = _sqlstate(error)
        message = str(error.orig).lower()
        if code == PG_UNIQUE_VIOLATION or "unique constraint" in message:
            return PersistenceFault.UNIQUE_VIOLATION
        if code == PG_CHECK_VIOLATION or "check constraint" in message:
            return PersistenceFault.CHECK_VIOLATION
        return PersistenceFault.OTHER

    if isinstance(error, sa_exc.DataError):
        code = _sqlstate(error)
        if code == PG_STRING_TOO_LONG:
            return PersistenceFault.VALUE_TOO_LONG
        if code == PG_NUMERIC_OUT_OF_RANGE:
            return PersistenceFault.OUT_OF_RANGE
        return PersistenceFault.OTHER

    if isinstance(error, sa_exc.TimeoutError | sa_exc.DisconnectionError):
        return PersistenceFault.UNAVAILABLE

    if isinstance(error, sa_exc.DBAPIError):
        if error.connection_invalidated:
            return PersistenceFault.UNAVAILABLE
        if isinstance(error, sa_exc.OperationalError | sa_exc.InterfaceError):
            return PersistenceFault.UNAVAILABLE

    return PersistenceFault.OTHER
