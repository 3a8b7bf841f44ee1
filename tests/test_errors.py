"""
tests/test_errors.py — Fault Tagging & Error Classification
=============================================================
"""

from __future__ import annotations

import logging
import sqlite3

import pytest
from pydantic import BaseModel, ValidationError
from sqlalchemy import exc as sa_exc
from sqlalchemy import update
from sqlalchemy.orm import Session

from guildcoins.database.faults import PersistenceFault, fault_of
from guildcoins.database.models import User
from guildcoins.services.errors import (
    BadRequest,
    DuplicateIdentity,
    InsufficientBalance,
    Internal,
    InvalidAmount,
    LedgerError,
    PersistenceUnavailable,
    classify,
    classify_validation_errors,
    ledger_operation,
)


class _PgError(Exception):
    def __init__(self, pgcode: str, message: str = "pg error") -> None:
        super().__init__(message)
        self.pgcode = pgcode


def _integrity(orig: Exception) -> sa_exc.IntegrityError:
    return sa_exc.IntegrityError("INSERT INTO users ...", {}, orig)


# ===========================================================================
# fault_of
# ===========================================================================
class TestFaultOf:
    def test_sqlite_unique(self):
        err = _integrity(sqlite3.IntegrityError("UNIQUE constraint failed: users.email"))
        assert fault_of(err) is PersistenceFault.UNIQUE_VIOLATION

    def test_postgres_unique(self):
        assert fault_of(_integrity(_PgError("23505"))) is PersistenceFault.UNIQUE_VIOLATION

    def test_sqlite_check(self):
        err = _integrity(sqlite3.IntegrityError("CHECK constraint failed: ck_users_coins_non_negative"))
        assert fault_of(err) is PersistenceFault.CHECK_VIOLATION

    def test_postgres_check(self):
        assert fault_of(_integrity(_PgError("23514"))) is PersistenceFault.CHECK_VIOLATION

    def test_other_integrity_error(self):
        err = _integrity(sqlite3.IntegrityError("FOREIGN KEY constraint failed"))
        assert fault_of(err) is PersistenceFault.OTHER

    def test_operational_error_is_unavailable(self):
        err = sa_exc.OperationalError("SELECT 1", {}, Exception("could not connect to server"))
        assert fault_of(err) is PersistenceFault.UNAVAILABLE

    def test_pool_timeout_is_unavailable(self):
        assert fault_of(sa_exc.TimeoutError("QueuePool limit reached")) is PersistenceFault.UNAVAILABLE

    def test_invalidated_connection_is_unavailable(self):
        err = sa_exc.DBAPIError("SELECT 1", {}, Exception("boom"), connection_invalidated=True)
        assert fault_of(err) is PersistenceFault.UNAVAILABLE

    def test_programming_error_is_other(self):
        err = sa_exc.ProgrammingError("SELEC 1", {}, Exception("syntax error"))
        assert fault_of(err) is PersistenceFault.OTHER

    def test_postgres_value_too_long(self):
        err = sa_exc.DataError("INSERT INTO coin_transactions ...", {}, _PgError("22001"))
        assert fault_of(err) is PersistenceFault.VALUE_TOO_LONG

    def test_postgres_numeric_out_of_range(self):
        err = sa_exc.DataError("UPDATE users ...", {}, _PgError("22003"))
        assert fault_of(err) is PersistenceFault.OUT_OF_RANGE

    def test_other_data_error(self):
        err = sa_exc.DataError("SELECT 1", {}, _PgError("22P02"))
        assert fault_of(err) is PersistenceFault.OTHER

    def test_real_check_constraint(self, db_engine):
        with Session(db_engine) as session:
            session.add(User(name="A", coins=0))
            session.commit()
            with pytest.raises(sa_exc.IntegrityError) as excinfo:
                session.execute(update(User).values(coins=-1))
        assert fault_of(excinfo.value) is PersistenceFault.CHECK_VIOLATION


# ===========================================================================
# classify
# ===========================================================================
class _Body(BaseModel):
    name: str
    coins: int


class TestClassify:
    def test_ledger_errors_pass_through(self):
        err = InsufficientBalance("nope")
        assert classify(err) is err

    def test_unique_violation(self):
        err = _integrity(sqlite3.IntegrityError("UNIQUE constraint failed: users.discord_id"))
        assert isinstance(classify(err), DuplicateIdentity)

    def test_check_violation(self):
        assert isinstance(classify(_integrity(_PgError("23514"))), InsufficientBalance)

    def test_value_too_long_is_bad_request(self):
        err = sa_exc.DataError("INSERT ...", {}, _PgError("22001"))
        assert isinstance(classify(err), BadRequest)

    def test_numeric_out_of_range_is_invalid_amount(self):
        err = sa_exc.DataError("UPDATE ...", {}, _PgError("22003"))
        assert isinstance(classify(err), InvalidAmount)

    def test_unavailable_is_retryable(self):
        err = classify(sa_exc.OperationalError("SELECT 1", {}, Exception("timeout")))
        assert isinstance(err, PersistenceUnavailable)
        assert err.retryable

    def test_unknown_error_is_internal_and_keeps_detail(self):
        err = classify(ValueError("kaboom"))
        assert isinstance(err, Internal)
        assert "kaboom" in err.detail
        assert not err.retryable
        # The caller-facing message never leaks the detail.
        assert "kaboom" not in err.to_dict()["message"]

    def test_validation_error_on_coins(self):
        with pytest.raises(ValidationError) as excinfo:
            _Body(name="a", coins="lots")
        assert isinstance(classify(excinfo.value), InvalidAmount)

    def test_validation_error_elsewhere(self):
        with pytest.raises(ValidationError) as excinfo:
            _Body(coins=1)
        assert isinstance(classify(excinfo.value), BadRequest)

    def test_validation_errors_from_nested_loc(self):
        errors = [{"loc": ("body", "coins"), "msg": "Input should be a valid integer"}]
        err = classify_validation_errors(errors)
        assert isinstance(err, InvalidAmount)
        assert "body.coins" in err.detail


class TestLedgerErrorEnvelope:
    def test_to_dict(self):
        assert InsufficientBalance().to_dict() == {
            "code": "INSUFFICIENT_BALANCE",
            "message": "You don't have enough coins for this transaction.",
            "retryable": False,
        }

    def test_localized_message(self):
        assert InvalidAmount().message("es").startswith("La cantidad")

    def test_custom_message_key(self):
        err = BadRequest("same user", message_key="errors.self_transfer")
        assert err.message() == "You can't send coins to yourself."

    @pytest.mark.parametrize(
        ("cls", "status"),
        [
            (InvalidAmount, 400),
            (BadRequest, 400),
            (DuplicateIdentity, 409),
            (InsufficientBalance, 409),
            (PersistenceUnavailable, 503),
            (Internal, 500),
        ],
    )
    def test_http_status(self, cls, status):
        assert cls.http_status == status


# ===========================================================================
# ledger_operation
# ===========================================================================
class TestLedgerOperation:
    def test_reclassifies_and_chains(self):
        original = _integrity(_PgError("23505"))

        @ledger_operation
        def op():
            raise original

        with pytest.raises(DuplicateIdentity) as excinfo:
            op()
        assert excinfo.value.__cause__ is original

    def test_logs_internal_errors_with_traceback(self, caplog):
        @ledger_operation
        def op():
            raise RuntimeError("disk on fire")

        with caplog.at_level(logging.ERROR, logger="guildcoins.services.errors"):
            with pytest.raises(Internal):
                op()
        assert any(r.exc_info for r in caplog.records)

    def test_ledger_errors_untouched(self):
        @ledger_operation
        def op():
            raise InvalidAmount("zero")

        with pytest.raises(InvalidAmount):
            op()

    def test_returns_value(self):
        @ledger_operation
        def op(x, *, y):
            return x + y

        assert op(1, y=2) == 3
        assert op.__name__ == "op"

    def test_every_error_is_a_ledger_error(self):
        assert issubclass(Internal, LedgerError)
