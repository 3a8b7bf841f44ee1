"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of guildcoins.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from guildcoins.database.models import Base  # noqa: E402


def make_sqlite_engine(url: str = "sqlite://", *, immediate: bool = False, **kwargs) -> Engine:
    """SQLite engine with real transaction control.

    pysqlite's own BEGIN handling breaks SAVEPOINTs, so we turn it off and
    emit BEGIN ourselves.  ``immediate=True`` takes the write lock at BEGIN,
    which serializes concurrent writers instead of failing them with
    "database is locked".
    """
    engine = create_engine(url, echo=False, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE" if immediate else "BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all guildcoins tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` and FastAPI's threadpool).
    """
    return make_sqlite_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine for tests that use several connections at once."""
    engine = make_sqlite_engine(
        f"sqlite:///{tmp_path / 'coins.db'}",
        immediate=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


def make_admin_token(sub: str = "99999", username: str = "FixtureAdmin", is_admin: bool = True) -> str:
    """Create a JWT.  Usable as both a fixture and a factory function."""
    import jwt

    from guildcoins.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": is_admin},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient wired to the in-memory database."""
    from fastapi.testclient import TestClient

    from guildcoins.api.deps import get_engine
    from guildcoins.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
