"""
tests/conftest.py -- Shared test fixtures for SQLAuth.

This module provides:
  - user_db: a real SQLite file with users, groups, and legacy_users tables
  - make_source(): builds an SQLAuthSource against user_db with overrides
  - api_client: TestClient wired to sources backed by user_db

Design: SQLite *files* under tmp_path (not :memory:) because every login
opens its own connection through a NullPool engine. An in-memory database
would be empty for each new connection.

bcrypt hashes are computed once per session -- each hash costs ~0.2s at the
default work factor.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from sqlauth.passwords import hash_password
from sqlauth.source import SQLAuthSource

ALICE_PASSWORD = "hunter2"
BOB_PASSWORD = "correct horse"

HASH_QUERY = "SELECT password, email, role FROM users WHERE uid = :username"
GROUPS_QUERY = (
    "SELECT u.uid, u.password, u.email, g.name AS groups "
    "FROM users u LEFT JOIN user_groups g ON g.uid = u.uid "
    "WHERE u.uid = :username ORDER BY g.name"
)
LEGACY_QUERY = "SELECT uid, email FROM legacy_users WHERE uid = :username AND password = :password"


@pytest.fixture(scope="session")
def password_hashes() -> dict[str, str]:
    return {"alice": hash_password(ALICE_PASSWORD), "bob": hash_password(BOB_PASSWORD)}


@pytest.fixture
def user_db(tmp_path: Path, password_hashes: dict[str, str]) -> str:
    """Create a SQLite user store and return its SQLAlchemy URL.

    users:        alice (email, role=user, groups admins+staff)
                  bob   (email NULL, role=user, no groups)
                  carol (password NULL -- account without a local password)
    legacy_users: dave / plaintext "letmein"
    """
    url = f"sqlite:///{tmp_path / 'users.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(
            text("CREATE TABLE users (uid TEXT PRIMARY KEY, password TEXT, email TEXT, role TEXT NOT NULL)")
        )
        conn.execute(text("CREATE TABLE user_groups (uid TEXT NOT NULL, name TEXT NOT NULL)"))
        conn.execute(text("CREATE TABLE legacy_users (uid TEXT PRIMARY KEY, password TEXT, email TEXT)"))
        conn.execute(
            text("INSERT INTO users (uid, password, email, role) VALUES (:uid, :pw, :email, :role)"),
            [
                {"uid": "alice", "pw": password_hashes["alice"], "email": "a@x.com", "role": "user"},
                {"uid": "bob", "pw": password_hashes["bob"], "email": None, "role": "user"},
                {"uid": "carol", "pw": None, "email": "c@x.com", "role": "user"},
            ],
        )
        conn.execute(
            text("INSERT INTO user_groups (uid, name) VALUES (:uid, :name)"),
            [{"uid": "alice", "name": "admins"}, {"uid": "alice", "name": "staff"}],
        )
        conn.execute(
            text("INSERT INTO legacy_users (uid, password, email) VALUES ('dave', 'letmein', 'd@x.com')")
        )
    engine.dispose()
    return url


@pytest.fixture
def make_source(user_db: str) -> Callable[..., SQLAuthSource]:
    """Return a factory: make_source(query=..., use_password_verify=..., auth_id=...)."""

    def _make(auth_id: str = "test-sql", **overrides) -> SQLAuthSource:
        config = {"dsn": user_db, "username": "", "password": "", "query": HASH_QUERY}
        config.update(overrides)
        return SQLAuthSource(auth_id, config)

    return _make


@pytest.fixture
def api_client(make_source) -> Generator[TestClient, None, None]:
    """TestClient over the real app with sources wired to the test database.

    The real lifespan reads AUTHSOURCES_FILE; the patched one installs the
    test sources directly. The shared limiter is reset so login tests in one
    module do not trip the per-IP rate limit.
    """
    from api.limiter import limiter
    from api.main import app

    sources = {
        "hashed": make_source("hashed", query=GROUPS_QUERY),
        "legacy": make_source("legacy", query=LEGACY_QUERY, use_password_verify=False),
    }

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.sources = sources
        yield
        app.state.sources = {}

    original = app.router.lifespan_context
    app.router.lifespan_context = test_lifespan
    limiter.reset()
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
    app.router.lifespan_context = original
