"""
tests/test_query.py -- Unit tests for sqlauth/query.py.

Real SQLite for the happy path and the execute-stage failures; mocks only
for the prepare and fetch stages, which SQLite cannot be made to fail on
demand.

Covers:
  - build_bindings(): password bound only in legacy mode
  - execute(): rows materialized as ordered dicts
  - QueryError.stage for prepare / execute / fetch failures
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.dialects import sqlite
from sqlalchemy.exc import ArgumentError, OperationalError

from sqlauth import query
from sqlauth.errors import AuthenticationFailed, QueryError
from tests.conftest import HASH_QUERY, LEGACY_QUERY


@pytest.fixture
def conn(user_db):
    engine = create_engine(user_db)
    with engine.connect() as connection:
        yield connection
    engine.dispose()


class TestBuildBindings:
    def test_default_mode_binds_username_only(self):
        assert query.build_bindings("alice", "hunter2", use_password_verify=True) == {"username": "alice"}

    def test_legacy_mode_binds_both(self):
        assert query.build_bindings("alice", "hunter2", use_password_verify=False) == {
            "username": "alice",
            "password": "hunter2",
        }


class TestExecute:
    def test_returns_rows_in_column_order(self, conn):
        rows = query.execute("src", conn, HASH_QUERY, {"username": "alice"})
        assert len(rows) == 1
        assert list(rows[0]) == ["password", "email", "role"]
        assert rows[0]["email"] == "a@x.com"

    def test_unknown_user_returns_empty_list(self, conn):
        assert query.execute("src", conn, HASH_QUERY, {"username": "mallory"}) == []

    def test_placeholders_may_appear_in_any_order(self, conn):
        template = "SELECT uid FROM legacy_users WHERE password = :password AND uid = :username"
        rows = query.execute("src", conn, template, {"username": "dave", "password": "letmein"})
        assert rows == [{"uid": "dave"}]

    def test_legacy_query_matches_plaintext(self, conn):
        rows = query.execute("src", conn, LEGACY_QUERY, {"username": "dave", "password": "nope"})
        assert rows == []

    def test_injection_attempt_is_just_a_value(self, conn):
        rows = query.execute("src", conn, HASH_QUERY, {"username": "alice' OR '1'='1"})
        assert rows == []

    def test_logs_row_count(self, conn, caplog):
        with caplog.at_level("INFO", logger="sqlauth.query"):
            query.execute("src", conn, HASH_QUERY, {"username": "alice"})
        assert "sqlauth:src: Got 1 rows from database" in caplog.text


class TestExecuteFailures:
    def test_bad_sql_is_execute_stage_error(self, conn):
        with pytest.raises(QueryError) as excinfo:
            query.execute("src", conn, "SELECT * FROM no_such_table WHERE uid = :username", {"username": "a"})
        assert excinfo.value.stage == "execute"
        assert "sqlauth:src: - Failed to execute query" in str(excinfo.value)
        assert "no_such_table" in str(excinfo.value)

    def test_password_placeholder_without_binding_is_execute_error(self, conn):
        """A :password placeholder in hash mode is an operator error, not a login failure."""
        with pytest.raises(QueryError) as excinfo:
            query.execute("src", conn, LEGACY_QUERY, {"username": "dave"})
        assert excinfo.value.stage == "execute"
        assert not isinstance(excinfo.value, AuthenticationFailed)

    def test_prepare_failure(self, conn, monkeypatch):
        def broken_text(sql):
            raise ArgumentError("unparseable template")

        monkeypatch.setattr(query, "text", broken_text)
        with pytest.raises(QueryError) as excinfo:
            query.execute("src", conn, HASH_QUERY, {"username": "alice"})
        assert excinfo.value.stage == "prepare"
        assert "Failed to prepare query: unparseable template" in str(excinfo.value)

    def test_fetch_failure(self):
        fake_conn = MagicMock()
        fake_conn.dialect = sqlite.dialect()
        fake_conn.execute.return_value.mappings.return_value.all.side_effect = OperationalError(
            "SELECT ...", {}, Exception("cursor closed")
        )
        with pytest.raises(QueryError) as excinfo:
            query.execute("src", fake_conn, HASH_QUERY, {"username": "alice"})
        assert excinfo.value.stage == "fetch"
        assert "Failed to fetch result set: cursor closed" in str(excinfo.value)
