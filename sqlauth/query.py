"""
sqlauth/query.py -- Credential query executor.

Runs the configured query template once with named bind parameters and
materializes the whole result set. Result sets are a handful of rows at most
(one per group membership, say), so nothing is streamed.

The three stages (prepare, execute, fetch) fail separately so the operator
can tell a typo in the template from a store outage. All three are internal
errors: a broken query is never reported to the user as a wrong password.

Security:
  Values only ever travel as bound parameters. The template is operator
  configuration; submitted usernames and passwords are never interpolated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from sqlauth.errors import QueryError
from sqlauth.models import ResultRow

logger = logging.getLogger("sqlauth.query")


def build_bindings(username: str, password: str, use_password_verify: bool) -> dict[str, str]:
    """Return the bind parameters for one attempt.

    With hash verification the plaintext password is not bound at all; it
    is checked later against the stored hash. Legacy mode binds it so the
    query's own WHERE clause does the comparison.
    """
    bindings = {"username": username}
    if not use_password_verify:
        bindings["password"] = password
    return bindings


def _fail(auth_id: str, stage: str, action: str, exc: SQLAlchemyError) -> QueryError:
    detail = getattr(exc, "orig", None) or exc
    message = f"sqlauth:{auth_id}: - Failed to {action}: {detail}"
    logger.error(message)
    return QueryError(message, stage=stage)


def execute(auth_id: str, conn: Connection, query: str, bindings: Mapping[str, str]) -> list[ResultRow]:
    """Prepare, execute, and fetch the credential query.

    Returns the rows as plain dicts in column order. Raises QueryError with
    stage set to "prepare", "execute", or "fetch".
    """
    try:
        stmt = text(query)
        stmt.compile(dialect=conn.dialect)
    except SQLAlchemyError as exc:
        raise _fail(auth_id, "prepare", "prepare query", exc) from None

    try:
        result = conn.execute(stmt, dict(bindings))
    except SQLAlchemyError as exc:
        raise _fail(auth_id, "execute", "execute query", exc) from None

    try:
        rows = [dict(row) for row in result.mappings().all()]
    except SQLAlchemyError as exc:
        raise _fail(auth_id, "fetch", "fetch result set", exc) from None

    logger.info("sqlauth:%s: Got %d rows from database", auth_id, len(rows))
    return rows
