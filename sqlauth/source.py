"""
sqlauth/source.py -- SQL authentication source (login orchestrator).

Usage:
    source = SQLAuthSource("example-sql", {
        "dsn": "pgsql:host=db;dbname=idp",
        "username": "idp_reader",
        "password": "...",
        "query": "SELECT u.uid, u.password, u.email, g.name AS groups "
                 "FROM users u LEFT JOIN user_groups g ON g.uid = u.uid "
                 "WHERE u.uid = :username",
    })
    attributes = source.login("alice", "hunter2")
    # {"uid": ["alice"], "password": ["$2y$..."], "email": [...], "groups": [...]}

Login sequence (terminal on first failure):
  1. Connect        -- SourceConnectionError
  2. Build bindings -- :username, plus :password in legacy mode
  3. Query          -- QueryError
  4. Empty result   -- AuthenticationFailed
  5. Verify row 0   -- AuthenticationFailed
  6. Reduce all rows into an AttributeMap and return it

IMPORTANT: every selected column is returned as an attribute, the password
column included. The source never filters columns. Leave sensitive columns
out of the SELECT list. With hash verification the query has to select
`password`, so hosts that forward attributes verbatim must drop that key
themselves, as the HTTP login route in api/routes/v1/auth.py does.

Security:
  Unknown username and wrong password raise the same AuthenticationFailed and
  cost the same bcrypt work. The log carries the distinguishing reason (row
  count vs. hash mismatch) for operators only.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlauth import passwords, query
from sqlauth.attributes import reduce_rows
from sqlauth.config import SourceConfig, parse_source_config
from sqlauth.connection import ConnectionProvisioner
from sqlauth.errors import AuthenticationFailed, ConfigError, QueryError, SQLAuthError
from sqlauth.models import AttributeMap, LoginResult

logger = logging.getLogger("sqlauth.source")

PASSWORD_COLUMN = "password"


class SQLAuthSource:
    """Authenticates users against a relational store with one query per attempt.

    Configuration is validated here, once; a bad config raises ConfigError
    before any login is attempted. The instance holds no per-attempt state,
    so one source may serve concurrent logins from several threads.
    """

    def __init__(self, auth_id: str, config: Mapping[str, Any] | SourceConfig) -> None:
        self.auth_id = auth_id
        if isinstance(config, SourceConfig):
            self.config = config
        elif isinstance(config, Mapping):
            self.config = parse_source_config(auth_id, config)
        else:
            raise ConfigError(
                f"Configuration for authentication source {auth_id} must be a mapping, "
                f"got {type(config).__name__}"
            )
        self._provisioner = ConnectionProvisioner(auth_id, self.config)

    def __repr__(self) -> str:
        return f"SQLAuthSource({self.auth_id!r})"

    @property
    def use_password_verify(self) -> bool:
        return self.config.use_password_verify

    def login(self, username: str, password: str) -> AttributeMap:
        """Authenticate and return the user's attributes.

        Raises:
            AuthenticationFailed: no matching row, or the password does not
                verify. Same message either way.
            SourceConnectionError / QueryError: infrastructure or query
                fault -- not a credential problem.
        """
        bindings = query.build_bindings(username, password, self.use_password_verify)

        with self._provisioner.connect() as conn:
            rows = query.execute(self.auth_id, conn, self.config.query, bindings)

        if not rows:
            logger.error(
                "sqlauth:%s: No rows in result set. Probably wrong username/password.",
                self.auth_id,
            )
            if self.use_password_verify:
                passwords.burn_verification(password)
            raise AuthenticationFailed()

        first = rows[0]
        if self.use_password_verify and PASSWORD_COLUMN not in first:
            message = (
                f"sqlauth:{self.auth_id}: - Failed to fetch result set: "
                f"query does not select a '{PASSWORD_COLUMN}' column"
            )
            logger.error(message)
            raise QueryError(message, stage="fetch")

        passwords.verify(self.auth_id, password, first.get(PASSWORD_COLUMN), self.use_password_verify)

        attributes = reduce_rows(rows)
        logger.info("sqlauth:%s: Attributes: %s", self.auth_id, ",".join(attributes))
        return attributes

    def try_login(self, username: str, password: str) -> LoginResult:
        """Soft variant of login(): returns a LoginResult instead of raising.

        Only the SQLAuthError family is converted; anything else is a bug
        and propagates.
        """
        try:
            return LoginResult(attributes=self.login(username, password))
        except SQLAuthError as exc:
            return LoginResult(error=exc)
