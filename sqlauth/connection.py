"""
sqlauth/connection.py -- Connection provisioner for SQL authentication sources.

Every login attempt opens its own connection and closes it on return. The
engine is built with NullPool so nothing is pooled between attempts; pooling,
if wanted, belongs to whoever owns the database, not to this layer.

SQLAlchemy raises on every statement error, so there is no "silent" error
mode to switch off after connecting.

Driver-specific session setup:
  _POST_CONNECT_HOOKS maps a DSN scheme to a DBAPI "connect" listener. The
  built-in hooks force a UTF-8 client character set. Lookup tries the full
  scheme first ("mysql+pymysql"), then the dialect part ("mysql"). Unknown
  schemes get no hook. register_post_connect_hook() extends the registry
  without touching ConnectionProvisioner.

Security:
  Connection failures report the DSN through redact_dsn() only. The
  configured credential is never part of a message or log line.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from sqlauth.config import SourceConfig
from sqlauth.dsn import driver_name, redact_dsn, to_url
from sqlauth.errors import SourceConnectionError

logger = logging.getLogger("sqlauth.connection")

PostConnectHook = Callable[..., None]


# ---------------------------------------------------------------------------
# Post-connect hooks
# ---------------------------------------------------------------------------


def _exec_on_connect(statement: str) -> PostConnectHook:
    """Return a "connect" listener that runs one statement on every new DBAPI connection."""

    def hook(dbapi_conn, connection_record) -> None:
        cursor = dbapi_conn.cursor()
        try:
            cursor.execute(statement)
        finally:
            cursor.close()

    hook.__name__ = f"exec_on_connect({statement!r})"
    return hook


_POST_CONNECT_HOOKS: dict[str, PostConnectHook] = {
    "mysql": _exec_on_connect("SET NAMES 'utf8mb4'"),
    "pgsql": _exec_on_connect("SET NAMES 'UTF8'"),
    "postgresql": _exec_on_connect("SET NAMES 'UTF8'"),
}


def register_post_connect_hook(scheme: str, hook: PostConnectHook) -> None:
    """Install (or replace) the session setup hook for a DSN scheme.

    hook receives (dbapi_connection, connection_record), the signature of
    SQLAlchemy's PoolEvents.connect.
    """
    _POST_CONNECT_HOOKS[scheme.lower()] = hook


def get_post_connect_hook(scheme: str) -> PostConnectHook | None:
    """Return the hook for scheme, falling back to its dialect part before '+'."""
    scheme = scheme.lower()
    hook = _POST_CONNECT_HOOKS.get(scheme)
    if hook is None and "+" in scheme:
        hook = _POST_CONNECT_HOOKS.get(scheme.split("+", 1)[0])
    return hook


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------


class ConnectionProvisioner:
    """Opens one short-lived connection per login attempt.

    Usage:
        provisioner = ConnectionProvisioner("example-sql", config)
        with provisioner.connect() as conn:
            conn.execute(...)
    """

    def __init__(self, auth_id: str, config: SourceConfig) -> None:
        self.auth_id = auth_id
        self.config = config
        # Parse once so a malformed DSN is a ConfigError at construction time.
        self.url = to_url(config.dsn, config.username, config.password)
        self.scheme = driver_name(config.dsn)

    def _create_engine(self) -> Engine:
        engine = create_engine(self.url, poolclass=NullPool, connect_args=dict(self.config.options))
        hook = get_post_connect_hook(self.scheme)
        if hook is not None:
            event.listen(engine, "connect", hook)
        return engine

    def _failure(self, exc: BaseException) -> SourceConnectionError:
        detail = getattr(exc, "orig", None) or exc
        message = f"sqlauth:{self.auth_id}: - Failed to connect to '{redact_dsn(self.config.dsn)}': {detail}"
        logger.error(message)
        return SourceConnectionError(message)

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield an open connection; close it and dispose the engine on exit.

        Raises SourceConnectionError when the driver cannot be loaded or the
        store refuses the connection. Errors raised by the caller inside the
        with-block propagate unchanged.
        """
        try:
            engine = self._create_engine()
        except (SQLAlchemyError, ImportError) as exc:
            # ImportError: the DBAPI module for this dialect is not installed.
            raise self._failure(exc) from None

        try:
            try:
                conn = engine.connect()
            except SQLAlchemyError as exc:
                raise self._failure(exc) from None
            with conn:
                yield conn
        finally:
            engine.dispose()
