"""
sqlauth/dsn.py -- DSN parsing and secret redaction.

Two DSN spellings are accepted:

  SQLAlchemy URL     postgresql+psycopg2://app@db.internal:5432/idp
                     sqlite:////var/lib/idp/users.db
  key/value DSN      mysql:host=db;port=3306;dbname=idp;charset=utf8mb4
                     pgsql:host=db;dbname=idp;sslmode=require
                     sqlite:/var/lib/idp/users.db   sqlite::memory:

Both normalize to a sqlalchemy.engine.URL. The scheme (text before the first
':', lower-cased) is kept separately because post-connect hooks key on it.

Security:
  redact_dsn() is the only form of a DSN that may reach a log line or an
  exception message. user= and password= fragments are masked up to the next
  ';'; URL-style passwords are masked by SQLAlchemy's own renderer.
"""

from __future__ import annotations

import re

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from sqlauth.errors import ConfigError

# key/value scheme -> SQLAlchemy dialect+driver
_KV_DRIVERS: dict[str, str] = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql+psycopg2",
    "sqlite": "sqlite",
}

# key/value DSN keys that map onto URL fields; everything else becomes a query arg
_URL_FIELDS = {"host": "host", "port": "port", "dbname": "database", "user": "username", "password": "password"}

_SECRET_RE = re.compile(r"(user|password)=[^;]*", re.IGNORECASE)


def driver_name(dsn: str) -> str:
    """Return the DSN scheme: text before the first ':', lower-cased."""
    return dsn.split(":", 1)[0].strip().lower()


def redact_dsn(dsn: str) -> str:
    """Mask embedded credentials so the DSN is safe to log.

    >>> redact_dsn("mysql:host=db;user=alice;password=s3cr3t;")
    'mysql:host=db;user=***;password=***;'
    """
    redacted = _SECRET_RE.sub(lambda m: f"{m.group(1)}=***", dsn)
    if "://" in redacted:
        try:
            redacted = make_url(redacted).render_as_string(hide_password=True)
        except ArgumentError:
            # Unparseable URL: mask everything between :// and @ instead.
            redacted = re.sub(r"://[^@/]*@", "://***@", redacted)
    return redacted


def to_url(dsn: str, username: str = "", password: str = "") -> URL:
    """Build a SQLAlchemy URL from either DSN spelling.

    username / password (the configured principal and credential) take
    precedence over any user= / password= embedded in the DSN. Empty values
    fall back to the embedded ones. SQLite URLs never carry credentials.

    Raises ConfigError for unknown schemes or malformed DSNs. The message
    carries the redacted DSN only.
    """
    if "://" in dsn:
        try:
            url = make_url(dsn)
        except ArgumentError as exc:
            raise ConfigError(f"Malformed DSN '{redact_dsn(dsn)}': {exc}") from None
    else:
        url = _parse_key_value(dsn)

    if url.get_backend_name() == "sqlite":
        return url
    if username:
        url = url.set(username=username)
    if password:
        url = url.set(password=password)
    return url


def _parse_key_value(dsn: str) -> URL:
    scheme, sep, rest = dsn.partition(":")
    scheme = scheme.strip().lower()
    drivername = _KV_DRIVERS.get(scheme)
    if not sep or drivername is None:
        raise ConfigError(
            f"Unsupported DSN '{redact_dsn(dsn)}': expected a SQLAlchemy URL or one of "
            f"{', '.join(sorted(_KV_DRIVERS))}:key=value;..."
        )

    if drivername == "sqlite":
        # sqlite:/path/to.db, sqlite::memory:, or sqlite: (in-memory)
        return URL.create(drivername, database=rest or None)

    fields: dict = {}
    query: dict[str, str] = {}
    for part in rest.split(";"):
        if not part.strip():
            continue
        key, eq, value = part.partition("=")
        key = key.strip().lower()
        if not eq or not key:
            raise ConfigError(f"Malformed DSN '{redact_dsn(dsn)}': expected key=value, got {key!r}")
        if key in _URL_FIELDS:
            fields[_URL_FIELDS[key]] = value.strip()
        else:
            query[key] = value.strip()

    if "port" in fields:
        try:
            fields["port"] = int(fields["port"])
        except ValueError:
            raise ConfigError(f"Malformed DSN '{redact_dsn(dsn)}': port must be an integer") from None

    return URL.create(drivername, query=query, **fields)
