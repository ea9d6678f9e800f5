"""
sqlauth/errors.py -- Closed set of failure outcomes for a login attempt.

Two families:
  Internal (ConfigError, SourceConnectionError, QueryError): misconfiguration
      or infrastructure fault. The message carries full diagnostic detail
      (with DSN secrets already redacted) for operators. Hosts should render
      these as "try again later", never as a credential rejection.

  AuthenticationFailed: unknown username OR wrong password. Both paths raise
      the same class with the same public message so a caller cannot tell
      them apart (username enumeration). The operator-facing reason lives in
      the log only.
"""

from __future__ import annotations


class SQLAuthError(Exception):
    """Base class for every error raised by an SQL authentication source."""

    internal: bool = True


class ConfigError(SQLAuthError):
    """Source configuration is missing a parameter or has the wrong type."""


class SourceConnectionError(SQLAuthError):
    """The store could not be reached. Message has the DSN already redacted."""


class QueryError(SQLAuthError):
    """The credential query failed to prepare, execute, or fetch.

    stage is one of "prepare", "execute", "fetch" -- diagnostics only; every
    stage is equally fatal to the attempt.
    """

    def __init__(self, message: str, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class AuthenticationFailed(SQLAuthError):
    """Wrong username or password.

    str() is always the same generic message. code mirrors the error key
    hosts traditionally map to a "wrong username or password" page.
    """

    internal = False
    code = "WRONGUSERPASS"
    message = "Wrong username or password."

    def __init__(self) -> None:
        super().__init__(self.message)
