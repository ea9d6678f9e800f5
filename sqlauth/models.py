"""
sqlauth/models.py -- Domain shapes shared by the source and its hosts.

Pattern: Data class (pure data container, zero logic). The source does the
work; hosts only see AttributeMap, LoginResult, and the AuthSource protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from sqlauth.errors import (
    AuthenticationFailed,
    ConfigError,
    QueryError,
    SourceConnectionError,
    SQLAuthError,
)

# attribute name -> distinct string values, first-seen order
AttributeMap = dict[str, list[str]]

# column name -> nullable scalar, column order preserved
ResultRow = dict[str, Any]


@runtime_checkable
class AuthSource(Protocol):
    """The single capability a host needs from an authentication source."""

    def login(self, username: str, password: str) -> AttributeMap: ...


class OutcomeKind(str, Enum):
    ok = "ok"
    config_error = "config_error"
    connection_error = "connection_error"
    query_error = "query_error"
    authentication_failed = "authentication_failed"


_KIND_BY_ERROR: dict[type[SQLAuthError], OutcomeKind] = {
    ConfigError: OutcomeKind.config_error,
    SourceConnectionError: OutcomeKind.connection_error,
    QueryError: OutcomeKind.query_error,
    AuthenticationFailed: OutcomeKind.authentication_failed,
}


@dataclass(frozen=True)
class LoginResult:
    """Outcome of SQLAuthSource.try_login().

    Exactly one of attributes / error is set. kind is derived from which one.
    """

    attributes: Optional[AttributeMap] = None
    error: Optional[SQLAuthError] = None

    @property
    def kind(self) -> OutcomeKind:
        if self.error is None:
            return OutcomeKind.ok
        for error_type, kind in _KIND_BY_ERROR.items():
            if isinstance(self.error, error_type):
                return kind
        raise TypeError(f"Unclassified login error: {type(self.error).__name__}")

    @property
    def ok(self) -> bool:
        return self.error is None
