"""sqlauth/ -- Username/password authentication against a relational store.

A configured source runs one parameterized query per login attempt, checks
the supplied password against the first row, and folds the result set into a
multi-valued attribute map.

Layer rule: sqlauth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or main.py. core/ is not needed here either --
source configuration arrives as a plain mapping.
"""

from sqlauth.errors import (
    AuthenticationFailed,
    ConfigError,
    QueryError,
    SourceConnectionError,
    SQLAuthError,
)
from sqlauth.models import AttributeMap, AuthSource, LoginResult, OutcomeKind
from sqlauth.source import SQLAuthSource

__all__ = [
    "AttributeMap",
    "AuthSource",
    "AuthenticationFailed",
    "ConfigError",
    "LoginResult",
    "OutcomeKind",
    "QueryError",
    "SQLAuthError",
    "SQLAuthSource",
    "SourceConnectionError",
]
