"""
sqlauth/config.py -- Immutable, validated configuration for one SQL auth source.

SourceConfig bundles the connection parameters (dsn, username, password,
options), the query template, and the verification mode. It is built once
when the source is constructed and shared read-only by every login attempt.

Validation is pydantic's job; parse_source_config() translates pydantic's
ValidationError into a ConfigError whose message names the parameter and the
auth source, so a broken authsources file fails at startup rather than on the
first login attempt.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from sqlauth.errors import ConfigError

REQUIRED_PARAMS = ("dsn", "username", "password", "query")


class SourceConfig(BaseModel):
    """Configuration for an SQL authentication source.

    dsn / username / password open the store connection (the principal and
    credential, not the end user's). query is the store-native template; it
    must reference :username, and :password only in legacy mode.

    use_password_verify=True (default): the query's `password` column holds a
    bcrypt hash; only :username is bound.
    use_password_verify=False (legacy): the query compares the plaintext
    itself; both :username and :password are bound.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    dsn: StrictStr
    username: StrictStr
    password: StrictStr = Field(repr=False)
    query: StrictStr
    options: dict[str, Any] = Field(default_factory=dict)
    use_password_verify: bool = True


def parse_source_config(auth_id: str, config: Mapping[str, Any]) -> SourceConfig:
    """Validate a raw configuration mapping. Raises ConfigError on any problem."""
    data = dict(config)
    # An explicit null means "not set" for the optional keys.
    for key in ("options", "use_password_verify"):
        if key in data and data[key] is None:
            del data[key]
    try:
        return SourceConfig(**data)
    except ValidationError as exc:
        raise ConfigError(_describe(auth_id, exc)) from None


def _describe(auth_id: str, exc: ValidationError) -> str:
    # Report the first problem only; the operator fixes one line at a time.
    err = exc.errors()[0]
    param = str(err["loc"][0]) if err["loc"] else "?"
    if err["type"] == "missing":
        return f"Missing required attribute '{param}' for authentication source {auth_id}"
    if param in REQUIRED_PARAMS:
        # Never echo the value of the connection password.
        shown = "<redacted>" if param == "password" else repr(err.get("input"))
        return (
            f"Expected parameter '{param}' for authentication source {auth_id} "
            f"to be a string. Instead it was: {shown}"
        )
    return f"Invalid parameter '{param}' for authentication source {auth_id}: {err['msg']}"
