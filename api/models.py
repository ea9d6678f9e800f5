"""
API request and response models for the SQLAuth HTTP adapter.

These Pydantic v2 models define the HTTP transport contract. They are
separate from sqlauth.models, which owns the domain shapes; route handlers
map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/{source_id}/login.

    max_length bounds the work a single request can cause. Passwords longer
    than bcrypt's 72-byte window are accepted; only their first 72 bytes count
    against a bcrypt hash.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Successful login: the source id and the user's attribute map."""

    model_config = ConfigDict(frozen=True)

    source: str
    attributes: dict[str, list[str]]


class SourceInfo(BaseModel):
    """One configured authentication source, as listed by GET /auth/sources."""

    model_config = ConfigDict(frozen=True)

    id: str
    password_verify: bool


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    sources: int
