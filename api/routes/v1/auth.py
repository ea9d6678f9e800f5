"""
api/routes/v1/auth.py -- Login endpoints backed by SQL authentication sources.

Routes:
  POST /api/v1/auth/{source_id}/login  -- username/password login; returns attributes
  GET  /api/v1/auth/sources            -- list configured sources (public)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT, default 10/minute).
  Unknown username and wrong password both return 401 "wrong_credentials"
  with the same message -- the source already equalizes timing.
  Connection and query faults return 503 without any detail; the full
  (redacted) reason is in the server log.
  Cache-Control: no-store on every login response.
  With hash verification the query selects the stored hash; it is removed
  from the attributes before they are returned.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, SourceInfo
from sqlauth.errors import AuthenticationFailed, SQLAuthError
from sqlauth.models import AuthSource
from sqlauth.source import PASSWORD_COLUMN

logger = logging.getLogger("sqlauth.api.auth")

router = APIRouter()


def _get_source(request: Request, source_id: str) -> AuthSource:
    sources: dict[str, AuthSource] = request.app.state.sources
    source = sources.get(source_id)
    if source is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "unknown_source", "message": f"No authentication source named {source_id!r}."},
        )
    return source


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/{source_id}/login", response_model=LoginResponse)
def login(request: Request, source_id: str, body: LoginRequest) -> JSONResponse:
    """Authenticate against one configured source and return the user's attributes.

    Sync def on purpose: the source does blocking DB and bcrypt work, so
    FastAPI runs it in the thread pool.
    """
    source = _get_source(request, source_id)
    try:
        attributes = source.login(body.username, body.password)
    except AuthenticationFailed as exc:
        return _no_store(
            JSONResponse(
                status_code=401,
                content=ErrorResponse(error=ErrorDetail(code="wrong_credentials", message=str(exc))).model_dump(),
            )
        )
    except SQLAuthError as exc:
        logger.warning("Login via %s failed with %s", source_id, type(exc).__name__)
        return _no_store(
            JSONResponse(
                status_code=503,
                content=ErrorResponse(
                    error=ErrorDetail(
                        code="auth_source_unavailable",
                        message="Authentication is temporarily unavailable. Try again later.",
                    )
                ).model_dump(),
            )
        )

    if getattr(source, "use_password_verify", True):
        attributes.pop(PASSWORD_COLUMN, None)

    return _no_store(
        JSONResponse(
            status_code=200,
            content=LoginResponse(source=source_id, attributes=attributes).model_dump(),
        )
    )


@router.get("/auth/sources", response_model=list[SourceInfo])
async def list_sources(request: Request) -> list[SourceInfo]:
    """Return the configured authentication sources, sorted by id."""
    sources = request.app.state.sources
    return [
        SourceInfo(id=auth_id, password_verify=bool(getattr(source, "use_password_verify", True)))
        for auth_id, source in sorted(sources.items())
    ]
