from __future__ import annotations

import logging
import secrets
from typing import Awaitable, Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from fastapi.security import APIKeyCookie

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

ADMIN_COOKIE = "adminToken"

# Reachable without the admin cookie even when ADMIN_TOKEN is set
OPEN_PATHS = frozenset({"/login", "/admin/login", "/api/health"})

_security = APIKeyCookie(name=ADMIN_COOKIE, auto_error=False)


# PUBLIC_INTERFACE
def token_matches(candidate: Optional[str], settings: Optional[Settings] = None) -> bool:
    """Constant-time comparison of `candidate` against the configured ADMIN_TOKEN."""
    settings = settings or get_settings()
    if not settings.auth_enabled or not candidate:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), settings.admin_token.encode("utf-8"))


# PUBLIC_INTERFACE
def is_authenticated(request: Request, settings: Optional[Settings] = None) -> bool:
    """True when auth is disabled or the request carries a valid admin cookie."""
    settings = settings or get_settings()
    if not settings.auth_enabled:
        return True
    return token_matches(request.cookies.get(ADMIN_COOKIE), settings)


# PUBLIC_INTERFACE
async def require_admin(token: Optional[str] = Depends(_security)) -> None:
    """
    Enforce the admin cookie when ADMIN_TOKEN is configured. When it is not,
    this dependency is a no-op.

    Raises:
        HTTPException(401) if the cookie is missing or does not match.
    """
    settings = get_settings()
    if not settings.auth_enabled:
        return None
    if not token_matches(token, settings):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )


# PUBLIC_INTERFACE
async def admin_gate(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    HTTP middleware protecting the whole app when ADMIN_TOKEN is set. Only
    OPEN_PATHS pass through without a valid admin cookie.
    """
    settings = get_settings()
    if not settings.auth_enabled or request.url.path in OPEN_PATHS:
        return await call_next(request)
    if is_authenticated(request, settings):
        return await call_next(request)
    logger.info("Rejected unauthenticated %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized", "message": "Admin login required", "login": "/login"},
    )
