from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..auth import ADMIN_COOKIE, is_authenticated, token_matches
from ..schemas import LoginRequest, LoginStatus
from ..settings import get_settings

router = APIRouter(tags=["session"])


# PUBLIC_INTERFACE
@router.get("/login", response_model=LoginStatus, summary="Login Status")
def login_status(request: Request) -> LoginStatus:
    """Report whether the admin gate is active and whether this client has passed it."""
    settings = get_settings()
    return LoginStatus(
        auth_enabled=settings.auth_enabled,
        authenticated=settings.auth_enabled and is_authenticated(request, settings),
    )


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=LoginStatus,
    summary="Log In",
    description="Exchange the shared admin secret for a long-lived httponly cookie.",
    responses={401: {"description": "Invalid token"}},
)
def login(payload: LoginRequest) -> JSONResponse:
    settings = get_settings()
    if not settings.auth_enabled:
        return JSONResponse(LoginStatus(auth_enabled=False, authenticated=False).model_dump())
    if not token_matches(payload.token, settings):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    response = JSONResponse(LoginStatus(auth_enabled=True, authenticated=True).model_dump())
    response.set_cookie(
        ADMIN_COOKIE,
        payload.token,
        max_age=settings.admin_cookie_max_age,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/admin/login", include_in_schema=False)
def admin_login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/admin/login", include_in_schema=False)
def admin_login_forward() -> RedirectResponse:
    return RedirectResponse("/login", status_code=status.HTTP_307_TEMPORARY_REDIRECT)


# PUBLIC_INTERFACE
@router.get("/admin/logout", summary="Log Out")
def logout() -> RedirectResponse:
    """Clear the admin cookie and send the client back to the login route."""
    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(ADMIN_COOKIE, samesite="lax")
    return response
