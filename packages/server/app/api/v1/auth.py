"""
Authentication endpoints.

- Login with an identity-provider access token
- JWT session cookie + double-submit CSRF cookie
- Logout and current-user lookup
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response

from app.api.deps import get_identity, get_settings_dep
from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    create_session_token,
    ensure_authorized,
    generate_csrf_token,
    get_current_user,
)
from app.core.config import Settings
from app.core.identity import IdentityProvider
from fabledrop_shared.schemas.users import LoginRequest, LoginResponse, UserProfile

log = structlog.get_logger()
router = APIRouter()


def _set_session_cookies(response: Response, token: str, csrf: str, settings: Settings) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    max_age = settings.jwt_expire_minutes * 60
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=not settings.debug,  # allow non-HTTPS in dev
        samesite="lax",
        path="/",
        max_age=max_age,
    )
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=max_age,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    identity: IdentityProvider = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """Exchange a provider access token for a session."""
    profile = await identity.fetch_profile(body.access_token)
    ensure_authorized(identity, profile)

    token = create_session_token(profile, settings)
    csrf = generate_csrf_token()
    _set_session_cookies(response, token, csrf, settings)

    log.info("auth.login_success", email=profile.email)
    return LoginResponse(user=profile, csrf_token=csrf)


@router.post("/logout")
async def logout(response: Response):
    """Clear the session cookies."""
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserProfile)
async def me(user: UserProfile = Depends(get_current_user)):
    return user
