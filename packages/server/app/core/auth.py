"""
Authentication for FableDrop.

Supports:
- Session JWT, issued at login, carried in the `fd_session` cookie or as a bearer token
- Raw identity-provider access tokens as bearer tokens (resolved via userinfo)
- Authorized-email allow-list on every path
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from app.core.config import Settings
from app.core.errors import AccessDenied
from app.core.identity import IdentityProvider
from fabledrop_shared.schemas.users import UserProfile

log = structlog.get_logger()

SESSION_COOKIE = "fd_session"
CSRF_COOKIE = "fd_csrf"
CSRF_HEADER = "X-CSRF-Token"

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_session_token(
    profile: UserProfile,
    settings: Settings,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session JWT carrying the profile."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": profile.email,
        "uid": profile.id,
        "name": profile.name,
        "picture": profile.picture,
        "iat": now,
        "exp": exp,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> UserProfile:
    """Decode and verify a session JWT. Raises jwt.PyJWTError on failure."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    if not payload.get("sub"):
        raise jwt.InvalidTokenError("session token has no subject")
    return UserProfile(
        id=payload.get("uid") or payload["sub"],
        email=payload["sub"],
        name=payload.get("name") or "",
        picture=payload.get("picture"),
    )


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def ensure_authorized(identity: IdentityProvider, profile: UserProfile) -> UserProfile:
    if not identity.is_authorized(profile.email):
        log.warning("auth.unauthorized_email", email=profile.email)
        raise AccessDenied("Access denied. Your email is not authorized to use this application.")
    return profile


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
) -> UserProfile:
    """Main authentication dependency. Tries the bearer token first, then the session cookie."""
    settings: Settings = request.app.state.settings
    identity: IdentityProvider = request.app.state.identity

    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        try:
            profile = decode_session_token(token, settings)
        except jwt.PyJWTError:
            # Not one of ours; treat it as a provider access token.
            profile = await identity.fetch_profile(token)
        return ensure_authorized(identity, profile)

    token = request.cookies.get(SESSION_COOKIE)
    if token:
        try:
            profile = decode_session_token(token, settings)
        except jwt.PyJWTError:
            raise HTTPException(status_code=401, detail="Invalid or expired session")
        return ensure_authorized(identity, profile)

    raise HTTPException(status_code=401, detail="Authentication required")
