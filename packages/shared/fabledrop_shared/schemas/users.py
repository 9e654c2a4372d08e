"""Identity schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Profile returned by the identity provider. `email` is the owner key."""
    id: str
    email: str
    name: str = ""
    picture: Optional[str] = None


class LoginRequest(BaseModel):
    access_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    user: UserProfile
    csrf_token: str
