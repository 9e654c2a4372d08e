"""Subscription schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import RejectionReason, SubscriptionStatus


class Preferences(BaseModel):
    """Selection hints. Never interpreted by the eligibility rules."""
    genres: List[str] = Field(default_factory=list)
    authors: List[str] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)


class Subscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str  # owner email
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    start_date: datetime
    end_date: Optional[datetime] = None
    months_remaining: int
    preferences: Preferences = Field(default_factory=Preferences)
    gift_message: Optional[str] = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SubscriptionCreate(BaseModel):
    """Request body for POST /subscription."""
    preferences: Preferences = Field(default_factory=Preferences)
    gift_message: Optional[str] = Field(default=None, max_length=500)


class SubscriptionTransition(BaseModel):
    """Request body for POST /subscription/transition."""
    to_status: SubscriptionStatus


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class EligibilityRead(BaseModel):
    can_order: bool
    reason: Optional[RejectionReason] = None
    cycle: Optional[int] = None
    next_eligible_date: Optional[datetime] = None
    orders_placed: int = 0
    orders_remaining: int = 0
    months_remaining: Optional[int] = None
