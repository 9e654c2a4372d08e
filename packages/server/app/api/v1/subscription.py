"""
Subscription endpoints: read, activate, status transitions, eligibility.

Status transitions follow SUBSCRIPTION_TRANSITIONS:
- active -> inactive | cancelled
- inactive -> active
- cancelled is terminal
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api.deps import get_service
from app.core.auth import get_current_user
from app.services.subscriptions import SubscriptionService
from fabledrop_shared.schemas.subscriptions import (
    EligibilityRead,
    Subscription,
    SubscriptionCreate,
    SubscriptionTransition,
)
from fabledrop_shared.schemas.users import UserProfile

router = APIRouter()


@router.get("", response_model=Subscription)
async def get_subscription(
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    return await service.get_subscription(user.email)


@router.post("", response_model=Subscription, status_code=status.HTTP_201_CREATED)
async def activate_subscription(
    body: SubscriptionCreate,
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    """Start the user's subscription from today."""
    return await service.activate(user.email, body.preferences, body.gift_message)


@router.post("/transition", response_model=Subscription)
async def transition_subscription(
    body: SubscriptionTransition,
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    return await service.transition(user.email, body.to_status)


@router.get("/eligibility", response_model=EligibilityRead)
async def get_eligibility(
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    """Whether an order can be placed now, and if not, why and when."""
    return await service.eligibility(user.email)
