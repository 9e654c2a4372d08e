"""
Order endpoints: history, current cycle, place an order.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api.deps import get_service
from app.core.auth import get_current_user
from app.services.subscriptions import SubscriptionService
from fabledrop_shared.schemas.orders import Order, OrderCreate, OrderList
from fabledrop_shared.schemas.users import UserProfile

router = APIRouter()


@router.get("", response_model=OrderList)
async def list_orders(
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    return OrderList(data=await service.list_orders(user.email))


@router.get("/current-cycle", response_model=OrderList)
async def current_cycle_orders(
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    return OrderList(data=await service.current_cycle_orders(user.email))


@router.post("", response_model=Order, status_code=status.HTTP_201_CREATED)
async def place_order(
    body: OrderCreate,
    user: UserProfile = Depends(get_current_user),
    service: SubscriptionService = Depends(get_service),
):
    """Order one book for the current month. 409 with the rejection reason otherwise."""
    return await service.place_order(user.email, body.book, body.personal_message)
