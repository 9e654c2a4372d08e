"""
Subscription service: activation, status transitions and order placement.

Loads state from the injected store, applies the eligibility rules and
persists accepted orders together with the decremented subscription.
Store failures propagate unchanged.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from fastapi import HTTPException

from app.core.errors import OrderRejected, SubscriptionExists
from app.services import eligibility
from app.stores.base import SubscriptionOrderStore
from fabledrop_shared.schemas.books import Book
from fabledrop_shared.schemas.common import (
    LIFETIME_ORDER_CAP,
    PLAN_LENGTH_MONTHS,
    SUBSCRIPTION_TRANSITIONS,
    SubscriptionStatus,
)
from fabledrop_shared.schemas.orders import DEFAULT_SHIPPING_ADDRESS, Order, ShippingAddress
from fabledrop_shared.schemas.subscriptions import (
    EligibilityRead,
    Preferences,
    Subscription,
)

log = structlog.get_logger()


def new_subscription_id() -> str:
    return f"sub_{uuid.uuid4().hex}"


class SubscriptionService:
    def __init__(
        self,
        store: SubscriptionOrderStore,
        *,
        plan_length_months: int = PLAN_LENGTH_MONTHS,
        lifetime_cap: int = LIFETIME_ORDER_CAP,
        shipping_address: ShippingAddress = DEFAULT_SHIPPING_ADDRESS,
    ):
        self.store = store
        self.plan_length_months = plan_length_months
        self.lifetime_cap = lifetime_cap
        self.shipping_address = shipping_address

    # --- Reads ---

    async def get_subscription(self, email: str) -> Subscription:
        subscription = await self.store.get_subscription(email)
        if subscription is None:
            raise HTTPException(status_code=404, detail="Subscription not found")
        return subscription

    async def list_orders(self, email: str) -> list[Order]:
        return await self.store.get_orders(email)

    async def current_cycle_orders(
        self, email: str, now: Optional[datetime] = None
    ) -> list[Order]:
        subscription = await self.store.get_subscription(email)
        if subscription is None:
            return []
        orders = await self.store.get_orders(email)
        cycle = eligibility.current_cycle(subscription, now)
        return eligibility.orders_for_cycle(subscription, orders, cycle)

    async def eligibility(self, email: str, now: Optional[datetime] = None) -> EligibilityRead:
        """Summary of where the user stands against every ordering rule."""
        now = eligibility.as_utc(now or eligibility.utcnow())
        subscription = await self.store.get_subscription(email)
        orders = await self.store.get_orders(email) if subscription else []

        reason = eligibility.check_order(
            subscription, orders, now, lifetime_cap=self.lifetime_cap
        )
        if subscription is None:
            return EligibilityRead(can_order=False, reason=reason)

        remaining = 0
        if subscription.status == SubscriptionStatus.ACTIVE:
            remaining = max(
                min(self.lifetime_cap - len(orders), subscription.months_remaining), 0
            )
        return EligibilityRead(
            can_order=reason is None,
            reason=reason,
            cycle=eligibility.current_cycle(subscription, now),
            next_eligible_date=eligibility.next_eligible_date(
                subscription, orders, now, lifetime_cap=self.lifetime_cap
            ),
            orders_placed=len(orders),
            orders_remaining=remaining,
            months_remaining=subscription.months_remaining,
        )

    # --- Lifecycle ---

    async def activate(
        self,
        email: str,
        preferences: Optional[Preferences] = None,
        gift_message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """Create the user's one subscription, active from `now`."""
        if await self.store.get_subscription(email) is not None:
            raise HTTPException(status_code=409, detail="Subscription already exists")

        start = eligibility.as_utc(now or eligibility.utcnow())
        subscription = Subscription(
            id=new_subscription_id(),
            user_id=email,
            status=SubscriptionStatus.ACTIVE,
            start_date=start,
            end_date=eligibility.add_months(start, self.plan_length_months),
            months_remaining=self.plan_length_months,
            preferences=preferences or Preferences(),
            gift_message=gift_message,
        )
        try:
            await self.store.put_subscription(email, subscription)
        except SubscriptionExists as exc:
            # Lost a race with a concurrent activation for the same email
            raise HTTPException(status_code=409, detail="Subscription already exists") from exc

        log.info("subscription.activated", email=email, subscription_id=subscription.id)
        return subscription

    async def transition(self, email: str, to_status: SubscriptionStatus) -> Subscription:
        subscription = await self.get_subscription(email)
        if to_status not in SUBSCRIPTION_TRANSITIONS[subscription.status]:
            raise HTTPException(
                status_code=422,
                detail=f"Cannot move subscription from {subscription.status.value} to {to_status.value}",
            )
        updated = subscription.model_copy(update={"status": to_status})
        await self.store.put_subscription(email, updated)

        log.info(
            "subscription.transitioned",
            email=email,
            subscription_id=subscription.id,
            from_status=subscription.status.value,
            to_status=to_status.value,
        )
        return updated

    # --- Orders ---

    async def place_order(
        self,
        email: str,
        book: Book,
        personal_message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        """Accept and persist one order for the current cycle. Raises OrderRejected."""
        subscription = await self.store.get_subscription(email)
        orders = await self.store.get_orders(email) if subscription else []

        try:
            order, updated = eligibility.accept_order(
                subscription,
                orders,
                book,
                personal_message,
                now,
                lifetime_cap=self.lifetime_cap,
                shipping_address=self.shipping_address,
            )
            await self.store.record_order(email, order, updated)
        except OrderRejected as exc:
            log.info("orders.rejected", email=email, reason=exc.reason.value)
            raise

        log.info(
            "orders.accepted",
            email=email,
            order_id=order.id,
            book_id=order.book_id,
            month=order.month,
            months_remaining=updated.months_remaining,
        )
        return order
