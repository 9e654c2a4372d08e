"""
Subscription order eligibility rules.

Pure functions over a subscription, its order history and a reference time:
- cycle indexing by UTC calendar month relative to the subscription start
- the quota, lifetime cap and one-order-per-cycle checks
- the date from which another order may be attempted
- building the order and decremented subscription for an accepted order

Nothing here performs I/O, logs, or mutates its arguments. Persisting the
result of `accept_order` is the caller's job (see SubscriptionOrderStore.record_order).
"""

from __future__ import annotations

import calendar
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from app.core.errors import rejection_for
from fabledrop_shared.schemas.books import Book
from fabledrop_shared.schemas.common import (
    LIFETIME_ORDER_CAP,
    DeliveryStatus,
    OrderStatus,
    RejectionReason,
    SubscriptionStatus,
)
from fabledrop_shared.schemas.orders import DEFAULT_SHIPPING_ADDRESS, Order, ShippingAddress
from fabledrop_shared.schemas.subscriptions import Subscription


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def first_of_next_month(at: datetime) -> datetime:
    at = as_utc(at)
    if at.month == 12:
        return datetime(at.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(at.year, at.month + 1, 1, tzinfo=timezone.utc)


def add_months(at: datetime, months: int) -> datetime:
    """Calendar month addition, clamping the day to the target month's length."""
    at = as_utc(at)
    index = at.month - 1 + months
    year, month = at.year + index // 12, index % 12 + 1
    day = min(at.day, calendar.monthrange(year, month)[1])
    return at.replace(year=year, month=month, day=day)


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------


def cycle_index(start_date: datetime, at: datetime) -> int:
    """Billing cycle of `at` for a subscription anchored at `start_date` (cycle 1).

    Only calendar months count: a subscription started on the 31st enters
    cycle 2 on the 1st of the following month.
    """
    start, at = as_utc(start_date), as_utc(at)
    return (at.year - start.year) * 12 + (at.month - start.month) + 1


def current_cycle(subscription: Subscription, now: Optional[datetime] = None) -> int:
    return cycle_index(subscription.start_date, now or utcnow())


def orders_for_cycle(
    subscription: Optional[Subscription],
    orders: Sequence[Order],
    cycle: int,
) -> list[Order]:
    """Orders placed in `cycle`, in store order. Orders without a month never match."""
    if subscription is None:
        return []
    return [o for o in orders if o.month is not None and o.month == cycle]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def check_order(
    subscription: Optional[Subscription],
    orders: Sequence[Order],
    now: Optional[datetime] = None,
    *,
    lifetime_cap: int = LIFETIME_ORDER_CAP,
) -> Optional[RejectionReason]:
    """Return the first rule blocking a new order, or None if one may be placed."""
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
        return RejectionReason.NO_ACTIVE_SUBSCRIPTION
    if subscription.months_remaining <= 0:
        return RejectionReason.QUOTA_EXHAUSTED
    if len(orders) >= lifetime_cap:
        return RejectionReason.LIFETIME_CAP_REACHED
    if orders_for_cycle(subscription, orders, current_cycle(subscription, now)):
        return RejectionReason.ALREADY_ORDERED_THIS_CYCLE
    return None


def can_order(
    subscription: Optional[Subscription],
    orders: Sequence[Order],
    now: Optional[datetime] = None,
    *,
    lifetime_cap: int = LIFETIME_ORDER_CAP,
) -> bool:
    return check_order(subscription, orders, now, lifetime_cap=lifetime_cap) is None


def next_eligible_date(
    subscription: Optional[Subscription],
    orders: Sequence[Order],
    now: Optional[datetime] = None,
    *,
    lifetime_cap: int = LIFETIME_ORDER_CAP,
) -> Optional[datetime]:
    """`now` if an order may be placed, else 00:00 UTC on the 1st of next month.

    The fallback is an upper bound only: a capped or exhausted subscription
    still gets next month's date, so callers must re-check `can_order`.
    """
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
        return None
    now = as_utc(now or utcnow())
    if can_order(subscription, orders, now, lifetime_cap=lifetime_cap):
        return now
    return first_of_next_month(now)


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------


def new_order_id() -> str:
    return f"order_{uuid.uuid4().hex}"


def accept_order(
    subscription: Optional[Subscription],
    orders: Sequence[Order],
    book: Book,
    personal_message: Optional[str] = None,
    now: Optional[datetime] = None,
    *,
    lifetime_cap: int = LIFETIME_ORDER_CAP,
    shipping_address: ShippingAddress = DEFAULT_SHIPPING_ADDRESS,
) -> tuple[Order, Subscription]:
    """Build the order for `book` and the subscription with one fewer month remaining.

    Raises the OrderRejected subclass matching `check_order`'s reason. The
    returned pair must be persisted together or not at all.
    """
    now = as_utc(now or utcnow())
    reason = check_order(subscription, orders, now, lifetime_cap=lifetime_cap)
    if reason is not None:
        raise rejection_for(reason)
    assert subscription is not None

    order = Order(
        id=new_order_id(),
        user_id=subscription.user_id,
        subscription_id=subscription.id,
        book=book,
        order_date=now,
        month=cycle_index(subscription.start_date, now),
        status=OrderStatus.PENDING,
        delivery_status=DeliveryStatus.ORDER_PLACED,
        shipping_address=shipping_address,
        personal_message=personal_message,
    )
    updated = subscription.model_copy(
        update={"months_remaining": subscription.months_remaining - 1}
    )
    return order, updated
