"""
Store boundary for subscriptions and orders, keyed by owner email.

Every adapter must enforce at most one order per (subscription, cycle) when the
order is written, raising AlreadyOrderedThisCycle on conflict. The service's
read-then-decide check alone is a check-then-act race between two requests.
Transport or backend failures raise StoreUnavailable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from fabledrop_shared.schemas.orders import Order
from fabledrop_shared.schemas.subscriptions import Subscription


class SubscriptionOrderStore(ABC):

    async def open(self) -> None:
        """Acquire connections. Safe to call more than once."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def get_subscription(self, email: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    async def put_subscription(self, email: str, subscription: Subscription) -> None:
        ...

    @abstractmethod
    async def get_orders(self, email: str) -> list[Order]:
        """All orders for `email` in insertion order."""

    @abstractmethod
    async def append_order(self, email: str, order: Order) -> None:
        ...

    @abstractmethod
    async def record_order(self, email: str, order: Order, subscription: Subscription) -> None:
        """Append `order` and replace the subscription as one unit of work."""
