"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .books import Book
from .common import DeliveryStatus, OrderStatus


class ShippingAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Gift Recipient"
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "USA"


DEFAULT_SHIPPING_ADDRESS = ShippingAddress(
    name="Gift Recipient",
    street="123 Main St",
    city="City",
    state="State",
    zip_code="12345",
    country="USA",
)


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    subscription_id: str
    book: Book
    # Both are None only for rows that could not be decoded from a store.
    order_date: Optional[datetime] = None
    month: Optional[int] = None
    status: OrderStatus = OrderStatus.PENDING
    delivery_status: DeliveryStatus = DeliveryStatus.ORDER_PLACED
    shipping_address: ShippingAddress = DEFAULT_SHIPPING_ADDRESS
    personal_message: Optional[str] = None

    @property
    def book_id(self) -> str:
        return self.book.id


class OrderCreate(BaseModel):
    """Request body for POST /orders."""
    book: Book
    personal_message: Optional[str] = Field(default=None, max_length=500)


class OrderList(BaseModel):
    data: List[Order] = Field(default_factory=list)
