"""Order table."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class OrderRecord(TimestampMixin, SQLModel, table=True):
    __tablename__ = "orders"
    # At most one order per subscription per cycle, enforced on write.
    __table_args__ = (
        sa.UniqueConstraint("subscription_id", "month", name="uq_orders_subscription_month"),
    )

    id: str = Field(primary_key=True, nullable=False)
    user_email: str = Field(nullable=False, index=True)
    subscription_id: str = Field(foreign_key="subscriptions.id", nullable=False, index=True)
    month: int = Field(nullable=False)
    order_date: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    book: dict = Field(default_factory=dict, sa_type=sa.JSON)
    status: str = Field(nullable=False, default="pending")
    delivery_status: str = Field(nullable=False, default="order_placed")
    shipping_address: dict = Field(default_factory=dict, sa_type=sa.JSON)
    personal_message: Optional[str] = None
