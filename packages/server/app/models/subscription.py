"""Subscription table. One row per owner email."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class SubscriptionRecord(TimestampMixin, SQLModel, table=True):
    __tablename__ = "subscriptions"

    id: str = Field(primary_key=True, nullable=False)
    user_email: str = Field(nullable=False, unique=True, index=True)
    status: str = Field(nullable=False, default="active")  # active | inactive | cancelled
    start_date: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    end_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    months_remaining: int = Field(nullable=False)
    preferences: dict = Field(default_factory=dict, sa_type=sa.JSON)
    gift_message: Optional[str] = None
