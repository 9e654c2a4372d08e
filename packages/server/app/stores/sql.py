"""
Relational store backed by SQLModel tables.

The (subscription_id, month) unique constraint on `orders` enforces one order
per cycle; `record_order` writes the order and the subscription in a single
transaction so neither is visible without the other.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from app.core.database import create_engine, create_session_factory, init_db, session_scope
from app.core.errors import AlreadyOrderedThisCycle, StoreUnavailable, SubscriptionExists
from app.models.order import OrderRecord
from app.models.subscription import SubscriptionRecord
from app.services.eligibility import as_utc
from app.stores.base import SubscriptionOrderStore
from fabledrop_shared.schemas.books import Book
from fabledrop_shared.schemas.orders import Order, ShippingAddress
from fabledrop_shared.schemas.subscriptions import Preferences, Subscription

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _to_subscription(record: SubscriptionRecord) -> Subscription:
    return Subscription(
        id=record.id,
        user_id=record.user_email,
        status=record.status,
        start_date=as_utc(record.start_date),
        end_date=as_utc(record.end_date) if record.end_date else None,
        months_remaining=record.months_remaining,
        preferences=Preferences.model_validate(record.preferences or {}),
        gift_message=record.gift_message,
    )


def _apply_subscription(record: SubscriptionRecord, email: str, subscription: Subscription) -> None:
    record.user_email = email
    record.status = subscription.status.value
    record.start_date = subscription.start_date
    record.end_date = subscription.end_date
    record.months_remaining = subscription.months_remaining
    record.preferences = subscription.preferences.model_dump(mode="json")
    record.gift_message = subscription.gift_message


def _to_order(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        user_id=record.user_email,
        subscription_id=record.subscription_id,
        book=Book.model_validate(record.book),
        order_date=as_utc(record.order_date),
        month=record.month,
        status=record.status,
        delivery_status=record.delivery_status,
        shipping_address=ShippingAddress.model_validate(record.shipping_address or {}),
        personal_message=record.personal_message,
    )


def _order_record(email: str, order: Order) -> OrderRecord:
    if order.month is None or order.order_date is None:
        raise ValueError(f"Order {order.id} has no cycle and cannot be stored")
    return OrderRecord(
        id=order.id,
        user_email=email,
        subscription_id=order.subscription_id,
        month=order.month,
        order_date=order.order_date,
        book=order.book.model_dump(mode="json"),
        status=order.status.value,
        delivery_status=order.delivery_status.value,
        shipping_address=order.shipping_address.model_dump(mode="json"),
        personal_message=order.personal_message,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SqlOrderStore(SubscriptionOrderStore):
    """Async SQLAlchemy store. Works with any async driver (aiosqlite, asyncpg)."""

    def __init__(self, database_url: str, *, echo: bool = False):
        self._database_url = database_url
        self._echo = echo
        self._engine = None
        self._session_factory = None

    async def open(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_engine(self._database_url, echo=self._echo)
        self._session_factory = create_session_factory(self._engine)
        try:
            await init_db(self._engine)
        except (SQLAlchemyError, OSError) as exc:
            log.error("sql_store.open_failed", error=str(exc))
            raise StoreUnavailable(str(exc)) from exc

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _scope(self):
        assert self._session_factory, "store is not open"
        return session_scope(self._session_factory)

    # --- Subscriptions ---

    async def get_subscription(self, email: str) -> Optional[Subscription]:
        try:
            async with self._scope() as session:
                result = await session.execute(
                    select(SubscriptionRecord).where(SubscriptionRecord.user_email == email)
                )
                record = result.scalar_one_or_none()
                return _to_subscription(record) if record else None
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def put_subscription(self, email: str, subscription: Subscription) -> None:
        try:
            async with self._scope() as session:
                record = await session.get(SubscriptionRecord, subscription.id)
                if record is None:
                    record = SubscriptionRecord(
                        id=subscription.id,
                        user_email=email,
                        start_date=subscription.start_date,
                        months_remaining=subscription.months_remaining,
                    )
                _apply_subscription(record, email, subscription)
                session.add(record)
        except IntegrityError as exc:
            log.info("sql_store.subscription_conflict", email=email, subscription_id=subscription.id)
            raise SubscriptionExists(f"A subscription already exists for {email}") from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    # --- Orders ---

    async def get_orders(self, email: str) -> list[Order]:
        try:
            async with self._scope() as session:
                result = await session.execute(
                    select(OrderRecord)
                    .where(OrderRecord.user_email == email)
                    .order_by(OrderRecord.created_at, OrderRecord.month)
                )
                return [_to_order(r) for r in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def append_order(self, email: str, order: Order) -> None:
        record = _order_record(email, order)
        try:
            async with self._scope() as session:
                session.add(record)
        except IntegrityError as exc:
            raise AlreadyOrderedThisCycle() from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def record_order(self, email: str, order: Order, subscription: Subscription) -> None:
        record = _order_record(email, order)
        try:
            async with self._scope() as session:
                session.add(record)
                sub_record = await session.get(SubscriptionRecord, subscription.id)
                if sub_record is None:
                    raise StoreUnavailable(f"Subscription {subscription.id} is not stored")
                _apply_subscription(sub_record, email, subscription)
                session.add(sub_record)
        except IntegrityError as exc:
            log.info(
                "sql_store.cycle_conflict",
                email=email,
                subscription_id=subscription.id,
                month=order.month,
            )
            raise AlreadyOrderedThisCycle() from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc
