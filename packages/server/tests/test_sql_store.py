"""
SQL store tests (SQLite via aiosqlite).
"""

from __future__ import annotations

import pytest

from app.core.errors import AlreadyOrderedThisCycle, StoreUnavailable, SubscriptionExists
from app.services.eligibility import accept_order
from app.stores.sql import SqlOrderStore
from fabledrop_shared.schemas.subscriptions import Preferences, Subscription
from server_fakes import EMAIL, make_book, utc


def _sub(**overrides) -> Subscription:
    data = dict(
        id="sub_1",
        user_id=EMAIL,
        start_date=utc(2024, 1, 15),
        end_date=utc(2024, 7, 15),
        months_remaining=6,
        preferences=Preferences(genres=["fantasy"], authors=["Le Guin"]),
        gift_message="Happy birthday!",
    )
    data.update(overrides)
    return Subscription(**data)


@pytest.mark.asyncio
async def test_subscription_round_trip(store):
    assert await store.get_subscription(EMAIL) is None

    sub = _sub()
    await store.put_subscription(EMAIL, sub)

    assert await store.get_subscription(EMAIL) == sub


@pytest.mark.asyncio
async def test_second_subscription_for_same_email_conflicts(store):
    await store.put_subscription(EMAIL, _sub())
    with pytest.raises(SubscriptionExists):
        await store.put_subscription(EMAIL, _sub(id="sub_2"))
    assert (await store.get_subscription(EMAIL)).id == "sub_1"


@pytest.mark.asyncio
async def test_put_subscription_replaces(store):
    await store.put_subscription(EMAIL, _sub())
    await store.put_subscription(EMAIL, _sub(status="inactive", months_remaining=4))

    loaded = await store.get_subscription(EMAIL)
    assert loaded.status.value == "inactive"
    assert loaded.months_remaining == 4


@pytest.mark.asyncio
async def test_record_order_writes_both(store):
    sub = _sub()
    await store.put_subscription(EMAIL, sub)

    order, updated = accept_order(sub, [], make_book(), "For you", utc(2024, 1, 20))
    await store.record_order(EMAIL, order, updated)

    orders = await store.get_orders(EMAIL)
    assert orders == [order]
    assert (await store.get_subscription(EMAIL)).months_remaining == 5


@pytest.mark.asyncio
async def test_second_order_in_cycle_is_rejected_atomically(store):
    """Two requests that both read the pre-order state: only one may win."""
    sub = _sub()
    await store.put_subscription(EMAIL, sub)

    first, first_sub = accept_order(sub, [], make_book("a"), now=utc(2024, 1, 20))
    second, second_sub = accept_order(sub, [], make_book("b"), now=utc(2024, 1, 21))

    await store.record_order(EMAIL, first, first_sub)
    with pytest.raises(AlreadyOrderedThisCycle):
        await store.record_order(EMAIL, second, second_sub)

    assert [o.id for o in await store.get_orders(EMAIL)] == [first.id]
    assert (await store.get_subscription(EMAIL)).months_remaining == 5


@pytest.mark.asyncio
async def test_append_order_enforces_cycle_uniqueness(store):
    sub = _sub()
    await store.put_subscription(EMAIL, sub)
    first, _ = accept_order(sub, [], make_book("a"), now=utc(2024, 2, 3))
    second, _ = accept_order(sub, [], make_book("b"), now=utc(2024, 2, 4))

    await store.append_order(EMAIL, first)
    with pytest.raises(AlreadyOrderedThisCycle):
        await store.append_order(EMAIL, second)


@pytest.mark.asyncio
async def test_orders_in_different_cycles(store):
    sub = _sub()
    await store.put_subscription(EMAIL, sub)

    jan, sub = accept_order(sub, [], make_book("a"), now=utc(2024, 1, 20))
    await store.record_order(EMAIL, jan, sub)
    feb, sub = accept_order(sub, [jan], make_book("b"), now=utc(2024, 2, 1))
    await store.record_order(EMAIL, feb, sub)

    orders = await store.get_orders(EMAIL)
    assert [o.month for o in orders] == [1, 2]
    assert (await store.get_subscription(EMAIL)).months_remaining == 4


@pytest.mark.asyncio
async def test_record_order_without_stored_subscription(store):
    order, updated = accept_order(_sub(), [], make_book(), now=utc(2024, 1, 20))
    with pytest.raises(StoreUnavailable):
        await store.record_order(EMAIL, order, updated)
    assert await store.get_orders(EMAIL) == []


@pytest.mark.asyncio
async def test_orders_are_per_user(store):
    sub = _sub()
    await store.put_subscription(EMAIL, sub)
    order, updated = accept_order(sub, [], make_book(), now=utc(2024, 1, 20))
    await store.record_order(EMAIL, order, updated)

    assert await store.get_orders("someone@else.com") == []


@pytest.mark.asyncio
async def test_open_is_idempotent(tmp_path):
    s = SqlOrderStore(f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'db.sqlite'}")
    await s.open()
    await s.open()
    try:
        assert await s.get_orders(EMAIL) == []
    finally:
        await s.close()
