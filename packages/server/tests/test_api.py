"""
API tests: subscription, orders and books endpoints through the ASGI app.
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.auth import CSRF_COOKIE
from app.core.errors import StoreUnavailable
from app.main import create_app
from app.stores.sql import SqlOrderStore
from server_fakes import GOOD_TOKEN, make_book


async def _activate(client, **body):
    resp = await client.post("/api/v1/subscription", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _order_body(book_id: str = "vol_1", message: str | None = None) -> dict:
    return {"book": make_book(book_id).model_dump(mode="json"), "personal_message": message}


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_endpoints_require_auth(client):
    for path in ("/api/v1/subscription", "/api/v1/orders", "/api/v1/books"):
        resp = await client.get(path)
        assert resp.status_code == 401, path


@pytest.mark.asyncio
async def test_no_subscription_yet(auth_client):
    resp = await auth_client.get("/api/v1/subscription")
    assert resp.status_code == 404

    resp = await auth_client.get("/api/v1/subscription/eligibility")
    assert resp.status_code == 200
    assert resp.json()["can_order"] is False
    assert resp.json()["reason"] == "no_active_subscription"


@pytest.mark.asyncio
async def test_activate_subscription(auth_client):
    sub = await _activate(
        auth_client,
        preferences={"genres": ["fantasy"], "authors": [], "themes": ["found family"]},
        gift_message="Happy birthday!",
    )
    assert sub["status"] == "active"
    assert sub["months_remaining"] == 6
    assert sub["preferences"]["themes"] == ["found family"]

    again = await auth_client.post("/api/v1/subscription", json={})
    assert again.status_code == 409

    resp = await auth_client.get("/api/v1/subscription")
    assert resp.json()["id"] == sub["id"]


@pytest.mark.asyncio
async def test_transition(auth_client):
    await _activate(auth_client)
    resp = await auth_client.post("/api/v1/subscription/transition", json={"to_status": "cancelled"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"

    resp = await auth_client.post("/api/v1/subscription/transition", json={"to_status": "active"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_transition_with_bad_status(auth_client):
    await _activate(auth_client)
    resp = await auth_client.post("/api/v1/subscription/transition", json={"to_status": "frozen"})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_place_order_then_reject_second(auth_client):
    await _activate(auth_client)

    resp = await auth_client.post("/api/v1/orders", json=_order_body("vol_1", "Enjoy"))
    assert resp.status_code == 201, resp.text
    order = resp.json()
    assert order["month"] == 1
    assert order["status"] == "pending"
    assert order["delivery_status"] == "order_placed"
    assert order["shipping_address"]["name"] == "Gift Recipient"
    assert order["personal_message"] == "Enjoy"

    resp = await auth_client.post("/api/v1/orders", json=_order_body("vol_2"))
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "already_ordered_this_cycle"
    assert error["status"] == 409

    listed = await auth_client.get("/api/v1/orders")
    assert [o["id"] for o in listed.json()["data"]] == [order["id"]]

    current = await auth_client.get("/api/v1/orders/current-cycle")
    assert [o["id"] for o in current.json()["data"]] == [order["id"]]

    status = (await auth_client.get("/api/v1/subscription/eligibility")).json()
    assert status["can_order"] is False
    assert status["reason"] == "already_ordered_this_cycle"
    assert status["cycle"] == 1
    assert status["orders_placed"] == 1
    assert status["orders_remaining"] == 5
    assert status["months_remaining"] == 5
    assert status["next_eligible_date"].endswith("T00:00:00Z") or "T00:00:00+00:00" in status["next_eligible_date"]


@pytest.mark.asyncio
async def test_order_without_subscription(auth_client):
    resp = await auth_client.post("/api/v1/orders", json=_order_body())
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "no_active_subscription"


@pytest.mark.asyncio
async def test_order_on_cancelled_subscription(auth_client):
    await _activate(auth_client)
    await auth_client.post("/api/v1/subscription/transition", json={"to_status": "cancelled"})

    resp = await auth_client.post("/api/v1/orders", json=_order_body())
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "no_active_subscription"

    status = (await auth_client.get("/api/v1/subscription/eligibility")).json()
    assert status["next_eligible_date"] is None


@pytest.mark.asyncio
async def test_order_requires_book(auth_client):
    await _activate(auth_client)
    resp = await auth_client.post("/api/v1/orders", json={"personal_message": "hi"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_cookie_session_order_needs_csrf(client):
    await client.post("/auth/login", json={"access_token": GOOD_TOKEN})
    csrf = client.cookies[CSRF_COOKIE]

    resp = await client.post("/api/v1/subscription", json={})
    assert resp.status_code == 403

    resp = await client.post("/api/v1/subscription", json={}, headers={"X-CSRF-Token": csrf})
    assert resp.status_code == 201

    resp = await client.post("/api/v1/orders", json=_order_body(), headers={"X-CSRF-Token": csrf})
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_store_outage_is_503(settings, identity, catalog, session_token):
    class DownStore(SqlOrderStore):
        async def get_subscription(self, email):
            raise StoreUnavailable("connection refused")

    app = create_app(settings, store=DownStore(settings.database_url), catalog=catalog, identity=identity)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {session_token}"},
    ) as client:
        resp = await client.get("/api/v1/subscription/eligibility")
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "STORE_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_books(auth_client):
    resp = await auth_client.get("/api/v1/books", params={"q": "dragons", "max_results": 5})
    assert resp.status_code == 200
    titles = [b["title"] for b in resp.json()["data"]]
    assert titles == ["dragons one", "dragons two"]


@pytest.mark.asyncio
async def test_books_by_genre(auth_client):
    resp = await auth_client.get("/api/v1/books", params={"genre": "mystery"})
    assert resp.json()["data"][0]["title"].startswith("subject:mystery")


@pytest.mark.asyncio
async def test_popular_and_curated(auth_client):
    popular = await auth_client.get("/api/v1/books")
    assert popular.status_code == 200
    assert popular.json()["data"]

    curated = await auth_client.get("/api/v1/books/curated")
    assert curated.status_code == 200
    assert len(curated.json()["data"]) == 10


@pytest.mark.asyncio
async def test_genres_are_public(client):
    resp = await client.get("/api/v1/books/genres")
    assert resp.status_code == 200
    assert [g["id"] for g in resp.json()][:3] == ["romance", "mystery", "fantasy"]


@pytest.mark.asyncio
async def test_refresh_catalog(auth_client):
    resp = await auth_client.post("/api/v1/books/refresh")
    assert resp.status_code == 200
