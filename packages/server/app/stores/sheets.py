"""
Spreadsheet-backed store reached through the same-origin relay.

Every call is one JSON POST carrying an `action`:
- getSubscription / addSubscription
- getOrders / addOrder
- recordOrder: order and subscription together, applied by the endpoint as a
  single write. The endpoint rejects a second order for the same
  (subscriptionId, month) with {"success": false, "code": "already_ordered_this_cycle"}.

Rows are flat camelCase records. Decoding is lenient: missing fields get
defaults, numbers in text cells become strings, and an unparsable month or
date leaves the order without a cycle. A row that still cannot be decoded is
kept as a placeholder order with no cycle, so it counts toward the lifetime cap.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from dateutil import parser as date_parser

from app.core.errors import AlreadyOrderedThisCycle, StoreUnavailable
from app.services.eligibility import as_utc
from app.stores.base import SubscriptionOrderStore
from fabledrop_shared.schemas.books import NO_COVER_IMAGE, Book
from fabledrop_shared.schemas.common import DeliveryStatus, OrderStatus, RejectionReason
from fabledrop_shared.schemas.orders import Order, ShippingAddress
from fabledrop_shared.schemas.subscriptions import Preferences, Subscription

log = structlog.get_logger()

DESCRIPTION_MAX_CHARS = 200


# ---------------------------------------------------------------------------
# Row codec
# ---------------------------------------------------------------------------


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if not value:
        return None
    try:
        return as_utc(date_parser.isoparse(str(value)))
    except ValueError:
        try:
            return as_utc(date_parser.parse(str(value)))
        except (ValueError, OverflowError):
            return None


def _parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _parse_float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _parse_enum(value: Any, enum_cls, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _truncate(text: str) -> str:
    if len(text) <= DESCRIPTION_MAX_CHARS:
        return text
    return text[:DESCRIPTION_MAX_CHARS] + "..."


def order_to_row(order: Order, email: str) -> dict[str, Any]:
    book = order.book
    address = order.shipping_address
    return {
        "userEmail": email,
        "orderId": order.id,
        "subscriptionId": order.subscription_id,
        "orderDate": order.order_date.isoformat() if order.order_date else "",
        "month": order.month,
        "bookId": book.id,
        "bookTitle": book.title,
        "author": book.author,
        "genre": book.genre,
        "isbn": book.isbn,
        "pageCount": book.page_count,
        "rating": book.rating,
        "coverImage": book.cover_image,
        "publishedDate": book.published_date,
        "description": _truncate(book.description),
        "status": order.status.value,
        "deliveryStatus": order.delivery_status.value,
        "recipientName": address.name,
        "streetAddress": address.street,
        "city": address.city,
        "state": address.state,
        "zipCode": address.zip_code,
        "country": address.country,
        "personalMessage": order.personal_message or "",
    }


def order_from_row(row: dict[str, Any], email: str) -> Order:
    order_id = _text(row.get("orderId")) or _text(row.get("id"))
    book = Book(
        id=_text(row.get("bookId"), order_id),
        title=_text(row.get("bookTitle")) or _text(row.get("title"), "Unknown Title"),
        author=_text(row.get("author"), "Unknown Author"),
        description=_text(row.get("description")),
        genre=_text(row.get("genre"), "contemporary"),
        isbn=_text(row.get("isbn"), "N/A"),
        cover_image=_text(row.get("coverImage"), NO_COVER_IMAGE),
        published_date=_text(row.get("publishedDate"), "Unknown"),
        page_count=max(_parse_int(row.get("pageCount"), 0), 0),
        rating=max(_parse_float(row.get("rating")), 0.0),
    )
    return Order(
        id=order_id,
        user_id=_text(row.get("userEmail"), email),
        subscription_id=_text(row.get("subscriptionId")),
        book=book,
        order_date=_parse_datetime(row.get("orderDate")),
        month=_parse_int(row.get("month")),
        status=_parse_enum(row.get("status"), OrderStatus, OrderStatus.PENDING),
        delivery_status=_parse_enum(
            row.get("deliveryStatus"), DeliveryStatus, DeliveryStatus.ORDER_PLACED
        ),
        shipping_address=ShippingAddress(
            name=_text(row.get("recipientName"), "Gift Recipient"),
            street=_text(row.get("streetAddress")),
            city=_text(row.get("city")),
            state=_text(row.get("state")),
            zip_code=_text(row.get("zipCode")),
            country=_text(row.get("country"), "USA"),
        ),
        personal_message=_text(row.get("personalMessage")) or None,
    )


def undecodable_order(row: Any, email: str, position: int) -> Order:
    """Stand-in for a row that cannot be decoded: kept in the history, in no cycle."""
    order_id = ""
    if isinstance(row, dict):
        order_id = _text(row.get("orderId")) or _text(row.get("id"))
    order_id = order_id or f"row-{position}"
    return Order(
        id=order_id,
        user_id=email,
        subscription_id="",
        book=Book(id=order_id),
        month=None,
    )


def subscription_to_row(subscription: Subscription, email: str) -> dict[str, Any]:
    return {
        "userEmail": email,
        "subscriptionId": subscription.id,
        "startDate": subscription.start_date.isoformat(),
        "endDate": subscription.end_date.isoformat() if subscription.end_date else "",
        "monthsRemaining": subscription.months_remaining,
        "status": subscription.status.value,
        "preferences": json.dumps(subscription.preferences.model_dump(mode="json")),
        "giftMessage": subscription.gift_message or "",
    }


def subscription_from_row(row: dict[str, Any], email: str) -> Subscription:
    start_date = _parse_datetime(row.get("startDate"))
    months_remaining = _parse_int(row.get("monthsRemaining"))
    if start_date is None or months_remaining is None:
        raise ValueError("subscription row has no usable startDate or monthsRemaining")

    preferences = row.get("preferences") or {}
    if isinstance(preferences, str):
        try:
            preferences = json.loads(preferences)
        except json.JSONDecodeError:
            preferences = {}

    return Subscription(
        id=_text(row.get("subscriptionId")) or _text(row.get("id")),
        user_id=_text(row.get("userEmail")) or _text(row.get("userId"), email),
        status=_text(row.get("status"), "active").strip().lower(),
        start_date=start_date,
        end_date=_parse_datetime(row.get("endDate")),
        months_remaining=months_remaining,
        preferences=Preferences.model_validate(preferences),
        gift_message=_text(row.get("giftMessage")) or None,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SheetsRelayStore(SubscriptionOrderStore):
    """Store client speaking the spreadsheet action protocol over HTTP."""

    def __init__(
        self,
        relay_url: str,
        request_timeout: int = 30,
        verify_tls: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._relay_url = relay_url
        self._request_timeout = request_timeout
        self._verify_tls = verify_tls
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._request_timeout),
            verify=self._verify_tls,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _call(self, payload: dict[str, Any]) -> dict[str, Any]:
        assert self._client, "store is not open"
        action = payload.get("action")
        try:
            resp = await self._client.post(self._relay_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            log.error(
                "sheets_store.http_error",
                action=action,
                status=exc.response.status_code,
            )
            raise StoreUnavailable(f"{action} failed with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            log.error("sheets_store.unavailable", action=action, error=str(exc))
            raise StoreUnavailable(f"{action} failed: {exc}") from exc
        except ValueError as exc:
            log.error("sheets_store.invalid_response", action=action)
            raise StoreUnavailable(f"{action} returned a non-JSON response") from exc

        if not isinstance(body, dict):
            raise StoreUnavailable(f"{action} returned an unexpected payload")
        if body.get("success") is False:
            if body.get("code") == RejectionReason.ALREADY_ORDERED_THIS_CYCLE.value:
                raise AlreadyOrderedThisCycle()
            log.error("sheets_store.rejected", action=action, error=body.get("error"))
            raise StoreUnavailable(f"{action} failed: {body.get('error', 'unknown error')}")
        return body

    # --- Subscriptions ---

    async def get_subscription(self, email: str) -> Optional[Subscription]:
        body = await self._call({"action": "getSubscription", "userEmail": email})
        row = body.get("subscription")
        if not row:
            return None
        try:
            if not isinstance(row, dict):
                raise ValueError(f"subscription row is a {type(row).__name__}, not an object")
            return subscription_from_row(row, email)
        except ValueError as exc:
            log.error("sheets_store.malformed_subscription", email=email, error=str(exc))
            raise StoreUnavailable(f"Stored subscription for {email} is malformed") from exc

    async def put_subscription(self, email: str, subscription: Subscription) -> None:
        await self._call({
            "action": "addSubscription",
            **subscription_to_row(subscription, email),
            "timestamp": _timestamp(),
        })

    # --- Orders ---

    async def get_orders(self, email: str) -> list[Order]:
        body = await self._call({"action": "getOrders", "userEmail": email})
        rows = body.get("orders") or []
        if not isinstance(rows, list):
            raise StoreUnavailable("getOrders returned an unexpected payload")
        orders = []
        for position, row in enumerate(rows):
            try:
                if not isinstance(row, dict):
                    raise ValueError(f"order row is a {type(row).__name__}, not an object")
                orders.append(order_from_row(row, email))
            except ValueError as exc:
                log.warning(
                    "sheets_store.undecodable_order", email=email, position=position, error=str(exc)
                )
                orders.append(undecodable_order(row, email, position))
        return orders

    async def append_order(self, email: str, order: Order) -> None:
        await self._call({
            "action": "addOrder",
            **order_to_row(order, email),
            "timestamp": _timestamp(),
        })

    async def record_order(self, email: str, order: Order, subscription: Subscription) -> None:
        await self._call({
            "action": "recordOrder",
            "userEmail": email,
            "order": order_to_row(order, email),
            "subscription": subscription_to_row(subscription, email),
            "timestamp": _timestamp(),
        })
