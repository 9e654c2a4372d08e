#!/usr/bin/env python3
"""Seed a development database with a demo subscription and one order.

Usage:
    python scripts/seed_dev_data.py [email]

Uses FD_DATABASE_URL (defaults to the local SQLite file). Safe to re-run:
an existing subscription for the email is left untouched.
"""

import asyncio
import sys

import structlog

from app.core.config import get_settings
from app.core.errors import OrderRejected
from fabledrop_shared.logs import configure_logging
from app.services.subscriptions import SubscriptionService
from app.stores.sql import SqlOrderStore
from fabledrop_shared.schemas.books import Book
from fabledrop_shared.schemas.subscriptions import Preferences

DEMO_EMAIL = "demo@fabledrop.dev"

DEMO_BOOK = Book(
    id="demo_the_night_circus",
    title="The Night Circus",
    author="Erin Morgenstern",
    description="The circus arrives without warning.",
    genre="fantasy",
    isbn="9780307744432",
    published_date="2011",
    page_count=512,
    rating=4.0,
)


async def seed(email: str):
    settings = get_settings()
    log = structlog.get_logger()
    store = SqlOrderStore(settings.database_url)
    await store.open()
    try:
        service = SubscriptionService(
            store,
            plan_length_months=settings.plan_length_months,
            lifetime_cap=settings.lifetime_order_cap,
        )
        if await store.get_subscription(email) is not None:
            log.info("seed.skipped", email=email, reason="subscription exists")
            return

        sub = await service.activate(
            email,
            Preferences(genres=["fantasy", "mystery"], themes=["found family"]),
            gift_message="Happy reading!",
        )
        try:
            order = await service.place_order(email, DEMO_BOOK, "Enjoy your first book!")
        except OrderRejected as exc:
            log.warning("seed.order_rejected", reason=exc.reason.value)
            return
        log.info("seed.done", email=email, subscription_id=sub.id, order_id=order.id)
    finally:
        await store.close()


if __name__ == "__main__":
    configure_logging("info", "text")
    asyncio.run(seed(sys.argv[1] if len(sys.argv) > 1 else DEMO_EMAIL))
