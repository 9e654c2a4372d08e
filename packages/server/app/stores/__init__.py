"""Order/subscription store adapters."""

from app.core.config import Settings
from app.stores.base import SubscriptionOrderStore


def build_store(settings: Settings) -> SubscriptionOrderStore:
    """Construct the adapter selected by `settings.store_backend`."""
    if settings.store_backend == "sheets":
        from app.stores.sheets import SheetsRelayStore

        return SheetsRelayStore(
            relay_url=settings.sheets_relay_url,
            request_timeout=settings.store_timeout_seconds,
        )

    from app.stores.sql import SqlOrderStore

    return SqlOrderStore(settings.database_url, echo=settings.debug)
