"""
FableDrop API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router
from app.core.config import Settings, get_settings
from app.core.errors import register_exception_handlers
from app.core.identity import IdentityProvider
from fabledrop_shared.logs import configure_logging
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.services.catalog import CatalogClient
from app.services.subscriptions import SubscriptionService
from app.stores import build_store
from app.stores.base import SubscriptionOrderStore

log = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[SubscriptionOrderStore] = None,
    catalog: Optional[CatalogClient] = None,
    identity: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators not passed in are built from `settings`.
    """
    settings = settings or get_settings()
    store = store or build_store(settings)
    catalog = catalog or CatalogClient(
        base_url=settings.books_api_url,
        api_key=settings.books_api_key,
        cache_ttl_seconds=settings.catalog_cache_ttl_seconds,
        cache_max_entries=settings.catalog_cache_max_entries,
    )
    identity = identity or IdentityProvider(
        userinfo_url=settings.userinfo_url,
        authorized_emails=settings.authorized_emails,
        request_timeout=settings.identity_timeout_seconds,
    )

    app = FastAPI(
        title="FableDrop",
        description="Monthly book subscription: one curated book per month.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.store = store
    app.state.catalog = catalog
    app.state.identity = identity
    app.state.service = SubscriptionService(
        store,
        plan_length_months=settings.plan_length_months,
        lifetime_cap=settings.lifetime_order_cap,
    )

    # Middleware (the last one added runs outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        return {"status": "ready", "store": settings.store_backend}

    @app.on_event("startup")
    async def on_startup():
        await store.open()
        await catalog.open()
        await identity.open()
        log.info(
            "fabledrop.starting",
            environment=settings.environment,
            store=settings.store_backend,
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("fabledrop.shutting_down")
        await identity.close()
        await catalog.close()
        await store.close()

    return app


def run() -> None:
    """Console entry point: configure logging and serve the app with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


app = create_app()


if __name__ == "__main__":
    run()
