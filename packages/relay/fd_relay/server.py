"""
Relay HTTP server.

Exposes:
- GET /health: status, timestamp and whether the upstream URL is configured
- POST /submit: forward the JSON body upstream and return its JSON response
- GET /metrics: Prometheus-compatible metrics (when enabled)

CORS is granted to the single configured origin.
"""

from __future__ import annotations

import asyncio
import signal
from datetime import datetime, timezone

import structlog
from aiohttp import web

from .config import RelayConfig
from .metrics import MetricsCollector
from .relay import SheetsRelay, error_body

log = structlog.get_logger()

SHUTDOWN_TIMEOUT = 15.0


class RelayServer:
    """aiohttp application wrapping a SheetsRelay."""

    def __init__(
        self,
        config: RelayConfig,
        relay: SheetsRelay | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._config = config
        self._metrics = metrics or MetricsCollector()
        upstream_url = config.upstream.resolved_url
        if relay is None:
            if not upstream_url:
                raise ValueError(
                    f"No upstream URL configured; set {config.upstream.url_env}"
                )
            relay = SheetsRelay(
                upstream_url,
                verify_tls=config.upstream.verify_tls,
                request_timeout=config.upstream.request_timeout_seconds,
                metrics=self._metrics,
            )
        self._relay = relay
        self._runner: web.AppRunner | None = None
        self._shutdown_event = asyncio.Event()

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._cors_middleware])
        app.router.add_get("/health", self._health_handler)
        app.router.add_post("/submit", self._submit_handler)
        if self._config.metrics.enabled:
            app.router.add_get("/metrics", self._metrics_handler)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    # --- Lifecycle ---

    async def _on_startup(self, app: web.Application) -> None:
        await self._relay.open()

    async def _on_cleanup(self, app: web.Application) -> None:
        await self._relay.close()

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.server.host, self._config.server.port)
        await site.start()
        log.info(
            "relay.started",
            host=self._config.server.host,
            port=self._config.server.port,
            cors_origin=self._config.cors.origin,
        )

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        log.info("relay.stopped")

    async def run_forever(self) -> None:
        """Serve until SIGINT or SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._shutdown_event.set)

        await self.start()
        try:
            await self._shutdown_event.wait()
            log.info("relay.shutdown_requested")
        finally:
            await asyncio.wait_for(self.stop(), timeout=SHUTDOWN_TIMEOUT)

    # --- Middleware ---

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        cors = self._config.cors
        if request.method == "OPTIONS":
            response: web.StreamResponse = web.Response(status=204)
        else:
            response = await handler(request)
        if request.headers.get("Origin") == cors.origin:
            response.headers["Access-Control-Allow-Origin"] = cors.origin
            response.headers["Access-Control-Allow-Methods"] = ", ".join(cors.methods)
            response.headers["Access-Control-Allow-Headers"] = ", ".join(cors.headers)
            response.headers["Vary"] = "Origin"
        return response

    # --- Handlers ---

    async def _health_handler(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "upstream_url": "configured" if self._relay.upstream_url else "missing",
        })

    async def _submit_handler(self, request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except ValueError:
            # JSONDecodeError and UnicodeDecodeError both land here
            self._metrics.inc("invalid_requests_total")
            return web.json_response(error_body("Request body must be JSON"), status=400)

        with self._metrics.in_flight("submissions_in_flight"):
            status, body = await self._relay.forward(payload)
        return web.json_response(body, status=status)

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        return web.Response(
            text=self._metrics.to_prometheus(),
            content_type="text/plain",
        )
