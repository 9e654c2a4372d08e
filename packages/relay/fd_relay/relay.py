"""
Upstream relay: forwards one JSON body to the Apps Script web app.

Apps Script answers a POST with a redirect to the response document, so
redirects are followed. Any upstream failure becomes a 500 with
{"success": false, "error", "timestamp"}; nothing is retried.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from .metrics import MetricsCollector

log = structlog.get_logger()


def error_body(message: str) -> dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class SheetsRelay:
    """Forwards submissions to the upstream spreadsheet endpoint."""

    def __init__(
        self,
        upstream_url: str,
        verify_tls: bool = True,
        request_timeout: int = 30,
        metrics: MetricsCollector | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._upstream_url = upstream_url
        self._verify_tls = verify_tls
        self._request_timeout = request_timeout
        self._metrics = metrics
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def upstream_url(self) -> str:
        return self._upstream_url

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._request_timeout),
            verify=self._verify_tls,
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _inc(self, name: str) -> None:
        if self._metrics:
            self._metrics.inc(name)

    async def forward(self, payload: Any) -> tuple[int, Any]:
        """POST `payload` upstream. Returns (status, JSON body) for the caller."""
        assert self._client
        action = payload.get("action") if isinstance(payload, dict) else None
        log.info("relay.forwarding", action=action)
        self._inc("submissions_total")

        try:
            resp = await self._client.post(
                self._upstream_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            log.error("relay.upstream_error", action=action, status=exc.response.status_code)
            self._inc("upstream_errors_total")
            return 500, error_body(f"Upstream returned HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            log.error("relay.upstream_unreachable", action=action, error=str(exc))
            self._inc("upstream_errors_total")
            return 500, error_body(str(exc) or exc.__class__.__name__)
        except ValueError:
            log.error("relay.upstream_invalid_json", action=action)
            self._inc("upstream_errors_total")
            return 500, error_body("Upstream returned a non-JSON response")

        log.info("relay.forwarded", action=action)
        return 200, body
