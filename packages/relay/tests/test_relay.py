"""Tests for upstream forwarding, with the upstream faked by httpx.MockTransport."""

import httpx
import pytest

from fd_relay.metrics import MetricsCollector
from fd_relay.relay import SheetsRelay

UPSTREAM = "https://script.example/macros/s/abc/exec"


def _relay(handler, metrics=None) -> SheetsRelay:
    return SheetsRelay(UPSTREAM, metrics=metrics, transport=httpx.MockTransport(handler))


async def test_forward_returns_upstream_json():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "orders": []})

    metrics = MetricsCollector()
    relay = _relay(handler, metrics)
    await relay.open()
    try:
        status, body = await relay.forward({"action": "getOrders", "userEmail": "a@b.c"})
    finally:
        await relay.close()

    assert status == 200
    assert body == {"success": True, "orders": []}
    assert seen[0].method == "POST"
    assert seen[0].headers["content-type"] == "application/json"
    assert metrics.get("submissions_total") == 1
    assert metrics.get("upstream_errors_total") == 0


async def test_forward_follows_redirect():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/exec"):
            return httpx.Response(302, headers={"Location": "https://script.example/echo?id=1"})
        assert request.method == "GET"
        return httpx.Response(200, json={"success": True})

    relay = _relay(handler)
    await relay.open()
    try:
        status, body = await relay.forward({"action": "addOrder"})
    finally:
        await relay.close()

    assert status == 200
    assert body == {"success": True}


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(500, text="Script error"),
        lambda request: httpx.Response(200, text="<html>not json</html>"),
    ],
    ids=["upstream-500", "non-json"],
)
async def test_forward_failure_becomes_500(handler):
    metrics = MetricsCollector()
    relay = _relay(handler, metrics)
    await relay.open()
    try:
        status, body = await relay.forward({"action": "getOrders"})
    finally:
        await relay.close()

    assert status == 500
    assert body["success"] is False
    assert body["error"]
    assert "timestamp" in body
    assert metrics.get("upstream_errors_total") == 1


async def test_forward_unreachable_becomes_500():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    relay = _relay(handler)
    await relay.open()
    try:
        status, body = await relay.forward({"action": "getOrders"})
    finally:
        await relay.close()

    assert status == 500
    assert "connection refused" in body["error"]
