"""
Shared fixtures for relay tests.
"""

import asyncio
import random

import pytest
import uvicorn

from relay_mocks import create_sheet_app


class _UvicornServer:
    def __init__(self, app, host: str, port: int):
        self.config = uvicorn.Config(app, host=host, port=port, log_level="error")
        self.server = uvicorn.Server(self.config)
        self._task: asyncio.Task | None = None

    async def start(self):
        self._task = asyncio.create_task(self.server.serve())
        for _ in range(100):
            if self.server.started:
                return
            await asyncio.sleep(0.05)
        raise RuntimeError("Server did not start")

    async def stop(self):
        self.server.should_exit = True
        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=5)
            except (asyncio.TimeoutError, asyncio.CancelledError):
                self._task.cancel()


def pick_port():
    return random.randint(19000, 19999)


@pytest.fixture
async def sheet_server(tmp_path):
    """Base URL of a running mock spreadsheet endpoint."""
    port = pick_port()
    app = create_sheet_app(str(tmp_path / "sheet.db"))
    srv = _UvicornServer(app, "127.0.0.1", port)
    await srv.start()
    yield f"http://127.0.0.1:{port}"
    await srv.stop()


@pytest.fixture
def relay_config_dict(sheet_server):
    return {
        "upstream": {
            "url": f"{sheet_server}/exec",
            "request_timeout_seconds": 10,
        },
        "server": {"host": "127.0.0.1", "port": pick_port()},
        "cors": {"origin": "http://localhost:3000"},
        "logging": {"level": "debug", "format": "text"},
        "metrics": {"enabled": True},
    }
