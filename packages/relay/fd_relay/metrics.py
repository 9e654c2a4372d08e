"""
Relay counters and gauges with Prometheus text exposition.

Counters: submissions_total, upstream_errors_total, invalid_requests_total.
Gauges: submissions_in_flight, raised for the duration of each forward.
"""

from __future__ import annotations

import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator

PREFIX = "relay_"


class MetricsCollector:
    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._gauges: dict[str, float] = defaultdict(float)
        self._start_time = time.time()

    def inc(self, name: str, value: int = 1) -> None:
        """Increment a counter."""
        self._counters[f"{PREFIX}{name}"] += value

    def adjust_gauge(self, name: str, delta: float) -> None:
        self._gauges[f"{PREFIX}{name}"] += delta

    @contextmanager
    def in_flight(self, name: str) -> Iterator[None]:
        """Hold a gauge one higher while the block runs, exceptions included."""
        self.adjust_gauge(name, 1)
        try:
            yield
        finally:
            self.adjust_gauge(name, -1)

    def get(self, name: str) -> int | float:
        full = f"{PREFIX}{name}"
        if full in self._gauges:
            return self._gauges[full]
        return self._counters.get(full, 0)

    def to_prometheus(self) -> str:
        """Export all metrics in Prometheus text format."""
        lines = []
        for name, value in sorted(self._counters.items()):
            lines.append(f"# TYPE {name} counter")
            lines.append(f"{name} {value}")
        for name, value in sorted(self._gauges.items()):
            lines.append(f"# TYPE {name} gauge")
            lines.append(f"{name} {value:g}")
        uptime = time.time() - self._start_time
        lines.append(f"# TYPE {PREFIX}uptime_seconds gauge")
        lines.append(f"{PREFIX}uptime_seconds {uptime:.1f}")
        return "\n".join(lines) + "\n"
