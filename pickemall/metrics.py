"""Lightweight in-process metrics for batch runs and tests.

Usage:
    from pickemall.metrics import metrics
    metrics.inc("executor.crop_succeeded")
    with metrics.timed("executor.operation_duration"):
        ...
    snapshot = metrics.snapshot()

Timings are kept as running aggregates (count, total, max) so a long-lived
process does not grow with every timed call.
"""

from __future__ import annotations

import time
from collections import defaultdict
from contextlib import contextmanager
from threading import RLock
from typing import Any


def _new_timing() -> dict[str, float]:
    return {"count": 0, "total": 0.0, "max": 0.0}


class _Metrics:
    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._timings: dict[str, dict[str, float]] = defaultdict(_new_timing)
        self._lock = RLock()

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += int(amount)

    def observe(self, key: str, elapsed: float) -> None:
        with self._lock:
            agg = self._timings[key]
            agg["count"] += 1
            agg["total"] += elapsed
            if elapsed > agg["max"]:
                agg["max"] = elapsed

    @contextmanager
    def timed(self, key: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(key, time.perf_counter() - start)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {k: dict(v) for k, v in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


metrics = _Metrics()
