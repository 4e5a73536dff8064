"""Prometheus instrumentation for the session caches."""

from __future__ import annotations

import threading
from collections import Counter as Tally
from typing import Dict

from prometheus_client import Counter, Gauge

__all__ = [
    "cache_hit_ratio",
    "record_cache_observation",
    "reset_cache_metrics",
]

cache_lookups_total = Counter(
    "basketswap_cache_lookups_total",
    "Session cache lookups by cache name and outcome",
    labelnames=("cache", "result"),
)

cache_hit_ratio_gauge = Gauge(
    "basketswap_cache_hit_ratio",
    "Hit ratio of the session caches since process start or last reset",
    labelnames=("cache",),
)

_LOCK = threading.Lock()
_TALLIES: Dict[str, Tally] = {}


def record_cache_observation(cache: str, hit: bool) -> None:
    """Count one lookup against ``cache`` and refresh its hit ratio."""

    result = "hit" if hit else "miss"
    cache_lookups_total.labels(cache=cache, result=result).inc()
    with _LOCK:
        tally = _TALLIES.setdefault(cache, Tally())
        tally[result] += 1
        ratio = tally["hit"] / sum(tally.values())
    cache_hit_ratio_gauge.labels(cache=cache).set(ratio)


def cache_hit_ratio(cache: str) -> float:
    with _LOCK:
        tally = _TALLIES.get(cache)
        if not tally:
            return 0.0
        return tally["hit"] / sum(tally.values())


def reset_cache_metrics() -> None:
    """Forget the per-cache tallies (used in tests)."""

    with _LOCK:
        _TALLIES.clear()
    cache_hit_ratio_gauge.clear()
