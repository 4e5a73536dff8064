"""Prometheus metrics for price source quoting and leg refreshes."""

from prometheus_client import Counter, Histogram

quote_requests_total = Counter(
    "basketswap_quote_requests_total",
    "Total number of price source quote attempts",
    labelnames=("source", "result"),
)

quote_latency_seconds = Histogram(
    "basketswap_quote_latency_seconds",
    "Latency of price source quote attempts",
    labelnames=("source",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

leg_refresh_total = Counter(
    "basketswap_leg_refresh_total",
    "Order leg refresh outcomes",
    labelnames=("result",),
)

__all__ = ["leg_refresh_total", "quote_latency_seconds", "quote_requests_total"]
