from .cache import cache_hit_ratio, record_cache_observation, reset_cache_metrics
from .quotes import leg_refresh_total, quote_latency_seconds, quote_requests_total

__all__ = [
    "cache_hit_ratio",
    "leg_refresh_total",
    "quote_latency_seconds",
    "quote_requests_total",
    "record_cache_observation",
    "reset_cache_metrics",
]
