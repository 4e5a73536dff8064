from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, Tuple


@dataclass
class _TokenBucket:
    capacity: float
    refill_rate: float
    tokens: float
    updated_at: float


class AsyncRateLimiter:
    """Token buckets shared by every request to one remote API.

    ``limits`` holds ``(limit, interval_seconds)`` pairs; a request proceeds
    only when every bucket has a token left.
    """

    def __init__(
        self,
        limits: Sequence[Tuple[int, float]],
        *,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        now = self._clock()
        self._buckets = [
            _TokenBucket(
                capacity=float(max(1, int(limit))),
                refill_rate=max(1, int(limit)) / max(float(interval), 1e-9),
                tokens=float(max(1, int(limit))),
                updated_at=now,
            )
            for limit, interval in limits
        ]

    def _refill(self, bucket: _TokenBucket) -> None:
        now = self._clock()
        elapsed = max(0.0, now - bucket.updated_at)
        bucket.tokens = min(bucket.capacity, bucket.tokens + elapsed * bucket.refill_rate)
        bucket.updated_at = now

    def try_acquire(self) -> float:
        """Take a token from every bucket, or return the seconds to wait."""

        for bucket in self._buckets:
            self._refill(bucket)
        wait = 0.0
        for bucket in self._buckets:
            if bucket.tokens < 1.0:
                wait = max(wait, (1.0 - bucket.tokens) / bucket.refill_rate)
        if wait > 0.0:
            return wait
        for bucket in self._buckets:
            bucket.tokens -= 1.0
        return 0.0

    async def acquire(self) -> None:
        while True:
            wait = self.try_acquire()
            if wait <= 0.0:
                return
            await self._sleep(wait)


__all__ = ["AsyncRateLimiter"]
