"""Session-scoped async get-or-populate cache."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Dict, Generic, TypeVar

from ..metrics.cache import record_cache_observation

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["AsyncCache"]


class AsyncCache(Generic[T]):
    """Cache awaitable results by key.

    Concurrent callers for the same key share one in-flight producer. A
    producer that fails is evicted so the next caller retries it.
    """

    def __init__(self, name: str = "default") -> None:
        self._name = name
        self._entries: Dict[Hashable, asyncio.Future[T]] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def evict(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    async def get_or_populate(self, key: Hashable, producer: Callable[[], Awaitable[T]]) -> T:
        entry = self._entries.get(key)
        if entry is not None:
            record_cache_observation(self._name, True)
            return await asyncio.shield(entry)

        record_cache_observation(self._name, False)
        entry = asyncio.ensure_future(self._produce(key, producer))
        self._entries[key] = entry
        return await asyncio.shield(entry)

    async def _produce(self, key: Hashable, producer: Callable[[], Awaitable[T]]) -> T:
        try:
            return await producer()
        except BaseException as exc:
            if self._entries.get(key) is asyncio.current_task():
                self._entries.pop(key, None)
            LOGGER.debug(
                "cache.populate_failed",
                extra={
                    "event": "cache_populate_failed",
                    "component": "async_cache",
                    "details": {"cache": self._name, "key": repr(key)},
                },
                exc_info=exc,
            )
            raise
