"""Quiet-window coalescing of bursty quote refreshes."""

from __future__ import annotations

import asyncio
from typing import Optional, Tuple


def _fire(waiter: asyncio.Future[bool]) -> None:
    if not waiter.done():
        waiter.set_result(True)


class QuoteCoalescer:
    """Merge rapid refresh triggers into a single external request.

    Each call to :meth:`wait_quiet` cancels the window opened by the previous
    call (which then resolves ``False``) and opens a fresh one. Only the last
    caller of a burst resolves ``True`` once ``window`` seconds pass without a
    new trigger.
    """

    def __init__(self, window: float) -> None:
        self._window = max(float(window), 0.0)
        self._pending: Optional[Tuple[asyncio.TimerHandle, asyncio.Future[bool]]] = None

    @property
    def window(self) -> float:
        return self._window

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def cancel(self) -> None:
        """Drop the pending window, resolving its waiter with ``False``."""

        if self._pending is None:
            return
        handle, waiter = self._pending
        self._pending = None
        handle.cancel()
        if not waiter.done():
            waiter.set_result(False)

    async def wait_quiet(self) -> bool:
        self.cancel()
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[bool] = loop.create_future()
        handle = loop.call_later(self._window, _fire, waiter)
        self._pending = (handle, waiter)
        try:
            return await waiter
        finally:
            if self._pending is not None and self._pending[1] is waiter:
                self._pending = None
                handle.cancel()


__all__ = ["QuoteCoalescer"]
