import asyncio

import pytest

from basketswap.orders.coalescer import QuoteCoalescer


@pytest.mark.asyncio
async def test_last_trigger_of_a_burst_wins() -> None:
    coalescer = QuoteCoalescer(0.01)

    first = asyncio.create_task(coalescer.wait_quiet())
    await asyncio.sleep(0)
    second = asyncio.create_task(coalescer.wait_quiet())

    assert await first is False
    assert await second is True
    assert not coalescer.pending


@pytest.mark.asyncio
async def test_cancel_resolves_pending_window_false() -> None:
    coalescer = QuoteCoalescer(1.0)

    waiter = asyncio.create_task(coalescer.wait_quiet())
    await asyncio.sleep(0)
    assert coalescer.pending
    coalescer.cancel()

    assert await asyncio.wait_for(waiter, timeout=0.5) is False
    assert not coalescer.pending


@pytest.mark.asyncio
async def test_cancel_without_pending_window_is_noop() -> None:
    coalescer = QuoteCoalescer(0.0)
    coalescer.cancel()

    assert await coalescer.wait_quiet() is True
