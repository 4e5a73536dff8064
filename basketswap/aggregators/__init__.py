"""Price source adapters."""

from __future__ import annotations

from typing import List

import httpx

from ..config.schema import BasketSwapConfig
from ..types import PriceSource
from .paraswap import DecimalsLookup, ParaSwapSource
from .rate import AsyncRateLimiter
from .zeroex import ZeroExSource


def default_sources(
    config: BasketSwapConfig,
    *,
    client: httpx.AsyncClient | None = None,
    decimals: DecimalsLookup | None = None,
) -> List[PriceSource]:
    """Return the bundled sources in priority order."""

    return [
        ZeroExSource(config.zeroex, client=client, timeout=config.http_timeout_sec),
        ParaSwapSource(config.paraswap, client=client, timeout=config.http_timeout_sec, decimals=decimals),
    ]


__all__ = ["AsyncRateLimiter", "ParaSwapSource", "ZeroExSource", "default_sources"]
