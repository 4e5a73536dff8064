"""0x swap API price source."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

import httpx

from ..config.schema import ZeroExConfig
from ..errors import InsufficientLiquidityError, QuoteError
from ..types import AggregatorQuote, QuoteRequest, SpendAmount
from ..util.chains import Chain, wrap
from .base import as_float, as_int
from .rate import AsyncRateLimiter

LOGGER = logging.getLogger(__name__)

SOURCE_ID = "ZeroEx"
LIQUIDITY_REASON = "INSUFFICIENT_ASSET_LIQUIDITY"

ENDPOINTS: Mapping[Chain, str] = {
    Chain.ETH: "https://api.0x.org/",
    Chain.ROP: "https://ropsten.api.0x.org/",
    Chain.BSC: "https://bsc.api.0x.org/",
    Chain.AVAX: "https://avalanche.api.0x.org/",
    Chain.POLY: "https://polygon.api.0x.org/",
    Chain.OPTI: "https://optimism.api.0x.org/",
    Chain.ARBI: "https://arbitrum.api.0x.org/",
    Chain.FTM: "https://fantom.api.0x.org/",
    Chain.CELO: "https://celo.api.0x.org/",
}


def quote_params(request: QuoteRequest) -> Dict[str, str]:
    params = {
        "sellToken": wrap(request.chain, request.spend_token),
        "buyToken": wrap(request.chain, request.buy_token),
        "slippagePercentage": str(request.slippage),
    }
    if isinstance(request.amount, SpendAmount):
        params["sellAmount"] = str(request.amount.qty)
    else:
        params["buyAmount"] = str(request.amount.qty)
    if request.user_address:
        params["takerAddress"] = request.user_address
    return params


def _error_reason(payload: Any) -> str:
    if isinstance(payload, Mapping):
        errors = payload.get("validationErrors")
        if isinstance(errors, list) and errors and isinstance(errors[0], Mapping):
            reason = errors[0].get("reason")
            if reason:
                return str(reason)
        reason = payload.get("reason")
        if reason:
            return str(reason)
    return "unknown_error"


def parse_quote(payload: Mapping[str, Any]) -> AggregatorQuote:
    return AggregatorQuote(
        source_id=SOURCE_ID,
        price=as_float(payload.get("price")),
        guaranteed_price=as_float(payload.get("guaranteedPrice")),
        buy_amount=as_int(payload.get("buyAmount")),
        sell_amount=as_int(payload.get("sellAmount")),
        estimated_price_impact=as_float(payload.get("estimatedPriceImpact")),
        call_data=str(payload.get("data") or "0x"),
        allowance_target=str(payload.get("allowanceTarget") or "").lower(),
    )


class ZeroExSource:
    """Quote swaps through the 0x ``swap/v1/quote`` endpoint."""

    source_id = SOURCE_ID

    def __init__(
        self,
        config: ZeroExConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        limiter: AsyncRateLimiter | None = None,
    ) -> None:
        self.config = config or ZeroExConfig()
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._limiter = limiter or AsyncRateLimiter(
            [(self.config.rate_per_sec, 1.0), (self.config.rate_per_min, 60.0)]
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def quote(self, request: QuoteRequest) -> AggregatorQuote | None:
        endpoint = ENDPOINTS.get(Chain(request.chain))
        if endpoint is None:
            return None
        headers = {"0x-api-key": self.config.api_key} if self.config.api_key else {}
        url = f"{endpoint}swap/v1/quote"
        await self._limiter.acquire()
        response = await self._client.get(url, params=quote_params(request), headers=headers)
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.is_success and isinstance(payload, Mapping):
            return parse_quote(payload)
        reason = _error_reason(payload)
        if reason == LIQUIDITY_REASON:
            raise InsufficientLiquidityError(SOURCE_ID, reason)
        LOGGER.warning(
            "zeroex.quote_failed",
            extra={
                "event": "zeroex_quote_failed",
                "component": __name__,
                "details": {"status": response.status_code, "reason": reason, "url": url},
            },
        )
        raise QuoteError(f"Failed to fetch 0x quote: {reason} ({response.status_code})")


__all__ = ["ENDPOINTS", "SOURCE_ID", "ZeroExSource", "parse_quote", "quote_params"]
