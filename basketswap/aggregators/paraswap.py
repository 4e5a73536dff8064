"""ParaSwap REST price source."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping

import httpx

from ..config.schema import ParaSwapConfig
from ..errors import InsufficientLiquidityError, QuoteError
from ..types import AggregatorQuote, QuoteRequest, SpendAmount
from ..util.chains import ZERO_ADDRESS, Chain, chain_info, wrap
from .base import as_float, as_int, scale

LOGGER = logging.getLogger(__name__)

SOURCE_ID = "Paraswap"
LIQUIDITY_MESSAGE = "No routes found with enough liquidity"
SUPPORTED_CHAINS = frozenset({Chain.ETH, Chain.BSC, Chain.POLY, Chain.AVAX})

DecimalsLookup = Callable[[Chain, str], Awaitable[int]]


def _message(payload: Any) -> str:
    if isinstance(payload, Mapping):
        for key in ("error", "message"):
            value = payload.get(key)
            if value:
                return str(value)
    return "unknown_error"


def _ratio(numerator: int, num_decimals: int, denominator: int, den_decimals: int) -> float:
    if denominator <= 0:
        return 0.0
    return (numerator / 10**num_decimals) / (denominator / 10**den_decimals)


def to_quote(price_route: Mapping[str, Any], transaction: Mapping[str, Any], src_limit: int, dest_limit: int) -> AggregatorQuote:
    """Convert a ParaSwap price route and transaction to a normalised quote."""

    src_amount = as_int(price_route.get("srcAmount"))
    dest_amount = as_int(price_route.get("destAmount"))
    src_decimals = int(price_route.get("srcDecimals") or 0)
    dest_decimals = int(price_route.get("destDecimals") or 0)
    src_usd = as_float(price_route.get("srcUSD"))
    dest_usd = as_float(price_route.get("destUSD"))
    impact = src_usd / dest_usd - 1 if dest_usd else 0.0
    return AggregatorQuote(
        source_id=SOURCE_ID,
        price=_ratio(dest_amount, dest_decimals, src_amount, src_decimals),
        guaranteed_price=_ratio(dest_limit, dest_decimals, src_limit, src_decimals),
        buy_amount=dest_amount,
        sell_amount=src_amount,
        estimated_price_impact=impact,
        call_data=str(transaction.get("data") or "0x"),
        allowance_target=str(price_route.get("tokenTransferProxy") or "").lower(),
    )


class ParaSwapSource:
    """Quote swaps through the ParaSwap ``/prices`` and ``/transactions`` endpoints."""

    source_id = SOURCE_ID

    def __init__(
        self,
        config: ParaSwapConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        decimals: DecimalsLookup | None = None,
    ) -> None:
        self.config = config or ParaSwapConfig()
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._decimals = decimals

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _token_decimals(self, chain: Chain, token: str) -> int | None:
        if self._decimals is None:
            return None
        return await self._decimals(chain, token)

    async def quote(self, request: QuoteRequest) -> AggregatorQuote | None:
        chain = Chain(request.chain)
        if chain not in SUPPORTED_CHAINS:
            return None
        network = chain_info(chain).chain_id
        spend_token = wrap(chain, request.spend_token)
        buy_token = wrap(chain, request.buy_token)
        selling = isinstance(request.amount, SpendAmount)
        src_decimals = await self._token_decimals(chain, spend_token)
        dest_decimals = await self._token_decimals(chain, buy_token)
        params: Dict[str, str] = {
            "srcToken": spend_token,
            "destToken": buy_token,
            "amount": str(request.amount.qty),
            "side": "SELL" if selling else "BUY",
            "network": str(network),
            "partner": self.config.partner,
        }
        if self.config.excluded_dexs:
            params["excludeDEXS"] = ",".join(self.config.excluded_dexs)
        if src_decimals is not None:
            params["srcDecimals"] = str(src_decimals)
        if dest_decimals is not None:
            params["destDecimals"] = str(dest_decimals)
        if request.user_address:
            params["userAddress"] = request.user_address

        response = await self._client.get(f"{self.config.base_url}/prices", params=params)
        payload = self._json(response)
        price_route = payload.get("priceRoute") if isinstance(payload, Mapping) else None
        if not response.is_success or not isinstance(price_route, Mapping):
            message = _message(payload)
            if message == LIQUIDITY_MESSAGE:
                raise InsufficientLiquidityError(SOURCE_ID, message)
            self._log_failure("prices", response.status_code, message)
            raise QuoteError(f"Failed to fetch ParaSwap quote: {message} ({response.status_code})")

        src_amount = as_int(price_route.get("srcAmount"))
        dest_amount = as_int(price_route.get("destAmount"))
        if selling:
            src_limit = src_amount
            dest_limit = scale(dest_amount, 1 - request.slippage)
        else:
            src_limit = scale(src_amount, 1 + request.slippage)
            dest_limit = dest_amount

        body = {
            "srcToken": spend_token,
            "destToken": buy_token,
            "srcAmount": str(src_limit),
            "destAmount": str(dest_limit),
            "priceRoute": dict(price_route),
            "userAddress": request.user_address or ZERO_ADDRESS,
            "partner": self.config.partner,
            "srcDecimals": price_route.get("srcDecimals"),
            "destDecimals": price_route.get("destDecimals"),
        }
        response = await self._client.post(
            f"{self.config.base_url}/transactions/{network}",
            params={"ignoreChecks": "true", "ignoreGasEstimate": "true"},
            json=body,
        )
        transaction = self._json(response)
        if not response.is_success or not isinstance(transaction, Mapping) or "data" not in transaction:
            message = _message(transaction)
            self._log_failure("transactions", response.status_code, message)
            raise QuoteError(f"Failed to fetch ParaSwap transaction: {message} ({response.status_code})")
        return to_quote(price_route, transaction, src_limit, dest_limit)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _log_failure(stage: str, status: int, message: str) -> None:
        LOGGER.warning(
            "paraswap.quote_failed",
            extra={
                "event": "paraswap_quote_failed",
                "component": __name__,
                "details": {"stage": stage, "status": status, "reason": message},
            },
        )


__all__ = ["LIQUIDITY_MESSAGE", "ParaSwapSource", "SOURCE_ID", "SUPPORTED_CHAINS", "to_quote"]
