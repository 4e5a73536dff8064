"""Session: injected collaborators shared by every batch of one caller."""

from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation as DecimalInvalidOperation, localcontext
from typing import Optional, Sequence

import httpx

from .aggregators import default_sources
from .config.schema import BasketSwapConfig
from .errors import InvalidOperation
from .orders.batch import MultiToSingleSwapper, SingleToMultiSwapper, TokenAdder, TokenSeller
from .orders.complex import ComplexOperation
from .orders.encoding import build_order_fragment
from .orders.liquidation import Liquidator
from .router.selector import AggregatorSelector
from .services.cache import AsyncCache
from .types import ContractCallEncoder, PriceSource, ProtocolFeeRate, TokenDecimals
from .util.chains import NATIVE_TOKEN, Chain, normalise_token, wrap

LOGGER = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


def parse_units(amount: int | float | Decimal | str, decimals: int) -> int:
    """Convert a human amount to raw units, truncating extra precision."""

    try:
        value = Decimal(str(amount).strip())
    except (DecimalInvalidOperation, ValueError) as exc:
        raise InvalidOperation(f"invalid token amount: {amount!r}") from exc
    if not value.is_finite():
        raise InvalidOperation(f"invalid token amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = (value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


class Session:
    """Entry point binding a chain to its collaborators.

    ``decimals`` and ``fee_rates`` are async callables supplied by the caller
    (usually backed by on-chain reads). Token decimals are cached per
    ``(chain, token)`` for the lifetime of the session.
    """

    def __init__(
        self,
        chain: Chain | str,
        *,
        decimals: TokenDecimals,
        fee_rates: ProtocolFeeRate,
        selector: AggregatorSelector | None = None,
        sources: Sequence[PriceSource] | None = None,
        encoder: ContractCallEncoder | None = None,
        config: BasketSwapConfig | None = None,
        user_address: Optional[str] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.chain = Chain(chain)
        self.config = config or BasketSwapConfig()
        self.fee_rates = fee_rates
        self.encoder: ContractCallEncoder = encoder or build_order_fragment
        self.user_address = normalise_token(user_address) if user_address else None
        self._decimals = decimals
        self._decimals_cache: AsyncCache[int] = AsyncCache(name="token_decimals")
        self._http_client: httpx.AsyncClient | None = None
        if selector is None:
            if sources is None:
                # bundled sources share one client owned by the session
                self._http_client = httpx.AsyncClient(timeout=self.config.http_timeout_sec, transport=transport)
                sources = default_sources(self.config, client=self._http_client, decimals=self._lookup_decimals)
            selector = AggregatorSelector(sources, excluded=self.config.excluded_sources)
        self.selector = selector

    @property
    def http_client(self) -> httpx.AsyncClient | None:
        return self._http_client

    async def aclose(self) -> None:
        """Close the HTTP client of the bundled sources, if the session built them."""

        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _lookup_decimals(self, chain: Chain, token: str) -> int:
        return await self.token_decimals(token)

    async def token_decimals(self, token: str) -> int:
        token = normalise_token(token)
        if token == NATIVE_TOKEN:
            return NATIVE_DECIMALS
        token = wrap(self.chain, token)
        key = (self.chain, token)
        return await self._decimals_cache.get_or_populate(key, lambda: self._decimals(self.chain, token))

    async def to_token_amount(self, token: str, amount: int | float | Decimal | str) -> int:
        """Return ``amount`` in raw units; integers are already raw."""

        if isinstance(amount, bool):
            raise InvalidOperation(f"invalid token amount: {amount!r}")
        if isinstance(amount, int):
            raw = amount
        else:
            decimals = await self.token_decimals(token)
            raw = parse_units(amount, decimals)
        if raw < 0:
            raise InvalidOperation(f"token amount must not be negative: {amount!r}")
        return raw

    # ------------------------------------------------------------------
    # Batch factories

    def create_portfolio(self, spent_token: str) -> TokenAdder:
        return TokenAdder(self, spent_token)

    def add_tokens(self, spent_token: str) -> TokenAdder:
        return TokenAdder(self, spent_token)

    def swap_single_to_multi(self, sold_token: str) -> SingleToMultiSwapper:
        return SingleToMultiSwapper(self, sold_token)

    def swap_multi_to_single(self, bought_token: str) -> MultiToSingleSwapper:
        return MultiToSingleSwapper(self, bought_token)

    def sell_tokens(self, received_token: str) -> TokenSeller:
        return TokenSeller(self, received_token)

    def liquidate(self, received_token: str, slippage: float) -> Liquidator:
        return Liquidator(self, received_token, slippage)

    def complex_operation(self) -> ComplexOperation:
        return ComplexOperation(self)


__all__ = ["NATIVE_DECIMALS", "Session", "parse_units"]
