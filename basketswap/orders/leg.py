"""Per-leg quoting state machine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation as DecimalInvalidOperation
from typing import TYPE_CHECKING, Optional

from ..errors import InvalidOperation, QuoteError
from ..metrics.quotes import leg_refresh_total
from ..types import AggregatorQuote, BuyAmount, OrderFragment, QuoteRequest, Side, SpendAmount
from ..util.chains import normalise_token, wrap
from .coalescer import QuoteCoalescer
from .fees import add_fees, remove_fees

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..session import Session
    from .batch import OrderBatch

LOGGER = logging.getLogger(__name__)

FLAT_OPERATOR = "Flat"


@dataclass(slots=True)
class LegFees:
    on: Side
    on_token: str
    amount: int = 0


def _is_zero(amount: object) -> bool:
    if isinstance(amount, (int, float, Decimal)):
        return amount == 0
    try:
        return Decimal(str(amount).strip()) == 0
    except (DecimalInvalidOperation, ValueError):
        return False


def validate_slippage(slippage: float) -> float:
    value = float(slippage)
    if not 0.0 <= value < 1.0:
        raise InvalidOperation(f"slippage must be within [0, 1), got {slippage!r}")
    return value


class OrderLeg:
    """One token-to-token swap intention inside a batch.

    Exactly one of ``input_qty``/``output_qty`` is authoritative, selected by
    ``fixed_side``; the other one is derived from the last settled quote.

    Mutators return ``True`` when their result is (or became) the leg's state
    and ``False`` when a more recently issued mutation superseded them. A
    ``False`` is not a failure: callers should read the leg again.
    """

    def __init__(
        self,
        parent: "OrderBatch",
        input_token: str,
        output_token: str,
        slippage: float,
        fixed_side: Side = Side.INPUT,
        *,
        flat_on_error: bool = False,
    ) -> None:
        self._parent = parent
        self.input_token = normalise_token(input_token)
        self.output_token = normalise_token(output_token)
        self.slippage = validate_slippage(slippage)
        self.fixed_side = Side(fixed_side)
        self.flat_on_error = flat_on_error
        self.input_qty = 0
        self.output_qty = 0
        self.price = 0.0
        self.guaranteed_price = 0.0
        self.estimated_price_impact = 0.0
        self.source_id: Optional[str] = None
        self.encoded_order: Optional[OrderFragment] = None
        self.fell_back_to_flat = False
        self.fees = LegFees(on=parent.fees_on, on_token=self._fee_token(), amount=0)
        self._seq = 0
        self._pending: Optional[int] = None
        self._conversion: Optional[asyncio.Future[int]] = None
        self._coalescer = QuoteCoalescer(parent.session.config.coalesce_window_sec)

    def __repr__(self) -> str:
        return (
            f"OrderLeg({self.input_token}->{self.output_token}, fixed={self.fixed_side.value}, "
            f"in={self.input_qty}, out={self.output_qty}, source={self.operator})"
        )

    # ------------------------------------------------------------------
    # Read side

    @property
    def session(self) -> "Session":
        return self._parent.session

    @property
    def chain(self):
        return self.session.chain

    @property
    def fees_on(self) -> Side:
        return self._parent.fees_on

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def is_settled(self) -> bool:
        return self._pending is None and self.encoded_order is not None

    @property
    def is_flat(self) -> bool:
        return wrap(self.chain, self.input_token) == wrap(self.chain, self.output_token)

    @property
    def operator(self) -> Optional[str]:
        if self.encoded_order is None:
            return None
        return self.source_id or FLAT_OPERATOR

    @property
    def fixed_qty(self) -> int:
        return self.input_qty if self.fixed_side is Side.INPUT else self.output_qty

    # ------------------------------------------------------------------
    # Mutators

    async def set_input_amount(self, amount: int | float | Decimal | str) -> bool:
        return await self._set_amount(Side.INPUT, amount)

    async def set_output_amount(self, amount: int | float | Decimal | str) -> bool:
        return await self._set_amount(Side.OUTPUT, amount)

    async def change_slippage(self, slippage: float) -> bool:
        value = validate_slippage(slippage)
        if value == self.slippage:
            return True
        self.slippage = value
        conversion = self._conversion
        if conversion is not None and not conversion.done():
            # the pending amount must land before the new quote is requested
            await asyncio.wait([conversion])
        return await self.refresh()

    async def refresh(self) -> bool:
        seq = self._issue()
        return await self._refresh(seq)

    def remove(self) -> None:
        self._parent._remove_leg(self)
        self._retire()

    def _retire(self) -> None:
        """Supersede every in-flight operation of a leg leaving its batch."""

        self._issue()
        self._coalescer.cancel()
        self._pending = None

    # ------------------------------------------------------------------
    # Internals

    def _issue(self) -> int:
        self._seq += 1
        self._pending = self._seq
        return self._seq

    def _is_current(self, seq: int) -> bool:
        return seq == self._seq

    def _stale(self, seq: int, stage: str) -> bool:
        LOGGER.debug(
            "order_leg.superseded",
            extra={
                "event": "order_leg_superseded",
                "component": __name__,
                "details": {"stage": stage, "seq": seq, "current": self._seq, "leg": repr(self)},
            },
        )
        leg_refresh_total.labels(result="stale").inc()
        return False

    def _fee_token(self) -> str:
        return self.input_token if self._parent.fees_on is Side.INPUT else self.output_token

    def _order_token(self) -> str:
        token = self.output_token if self.fees_on is Side.INPUT else self.input_token
        return wrap(self.chain, token)

    async def _set_amount(self, side: Side, amount: int | float | Decimal | str) -> bool:
        seq = self._issue()
        if _is_zero(amount):
            self.fixed_side = side
            self._reset()
            return True
        token = self.input_token if side is Side.INPUT else self.output_token
        conversion = asyncio.ensure_future(self.session.to_token_amount(token, amount))
        self._conversion = conversion
        try:
            qty = await conversion
        except Exception:
            if not self._is_current(seq):
                return self._stale(seq, "conversion_failed")
            self._pending = None
            raise
        finally:
            if self._conversion is conversion:
                self._conversion = None
        if not self._is_current(seq):
            return self._stale(seq, "conversion")
        self.fixed_side = side
        if side is Side.INPUT:
            self.input_qty = qty
        else:
            self.output_qty = qty
        return await self._refresh(seq)

    def _reset(self) -> None:
        self._coalescer.cancel()
        self._pending = None
        self.input_qty = 0
        self.output_qty = 0
        self.price = 0.0
        self.guaranteed_price = 0.0
        self.estimated_price_impact = 0.0
        self.source_id = None
        self.encoded_order = None
        self.fell_back_to_flat = False
        self.fees = LegFees(on=self.fees_on, on_token=self._fee_token(), amount=0)
        leg_refresh_total.labels(result="reset").inc()

    async def _refresh(self, seq: int) -> bool:
        if self.fixed_qty == 0:
            self._reset()
            return True
        try:
            rate = await self._parent.fee_rate()
        except Exception:
            if not self._is_current(seq):
                return self._stale(seq, "fee_rate_failed")
            self._pending = None
            leg_refresh_total.labels(result="error").inc()
            raise
        if not self._is_current(seq):
            return self._stale(seq, "fee_rate")
        if self.is_flat:
            self._coalescer.cancel()
            self._prepare_flat(rate)
            leg_refresh_total.labels(result="flat").inc()
            return True

        if not await self._coalescer.wait_quiet():
            return self._stale(seq, "coalesced")
        if not self._is_current(seq):
            return self._stale(seq, "window")

        request = self._build_request(rate)
        try:
            quote = await self.session.selector.best_quote(request)
        except QuoteError as exc:
            if not self._is_current(seq):
                return self._stale(seq, "quote_failed")
            if self.flat_on_error:
                LOGGER.warning(
                    "order_leg.flat_fallback",
                    extra={
                        "event": "order_leg_flat_fallback",
                        "component": __name__,
                        "details": {"leg": repr(self), "reason": str(exc)},
                    },
                )
                self._prepare_flat(rate, fallback=True)
                leg_refresh_total.labels(result="fallback").inc()
                return True
            self._pending = None
            leg_refresh_total.labels(result="error").inc()
            raise
        except Exception:
            if not self._is_current(seq):
                return self._stale(seq, "quote_failed")
            self._pending = None
            leg_refresh_total.labels(result="error").inc()
            raise

        if not self._is_current(seq):
            return self._stale(seq, "quote")
        # no suspension point below: the commit is atomic
        self._apply_quote(quote, rate)
        leg_refresh_total.labels(result="settled").inc()
        return True

    def _build_request(self, rate: int) -> QuoteRequest:
        if self.fixed_side is Side.INPUT:
            qty = remove_fees(self.input_qty, rate) if self.fees_on is Side.INPUT else self.input_qty
            amount = SpendAmount(qty)
        else:
            qty = self.output_qty if self.fees_on is Side.INPUT else add_fees(self.output_qty, rate)
            amount = BuyAmount(qty)
        return QuoteRequest(
            chain=self.chain,
            spend_token=wrap(self.chain, self.input_token),
            buy_token=wrap(self.chain, self.output_token),
            slippage=self.slippage,
            amount=amount,
            user_address=self.session.user_address,
        )

    def _apply_quote(self, quote: AggregatorQuote, rate: int) -> None:
        if self.fixed_side is Side.INPUT:
            if self.fees_on is Side.INPUT:
                self.output_qty = quote.buy_amount
                fee = self.input_qty - remove_fees(self.input_qty, rate)
            else:
                self.output_qty = remove_fees(quote.buy_amount, rate)
                fee = quote.buy_amount - self.output_qty
        else:
            if self.fees_on is Side.INPUT:
                self.input_qty = add_fees(quote.sell_amount, rate)
                fee = self.input_qty - quote.sell_amount
            else:
                self.input_qty = quote.sell_amount
                fee = add_fees(self.output_qty, rate) - self.output_qty

        self.fees = LegFees(on=self.fees_on, on_token=self._fee_token(), amount=fee)
        self.price = quote.price
        self.guaranteed_price = quote.guaranteed_price
        self.estimated_price_impact = quote.estimated_price_impact
        self.source_id = quote.source_id
        self.fell_back_to_flat = False
        self.encoded_order = self.session.encoder(
            quote.source_id,
            self._order_token(),
            [
                ("address", wrap(self.chain, self.input_token)),
                ("address", wrap(self.chain, self.output_token)),
                ("bytes", quote.call_data),
            ],
        )
        self._pending = None

    def _prepare_flat(self, rate: int, *, fallback: bool = False) -> None:
        """Settle without swapping: only the protocol fee applies."""

        if self.fixed_side is Side.INPUT:
            self.output_qty = remove_fees(self.input_qty, rate)
        else:
            self.input_qty = add_fees(self.output_qty, rate)
        moved = self.output_qty if self.fees_on is Side.INPUT else self.input_qty
        token = self.input_token if fallback else self._order_token()
        self.fees = LegFees(
            on=self.fees_on,
            on_token=self.input_token if fallback else self._fee_token(),
            amount=self.input_qty - self.output_qty,
        )
        self.price = 1.0
        self.guaranteed_price = 1.0
        self.estimated_price_impact = 0.0
        self.source_id = None
        self.fell_back_to_flat = fallback
        self.encoded_order = self.session.encoder(
            FLAT_OPERATOR,
            wrap(self.chain, token),
            [
                ("address", wrap(self.chain, self.input_token)),
                ("uint256", moved),
            ],
        )
        self._pending = None


__all__ = ["FLAT_OPERATOR", "LegFees", "OrderLeg", "validate_slippage"]
