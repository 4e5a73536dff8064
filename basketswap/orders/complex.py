"""Deposits, withdrawals and intra-portfolio swaps in a single operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..errors import InvalidOperation
from ..types import Side
from ..util.chains import normalise_token, wrap
from .batch import BatchedInputOrders, BatchedOutputOrders, OrderBatch
from .leg import OrderLeg

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..session import Session


@dataclass(slots=True, frozen=True)
class ComplexPlan:
    inputs: Tuple[BatchedInputOrders, ...]
    outputs: Tuple[BatchedOutputOrders, ...]
    value: int


class ComplexOperation:
    def __init__(self, session: "Session") -> None:
        self.session = session
        self._deposits = OrderBatch(session, "entry")
        self._withdrawals = OrderBatch(session, "exit")
        self._swaps = OrderBatch(session, "entry")

    @property
    def deposits(self) -> Tuple[OrderLeg, ...]:
        return self._deposits.legs

    @property
    def withdrawals(self) -> Tuple[OrderLeg, ...]:
        return self._withdrawals.legs

    @property
    def swaps(self) -> Tuple[OrderLeg, ...]:
        return self._swaps.legs

    def add_from_wallet(self, token_to_add: str, pay_with: Optional[str] = None, slippage: float = 0.0) -> OrderLeg:
        token_to_add = normalise_token(token_to_add)
        pay_with = normalise_token(pay_with or token_to_add)
        return self._deposits._add_leg(pay_with, token_to_add, slippage, Side.INPUT)

    def withdraw_to_wallet(
        self, token_to_withdraw: str, receive_in: Optional[str] = None, slippage: float = 0.0
    ) -> OrderLeg:
        token_to_withdraw = normalise_token(token_to_withdraw)
        receive_in = normalise_token(receive_in or token_to_withdraw)
        return self._withdrawals._add_leg(token_to_withdraw, receive_in, slippage, Side.OUTPUT)

    def swap_in_portfolio(self, token_to_sell: str, token_to_buy: str, slippage: float) -> OrderLeg:
        # fees are taken on the sold token so they are known upfront
        token_to_sell = wrap(self.session.chain, token_to_sell)
        token_to_buy = wrap(self.session.chain, token_to_buy)
        if token_to_sell == token_to_buy:
            raise InvalidOperation("You cannot swap a token to itself")
        return self._swaps._add_leg(token_to_sell, token_to_buy, slippage, Side.INPUT)

    def plan(self) -> ComplexPlan:
        inputs: List[BatchedInputOrders] = []
        if self._deposits.legs:
            inputs.extend(self._deposits.input_orders(from_reserve=False))
        if self._swaps.legs:
            inputs.extend(self._swaps.input_orders(from_reserve=True))
        outputs: List[BatchedOutputOrders] = []
        if self._withdrawals.legs:
            outputs.extend(self._withdrawals.output_orders(to_reserve=False))
        if not inputs and not outputs:
            raise InvalidOperation("Nothing to execute")
        value = self._deposits.native_value() if self._deposits.legs else 0
        return ComplexPlan(inputs=tuple(inputs), outputs=tuple(outputs), value=value)


__all__ = ["ComplexOperation", "ComplexPlan"]
