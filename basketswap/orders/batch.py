"""Batches own the legs of one portfolio operation."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from ..errors import InvalidOperation
from ..services.cache import AsyncCache
from ..types import Direction, OrderFragment, Side
from ..util.chains import NATIVE_TOKEN, normalise_token, wrap
from .leg import OrderLeg

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..session import Session

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SettledOrder:
    """Snapshot of a settled leg, ready for encoding."""

    order: OrderFragment
    input_token: str
    output_token: str
    input_qty: int
    output_qty: int


@dataclass(slots=True, frozen=True)
class BatchedInputOrders:
    input_token: str
    amount: int
    orders: Tuple[OrderFragment, ...]
    from_reserve: bool


@dataclass(slots=True, frozen=True)
class BatchedOutputOrders:
    output_token: str
    amounts: Tuple[int, ...]
    orders: Tuple[OrderFragment, ...]
    to_reserve: bool


def ensure_settled(legs: List[OrderLeg]) -> List[SettledOrder]:
    settled: List[SettledOrder] = []
    for leg in legs:
        if not leg.is_settled or leg.encoded_order is None:
            raise InvalidOperation("Operation is not yet ready (an order is still loading, or errored)")
        settled.append(
            SettledOrder(
                order=leg.encoded_order,
                input_token=leg.input_token,
                output_token=leg.output_token,
                input_qty=leg.input_qty,
                output_qty=leg.output_qty,
            )
        )
    return settled


def _group(orders: List[SettledOrder], key: Callable[[SettledOrder], str]) -> "OrderedDict[str, List[SettledOrder]]":
    grouped: "OrderedDict[str, List[SettledOrder]]" = OrderedDict()
    for order in orders:
        grouped.setdefault(key(order), []).append(order)
    return grouped


class OrderBatch:
    """Collection of legs sharing a direction and a protocol fee rate.

    ``entry`` batches charge the protocol fee on the input side of each leg,
    ``exit`` batches on the output side.
    """

    removable = True

    def __init__(self, session: "Session", direction: Direction) -> None:
        if direction not in ("entry", "exit"):
            raise InvalidOperation(f"unknown direction: {direction!r}")
        self.session = session
        self.direction: Direction = direction
        self._legs: List[OrderLeg] = []
        self._fee_cache: AsyncCache[int] = AsyncCache(name="fee_rate")
        self._fee_rate: Optional[int] = None

    @property
    def fees_on(self) -> Side:
        return Side.INPUT if self.direction == "entry" else Side.OUTPUT

    @property
    def legs(self) -> Tuple[OrderLeg, ...]:
        return tuple(self._legs)

    def __len__(self) -> int:
        return len(self._legs)

    async def fee_rate(self) -> int:
        """Protocol fee rate for this batch, fetched once."""

        if self._fee_rate is not None:
            return self._fee_rate
        rate = await self._fee_cache.get_or_populate(
            self.direction, lambda: self.session.fee_rates(self.direction)
        )
        self._fee_rate = int(rate)
        return self._fee_rate

    def _add_leg(
        self,
        input_token: str,
        output_token: str,
        slippage: float,
        fixed_side: Side = Side.INPUT,
        *,
        flat_on_error: bool = False,
    ) -> OrderLeg:
        input_token = normalise_token(input_token)
        output_token = normalise_token(output_token)
        if any(leg.input_token == input_token and leg.output_token == output_token for leg in self._legs):
            raise InvalidOperation(f"An order already exists in this operation: {input_token} -> {output_token}")
        leg = OrderLeg(self, input_token, output_token, slippage, fixed_side, flat_on_error=flat_on_error)
        self._legs.append(leg)
        LOGGER.debug(
            "order_batch.leg_added",
            extra={
                "event": "order_batch_leg_added",
                "component": __name__,
                "details": {"direction": self.direction, "input": input_token, "output": output_token},
            },
        )
        return leg

    def _remove_leg(self, leg: OrderLeg) -> None:
        if not self.removable:
            raise InvalidOperation("Cannot remove an order from this operation")
        try:
            self._legs.remove(leg)
        except ValueError:
            return

    def settled_orders(self) -> List[SettledOrder]:
        return ensure_settled(self._legs)

    @property
    def total_budget(self) -> int:
        return sum(order.input_qty for order in self.settled_orders())

    def input_orders(self, *, from_reserve: bool = False) -> List[BatchedInputOrders]:
        """Group settled legs by spent token."""

        grouped = _group(self.settled_orders(), lambda o: o.input_token)
        batched = [
            BatchedInputOrders(
                input_token=token,
                amount=sum(o.input_qty for o in orders),
                orders=tuple(o.order for o in orders),
                from_reserve=from_reserve,
            )
            for token, orders in grouped.items()
        ]
        if sum(item.amount for item in batched) <= 0:
            raise InvalidOperation("No valid order in operation")
        return batched

    def output_orders(self, *, to_reserve: bool = False) -> List[BatchedOutputOrders]:
        """Group settled legs by received token."""

        grouped = _group(self.settled_orders(), lambda o: o.output_token)
        return [
            BatchedOutputOrders(
                output_token=wrap(self.session.chain, token),
                amounts=tuple(o.input_qty for o in orders),
                orders=tuple(o.order for o in orders),
                to_reserve=to_reserve,
            )
            for token, orders in grouped.items()
        ]

    def native_value(self) -> int:
        """Native token amount that must accompany the transaction."""

        return sum(o.input_qty for o in self.settled_orders() if o.input_token == NATIVE_TOKEN)


class TokenAdder(OrderBatch):
    """Spend one wallet token to buy portfolio tokens (creation or top-up)."""

    def __init__(self, session: "Session", spent_token: str) -> None:
        super().__init__(session, "entry")
        self.spent_token = normalise_token(spent_token)

    def add_token(self, token: str, slippage: float) -> OrderLeg:
        return self._add_leg(self.spent_token, token, slippage, Side.INPUT)


class SingleToMultiSwapper(OrderBatch):
    """Swap one portfolio token to several others, inside the portfolio."""

    def __init__(self, session: "Session", sold_token: str) -> None:
        super().__init__(session, "entry")
        self.sold_token = normalise_token(sold_token)

    def swap_to(self, token: str, slippage: float) -> OrderLeg:
        return self._add_leg(self.sold_token, token, slippage, Side.INPUT)

    def input_orders(self, *, from_reserve: bool = True) -> List[BatchedInputOrders]:
        return super().input_orders(from_reserve=from_reserve)


class MultiToSingleSwapper(OrderBatch):
    """Swap several portfolio tokens to a single one, inside the portfolio."""

    def __init__(self, session: "Session", bought_token: str) -> None:
        super().__init__(session, "entry")
        self.bought_token = normalise_token(bought_token)

    def swap_from(self, token: str, slippage: float) -> OrderLeg:
        return self._add_leg(token, self.bought_token, slippage, Side.INPUT)

    def input_orders(self, *, from_reserve: bool = True) -> List[BatchedInputOrders]:
        return super().input_orders(from_reserve=from_reserve)


class TokenSeller(OrderBatch):
    """Sell portfolio tokens to the wallet, receiving one token."""

    def __init__(self, session: "Session", received_token: str) -> None:
        super().__init__(session, "exit")
        self.received_token = normalise_token(received_token)

    def sell_token(self, token: str, slippage: float) -> OrderLeg:
        return self._add_leg(token, self.received_token, slippage, Side.INPUT)


__all__ = [
    "BatchedInputOrders",
    "BatchedOutputOrders",
    "MultiToSingleSwapper",
    "OrderBatch",
    "SettledOrder",
    "SingleToMultiSwapper",
    "TokenAdder",
    "TokenSeller",
    "ensure_settled",
]
