"""Value types and collaborator protocols for the quoting engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Protocol, Sequence, Tuple, Union

from .util.chains import Chain

Direction = Literal["entry", "exit"]
ArgType = Literal["address", "bytes4", "bytes", "uint256"]
TypedArg = Tuple[ArgType, Any]


class Side(str, Enum):
    """Side of a leg: the token spent or the token received."""

    INPUT = "input"
    OUTPUT = "output"


@dataclass(slots=True, frozen=True)
class SpendAmount:
    """Quote request fixing the quantity spent."""

    qty: int


@dataclass(slots=True, frozen=True)
class BuyAmount:
    """Quote request fixing the quantity bought."""

    qty: int


QuoteAmount = Union[SpendAmount, BuyAmount]


@dataclass(slots=True, frozen=True)
class QuoteRequest:
    """Immutable request handed to every price source."""

    chain: Chain
    spend_token: str
    buy_token: str
    slippage: float
    amount: QuoteAmount
    user_address: str | None = None

    @property
    def fixed_side(self) -> Side:
        return Side.INPUT if isinstance(self.amount, SpendAmount) else Side.OUTPUT


@dataclass(slots=True, frozen=True)
class AggregatorQuote:
    """Quote normalised across price sources."""

    source_id: str
    price: float
    guaranteed_price: float
    buy_amount: int
    sell_amount: int
    estimated_price_impact: float
    call_data: str
    allowance_target: str


@dataclass(slots=True, frozen=True)
class Holding:
    token: str
    amount: int


@dataclass(slots=True, frozen=True)
class Price:
    """``budget`` reference-token units buy ``token`` units of a holding."""

    budget: int
    token: int


@dataclass(slots=True, frozen=True)
class OrderFragment:
    """Order struct consumed by the batch encoder."""

    operator: str
    token: str
    call_args: Tuple[TypedArg, ...]
    commit: bool = True


class TokenDecimals(Protocol):
    async def __call__(self, chain: Chain, token: str) -> int: ...


class ProtocolFeeRate(Protocol):
    async def __call__(self, direction: Direction) -> int: ...


class ContractCallEncoder(Protocol):
    def __call__(self, operator: str, output_token: str, args: Sequence[TypedArg]) -> OrderFragment: ...


class PriceSource(Protocol):
    """Adapter around one external price routing service."""

    source_id: str

    async def quote(self, request: QuoteRequest) -> AggregatorQuote | None: ...


__all__ = [
    "AggregatorQuote",
    "ArgType",
    "BuyAmount",
    "ContractCallEncoder",
    "Direction",
    "Holding",
    "OrderFragment",
    "Price",
    "PriceSource",
    "ProtocolFeeRate",
    "QuoteAmount",
    "QuoteRequest",
    "Side",
    "SpendAmount",
    "TokenDecimals",
    "TypedArg",
]
