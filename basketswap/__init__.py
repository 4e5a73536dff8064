"""Order quoting engine and proportional budget allocator for portfolio swaps."""

from .budget import compute_budgets, compute_deposit, compute_withdrawal
from .config import BasketSwapConfig, load_config
from .errors import AggregatorFailure, BasketSwapError, InsufficientLiquidityError, InvalidOperation, QuoteError
from .orders import OrderBatch, OrderLeg
from .router import AggregatorSelector
from .session import Session
from .types import AggregatorQuote, Holding, Price, QuoteRequest, Side
from .util.chains import NATIVE_TOKEN, Chain

__all__ = [
    "AggregatorFailure",
    "AggregatorQuote",
    "AggregatorSelector",
    "BasketSwapConfig",
    "BasketSwapError",
    "Chain",
    "Holding",
    "InsufficientLiquidityError",
    "InvalidOperation",
    "NATIVE_TOKEN",
    "OrderBatch",
    "OrderLeg",
    "Price",
    "QuoteError",
    "QuoteRequest",
    "Session",
    "Side",
    "compute_budgets",
    "compute_deposit",
    "compute_withdrawal",
    "load_config",
]
