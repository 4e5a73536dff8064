from .batch import (
    BatchedInputOrders,
    BatchedOutputOrders,
    MultiToSingleSwapper,
    OrderBatch,
    SettledOrder,
    SingleToMultiSwapper,
    TokenAdder,
    TokenSeller,
)
from .coalescer import QuoteCoalescer
from .complex import ComplexOperation, ComplexPlan
from .fees import add_fees, fees_for, remove_fees
from .leg import LegFees, OrderLeg
from .liquidation import Liquidator

__all__ = [
    "BatchedInputOrders",
    "BatchedOutputOrders",
    "ComplexOperation",
    "ComplexPlan",
    "LegFees",
    "Liquidator",
    "MultiToSingleSwapper",
    "OrderBatch",
    "OrderLeg",
    "QuoteCoalescer",
    "SettledOrder",
    "SingleToMultiSwapper",
    "TokenAdder",
    "TokenSeller",
    "add_fees",
    "fees_for",
    "remove_fees",
]
