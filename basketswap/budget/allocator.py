"""Proportional split of a deposit or withdrawal across portfolio holdings.

With ``Before`` the current holdings, ``Prices`` the token prices in budget
units and ``budget`` the signed amount to add, keeping every holding's share
of the portfolio value constant gives::

    cur_value = Before . Prices
    ToBuy     = (budget / cur_value) * Before
    Budgets   = ToBuy * Prices
              = budget * Before * PricingBudget / (cur_value * PricingTokens)

Amounts are raw integers, so the division is performed last to limit
truncation. A withdrawal is the same computation with a negative budget.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..types import Holding, Price

LOGGER = logging.getLogger(__name__)


def _div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""

    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


def portfolio_value(holdings: Sequence[Holding], prices: Sequence[Price]) -> int:
    """Value of ``holdings`` in budget units, dividing term by term."""

    total = 0
    for holding, price in zip(holdings, prices):
        if price.token == 0:
            continue
        total += _div(holding.amount * price.budget, price.token)
    return total


def compute_budgets(holdings: Sequence[Holding], prices: Sequence[Price], budget: int) -> List[int]:
    """Return the signed budget to allocate to each holding.

    The result is index-aligned with ``holdings``. Degenerate inputs (no
    holdings, a zero-valued portfolio, a zero price) yield zeros rather than
    raising.
    """

    zeros = [0] * len(holdings)
    if not holdings or len(prices) != len(holdings):
        return zeros
    if any(price.token == 0 for price in prices):
        LOGGER.warning(
            "budget.allocator.zero_price",
            extra={
                "event": "budget_allocator_zero_price",
                "component": "budget_allocator",
                "details": {"tokens": [h.token for h, p in zip(holdings, prices) if p.token == 0]},
            },
        )
        return zeros
    cur_value = portfolio_value(holdings, prices)
    if cur_value == 0:
        return zeros
    return [
        _div(budget * holding.amount * price.budget, price.token * cur_value)
        for holding, price in zip(holdings, prices)
    ]


def filter_dust(holdings: Sequence[Holding], threshold: int = 0) -> List[Holding]:
    """Drop empty holdings and those below ``threshold`` raw units."""

    return [holding for holding in holdings if holding.amount > 0 and holding.amount >= threshold]


__all__ = ["compute_budgets", "filter_dust", "portfolio_value"]
