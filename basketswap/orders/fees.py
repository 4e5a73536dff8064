"""Protocol fee arithmetic on raw integer token amounts.

Rates are expressed per ten-thousand (``30`` means 0.3%).
"""

from __future__ import annotations

FEE_BASE = 10_000


def fees_for(amount: int, rate: int) -> int:
    """Return the fee charged on ``amount``."""

    return amount * rate // FEE_BASE


def add_fees(amount: int, rate: int) -> int:
    return amount + fees_for(amount, rate)


def remove_fees(amount_with_fees: int, rate: int) -> int:
    """Return the largest ``x`` such that ``add_fees(x, rate) <= amount_with_fees``.

    The naive division can be off by a unit in either direction because the
    fee itself is floored. Some totals have no exact preimage (``9953`` at a
    rate of ``80``); the smaller candidate is kept so the caller under-spends
    by one unit rather than overshoots.
    """

    if amount_with_fees <= 0:
        return 0
    result = amount_with_fees * FEE_BASE // (rate + FEE_BASE)
    while add_fees(result, rate) < amount_with_fees:
        if add_fees(result + 1, rate) > amount_with_fees:
            break
        result += 1
    while result > 0 and add_fees(result, rate) > amount_with_fees:
        result -= 1
    return result


__all__ = ["FEE_BASE", "add_fees", "fees_for", "remove_fees"]
