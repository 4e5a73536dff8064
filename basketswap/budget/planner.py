"""Deposit and withdrawal planning on top of the budget allocator."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, List, Sequence

from ..errors import InvalidOperation
from ..orders.batch import TokenAdder, TokenSeller
from ..types import BuyAmount, Holding, Price, QuoteRequest, SpendAmount
from ..util.chains import wrap
from .allocator import compute_budgets, filter_dust

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..session import Session

LOGGER = logging.getLogger(__name__)

Amount = int | float | Decimal | str


async def _deposit_price(session: "Session", holding: Holding, add_token: str, budget: int, slippage: float) -> Price:
    if wrap(session.chain, add_token) == wrap(session.chain, holding.token):
        return Price(budget=budget, token=budget)
    quote = await session.selector.best_quote(
        QuoteRequest(
            chain=session.chain,
            spend_token=wrap(session.chain, add_token),
            buy_token=wrap(session.chain, holding.token),
            slippage=slippage,
            amount=SpendAmount(budget),
            user_address=session.user_address,
        )
    )
    return Price(budget=quote.sell_amount, token=quote.buy_amount)


async def _withdrawal_price(
    session: "Session", holding: Holding, withdraw_token: str, amount: int, slippage: float
) -> Price:
    if wrap(session.chain, withdraw_token) == wrap(session.chain, holding.token):
        return Price(budget=amount, token=amount)
    quote = await session.selector.best_quote(
        QuoteRequest(
            chain=session.chain,
            spend_token=wrap(session.chain, holding.token),
            buy_token=wrap(session.chain, withdraw_token),
            slippage=slippage,
            amount=BuyAmount(amount),
            user_address=session.user_address,
        )
    )
    return Price(budget=quote.buy_amount, token=quote.sell_amount)


async def _positive_amount(session: "Session", token: str, amount: Amount) -> int:
    raw = await session.to_token_amount(token, amount)
    if raw <= 0:
        raise InvalidOperation("budget must be positive")
    return raw


async def compute_deposit(
    session: "Session",
    adder: TokenAdder,
    holdings: Sequence[Holding],
    add_token: str,
    budget: Amount,
    slippage: float,
) -> TokenAdder:
    """Spread ``budget`` of ``add_token`` over ``holdings`` keeping their proportions."""

    raw_budget = await _positive_amount(session, add_token, budget)
    current = filter_dust(holdings, session.config.dust_threshold)
    # price every holding as if the whole budget went into it
    prices: List[Price] = list(
        await asyncio.gather(*(_deposit_price(session, h, add_token, raw_budget, slippage) for h in current))
    )
    budgets = compute_budgets(current, prices, raw_budget)
    LOGGER.info(
        "planner.deposit",
        extra={
            "event": "planner_deposit",
            "component": __name__,
            "details": {
                "token": add_token,
                "budget": str(raw_budget),
                "allocations": {h.token: str(b) for h, b in zip(current, budgets)},
            },
        },
    )
    await asyncio.gather(
        *(
            adder.add_token(holding.token, slippage).set_input_amount(allocated)
            for holding, allocated in zip(current, budgets)
            if allocated > 0
        )
    )
    return adder


async def compute_withdrawal(
    session: "Session",
    seller: TokenSeller,
    holdings: Sequence[Holding],
    withdraw_token: str,
    amount: Amount,
    slippage: float,
) -> TokenSeller:
    """Withdraw ``amount`` of ``withdraw_token`` selling holdings proportionally."""

    raw_amount = await _positive_amount(session, withdraw_token, amount)
    current = filter_dust(holdings, session.config.dust_threshold)
    prices: List[Price] = list(
        await asyncio.gather(
            *(_withdrawal_price(session, h, withdraw_token, raw_amount, slippage) for h in current)
        )
    )
    budgets = compute_budgets(current, prices, -raw_amount)
    LOGGER.info(
        "planner.withdrawal",
        extra={
            "event": "planner_withdrawal",
            "component": __name__,
            "details": {
                "token": withdraw_token,
                "amount": str(raw_amount),
                "allocations": {h.token: str(b) for h, b in zip(current, budgets)},
            },
        },
    )
    await asyncio.gather(
        *(
            seller.sell_token(holding.token, slippage).set_output_amount(-allocated)
            for holding, allocated in zip(current, budgets)
            if allocated < 0
        )
    )
    return seller


__all__ = ["compute_deposit", "compute_withdrawal"]
