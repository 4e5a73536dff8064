"""Forced liquidation of every holding of a portfolio."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, List, Sequence

from ..types import Holding, Side
from ..util.chains import normalise_token
from .batch import OrderBatch
from .leg import OrderLeg

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..session import Session

LOGGER = logging.getLogger(__name__)


class Liquidator(OrderBatch):
    """Sell every holding to ``received_token``.

    Legs fall back to a flat transfer of the held token when no price source
    can route them, so one illiquid asset never blocks the whole liquidation.
    Legs cannot be removed individually.
    """

    removable = False

    def __init__(self, session: "Session", received_token: str, default_slippage: float) -> None:
        super().__init__(session, "exit")
        self.received_token = normalise_token(received_token)
        self.default_slippage = default_slippage

    async def refresh_assets(self, holdings: Sequence[Holding]) -> List[OrderLeg]:
        for leg in self._legs:
            leg._retire()
        self._legs = []
        holdings = [holding for holding in holdings if holding.amount > 0]
        legs = [
            self._add_leg(
                holding.token,
                self.received_token,
                self.default_slippage,
                Side.INPUT,
                flat_on_error=True,
            )
            for holding in holdings
        ]
        await asyncio.gather(*(leg.set_input_amount(h.amount) for leg, h in zip(legs, holdings)))
        fallbacks = [leg.input_token for leg in legs if leg.fell_back_to_flat]
        if fallbacks:
            LOGGER.info(
                "liquidator.flat_fallbacks",
                extra={
                    "event": "liquidator_flat_fallbacks",
                    "component": __name__,
                    "details": {"tokens": fallbacks, "received_token": self.received_token},
                },
            )
        return list(legs)


__all__ = ["Liquidator"]
