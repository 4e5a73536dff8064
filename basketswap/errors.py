"""Exception hierarchy shared by the quoting engine."""

from __future__ import annotations

from typing import Sequence, Tuple


class BasketSwapError(Exception):
    """Base class for every error raised by the library."""


class InvalidOperation(BasketSwapError, ValueError):
    """Raised when inputs contradict each other (swap to self, empty batch...)."""


class QuoteError(BasketSwapError):
    """Base class for quoting failures."""


class InsufficientLiquidityError(QuoteError):
    """No enabled price source could route the requested swap."""

    def __init__(self, source_id: str | None = None, reason: str = "insufficient_liquidity") -> None:
        self.source_id = source_id
        self.reason = reason
        label = f"{source_id}: {reason}" if source_id else reason
        super().__init__(label)


class AggregatorFailure(QuoteError):
    """Every price source failed, at least one for a non-liquidity reason."""

    def __init__(self, reasons: Sequence[Tuple[str, BaseException]]) -> None:
        self.reasons: list[Tuple[str, BaseException]] = list(reasons)
        details = "; ".join(f"{source}: {exc}" for source, exc in self.reasons) or "no source attempted"
        super().__init__(f"all price sources failed ({details})")


__all__ = [
    "AggregatorFailure",
    "BasketSwapError",
    "InsufficientLiquidityError",
    "InvalidOperation",
    "QuoteError",
]
