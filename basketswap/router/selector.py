"""Competitive quote selection across price sources."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..errors import AggregatorFailure, InsufficientLiquidityError, InvalidOperation
from ..metrics.quotes import quote_latency_seconds, quote_requests_total
from ..types import AggregatorQuote, PriceSource, QuoteRequest

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceOutcome:
    """Result of one source attempt."""

    source_id: str
    quote: AggregatorQuote | None = None
    error: BaseException | None = None

    @property
    def excluded(self) -> bool:
        return self.quote is None and self.error is None


def choose_best_quote(outcomes: Iterable[SourceOutcome]) -> AggregatorQuote | None:
    """Return the quote buying the most, earlier sources winning ties."""

    best: AggregatorQuote | None = None
    for outcome in outcomes:
        quote = outcome.quote
        if quote is None:
            continue
        if best is None or quote.buy_amount > best.buy_amount:
            best = quote
    return best


def failure_for(outcomes: Sequence[SourceOutcome]) -> Exception:
    """Build the error raised when no source produced a quote.

    A liquidity failure from any source takes precedence over other reasons.
    """

    failures = [(outcome.source_id, outcome.error) for outcome in outcomes if outcome.error is not None]
    for source_id, error in failures:
        if isinstance(error, InsufficientLiquidityError):
            return InsufficientLiquidityError(source_id, error.reason)
    if not failures:
        return InsufficientLiquidityError(None, "no_route")
    return AggregatorFailure(failures)


class AggregatorSelector:
    """Query every enabled source in parallel and keep the best bid."""

    def __init__(self, sources: Sequence[PriceSource], *, excluded: Iterable[str] = ()) -> None:
        excluded_ids = {str(item).strip().lower() for item in excluded}
        self._sources = [src for src in sources if src.source_id.lower() not in excluded_ids]

    @property
    def sources(self) -> tuple[PriceSource, ...]:
        return tuple(self._sources)

    async def _attempt(self, source: PriceSource, request: QuoteRequest) -> SourceOutcome:
        started = time.perf_counter()
        try:
            quote = await source.quote(request)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            result = "insufficient_liquidity" if isinstance(exc, InsufficientLiquidityError) else "error"
            quote_requests_total.labels(source=source.source_id, result=result).inc()
            LOGGER.info(
                "selector.source_failed",
                extra={
                    "event": "selector_source_failed",
                    "component": __name__,
                    "details": {
                        "source": source.source_id,
                        "reason": str(exc),
                        "spend_token": request.spend_token,
                        "buy_token": request.buy_token,
                    },
                },
            )
            return SourceOutcome(source_id=source.source_id, error=exc)
        finally:
            quote_latency_seconds.labels(source=source.source_id).observe(time.perf_counter() - started)
        quote_requests_total.labels(
            source=source.source_id, result="ok" if quote is not None else "no_route"
        ).inc()
        return SourceOutcome(source_id=source.source_id, quote=quote)

    async def collect(self, request: QuoteRequest) -> list[SourceOutcome]:
        """Run every source and wait for all of them, failures included."""

        if not self._sources:
            raise InvalidOperation("no price source enabled")
        return list(await asyncio.gather(*(self._attempt(src, request) for src in self._sources)))

    async def best_quote(self, request: QuoteRequest) -> AggregatorQuote:
        outcomes = await self.collect(request)
        best = choose_best_quote(outcomes)
        if best is None:
            raise failure_for(outcomes)
        LOGGER.debug(
            "selector.best_quote",
            extra={
                "event": "selector_best_quote",
                "component": __name__,
                "details": {
                    "source": best.source_id,
                    "buy_amount": str(best.buy_amount),
                    "sell_amount": str(best.sell_amount),
                    "competitors": [o.source_id for o in outcomes if o.quote is not None],
                },
            },
        )
        return best


__all__ = ["AggregatorSelector", "SourceOutcome", "choose_best_quote", "failure_for"]
