from __future__ import annotations

import pytest

from basketswap.errors import AggregatorFailure, InsufficientLiquidityError, InvalidOperation
from basketswap.router.selector import AggregatorSelector, SourceOutcome, choose_best_quote, failure_for
from basketswap.types import QuoteRequest, SpendAmount
from basketswap.util.chains import Chain

from tests.conftest import SUSHI, USDC
from tests.fakes.fake_sources import FakeSource


def _request(qty: int = 100) -> QuoteRequest:
    return QuoteRequest(
        chain=Chain.POLY,
        spend_token=USDC,
        buy_token=SUSHI,
        slippage=0.01,
        amount=SpendAmount(qty),
    )


@pytest.mark.asyncio
async def test_largest_buy_amount_wins() -> None:
    selector = AggregatorSelector([FakeSource("A", num=1), FakeSource("B", num=6, den=5)])

    quote = await selector.best_quote(_request(100))

    assert quote.source_id == "B"
    assert quote.buy_amount == 120


@pytest.mark.asyncio
async def test_tie_goes_to_earlier_source() -> None:
    selector = AggregatorSelector([FakeSource("A"), FakeSource("B")])

    quote = await selector.best_quote(_request())

    assert quote.source_id == "A"


@pytest.mark.asyncio
async def test_success_beats_liquidity_failure() -> None:
    selector = AggregatorSelector(
        [FakeSource("A", error=InsufficientLiquidityError("A")), FakeSource("B")]
    )

    quote = await selector.best_quote(_request())

    assert quote.source_id == "B"


@pytest.mark.asyncio
async def test_every_source_runs_even_after_a_failure() -> None:
    slow = FakeSource("B", delay=0.02)
    selector = AggregatorSelector([FakeSource("A", error=RuntimeError("down")), slow])

    quote = await selector.best_quote(_request())

    assert quote.source_id == "B"
    assert slow.completed == [100]


@pytest.mark.asyncio
async def test_all_liquidity_failures_raise_liquidity() -> None:
    selector = AggregatorSelector(
        [
            FakeSource("A", error=InsufficientLiquidityError("A")),
            FakeSource("B", error=InsufficientLiquidityError("B")),
        ]
    )

    with pytest.raises(InsufficientLiquidityError):
        await selector.best_quote(_request())


@pytest.mark.asyncio
async def test_liquidity_failure_takes_precedence_over_generic_failure() -> None:
    selector = AggregatorSelector(
        [
            FakeSource("A", error=RuntimeError("timeout")),
            FakeSource("B", error=InsufficientLiquidityError("B")),
        ]
    )

    with pytest.raises(InsufficientLiquidityError) as info:
        await selector.best_quote(_request())

    assert info.value.source_id == "B"


@pytest.mark.asyncio
async def test_generic_failures_are_aggregated() -> None:
    selector = AggregatorSelector(
        [FakeSource("A", error=RuntimeError("timeout")), FakeSource("B", error=ValueError("bad payload"))]
    )

    with pytest.raises(AggregatorFailure) as info:
        await selector.best_quote(_request())

    assert [source for source, _ in info.value.reasons] == ["A", "B"]


@pytest.mark.asyncio
async def test_source_without_route_is_excluded() -> None:
    selector = AggregatorSelector([FakeSource("A", no_route=True), FakeSource("B", num=1)])

    quote = await selector.best_quote(_request())

    assert quote.source_id == "B"


@pytest.mark.asyncio
async def test_no_source_with_route_raises_liquidity() -> None:
    selector = AggregatorSelector([FakeSource("A", no_route=True)])

    with pytest.raises(InsufficientLiquidityError) as info:
        await selector.best_quote(_request())

    assert info.value.reason == "no_route"


@pytest.mark.asyncio
async def test_excluded_sources_are_never_queried() -> None:
    zero = FakeSource("ZeroEx", num=3)
    para = FakeSource("Paraswap")
    selector = AggregatorSelector([zero, para], excluded=["zeroex"])

    quote = await selector.best_quote(_request())

    assert quote.source_id == "Paraswap"
    assert zero.calls == []
    assert selector.sources == (para,)


@pytest.mark.asyncio
async def test_no_enabled_source_is_invalid() -> None:
    selector = AggregatorSelector([FakeSource("A")], excluded=["a"])

    with pytest.raises(InvalidOperation):
        await selector.best_quote(_request())


def test_choose_best_quote_ignores_failures() -> None:
    assert choose_best_quote([SourceOutcome("A", error=RuntimeError("x")), SourceOutcome("B")]) is None


def test_failure_for_without_attempts_is_no_route() -> None:
    error = failure_for([SourceOutcome("A")])

    assert isinstance(error, InsufficientLiquidityError)
    assert error.reason == "no_route"
