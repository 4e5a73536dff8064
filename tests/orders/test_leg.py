from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from basketswap.errors import InsufficientLiquidityError, InvalidOperation
from basketswap.orders.fees import add_fees, remove_fees
from basketswap.types import BuyAmount, Side, SpendAmount
from basketswap.util.chains import NATIVE_TOKEN

from tests.conftest import DAI, SUSHI, USDC, WMATIC
from tests.fakes.fake_sources import FakeSource


def _state(leg):
    return (
        leg.fixed_side,
        leg.input_qty,
        leg.output_qty,
        leg.price,
        leg.guaranteed_price,
        leg.fees,
        leg.source_id,
        leg.encoded_order,
    )


@pytest.mark.asyncio
async def test_set_input_amount_settles_with_fees_on_input(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    assert await leg.set_input_amount(10_000) is True

    swapped = remove_fees(10_000, 30)
    assert source.calls[-1].amount == SpendAmount(swapped)
    assert leg.input_qty == 10_000
    assert leg.output_qty == swapped * 2
    assert leg.fees.on is Side.INPUT
    assert leg.fees.on_token == USDC
    assert leg.fees.amount == 10_000 - swapped
    assert leg.price == 2.0
    assert leg.source_id == "Fake"
    assert leg.operator == "Fake"
    assert leg.is_settled
    assert leg.encoded_order is not None
    assert leg.encoded_order.token == SUSHI
    assert leg.encoded_order.call_args[-1] == ("bytes", f"0xfake{swapped:x}")


@pytest.mark.asyncio
async def test_set_output_amount_derives_input(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    assert await leg.set_output_amount(5_000) is True

    assert leg.fixed_side is Side.OUTPUT
    assert source.calls[-1].amount == BuyAmount(5_000)
    assert leg.output_qty == 5_000
    assert leg.input_qty == add_fees(2_500, 30)
    assert leg.fees.amount == leg.input_qty - 2_500


@pytest.mark.asyncio
async def test_exit_batch_charges_fees_on_output(session, source) -> None:
    leg = session.sell_tokens(USDC).sell_token(SUSHI, 0.01)

    assert await leg.set_input_amount(4_000) is True
    assert source.calls[-1].amount == SpendAmount(4_000)
    assert leg.output_qty == remove_fees(8_000, 30)
    assert leg.fees.on is Side.OUTPUT
    assert leg.fees.on_token == USDC
    assert leg.fees.amount == 8_000 - leg.output_qty

    assert await leg.set_output_amount(1_000) is True
    assert source.calls[-1].amount == BuyAmount(add_fees(1_000, 30))
    assert leg.input_qty == add_fees(1_000, 30) // 2
    assert leg.fees.amount == add_fees(1_000, 30) - 1_000


@pytest.mark.asyncio
async def test_decimal_amount_uses_token_decimals(session, source, decimals) -> None:
    leg = session.create_portfolio(DAI).add_token(SUSHI, 0.01)

    assert await leg.set_input_amount(Decimal("1.5")) is True

    assert leg.input_qty == 1_500_000_000_000_000_000
    assert decimals.calls == [DAI]


@pytest.mark.asyncio
async def test_zero_amount_resets_without_external_call(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)
    await leg.set_input_amount(10_000)
    calls = len(source.calls)

    assert await leg.set_output_amount(0) is True

    assert len(source.calls) == calls
    assert leg.input_qty == 0
    assert leg.output_qty == 0
    assert leg.fees.amount == 0
    assert leg.price == 0.0
    assert leg.encoded_order is None
    assert not leg.pending


@pytest.mark.asyncio
async def test_refresh_on_empty_leg_resets(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    assert await leg.refresh() is True
    assert source.calls == []
    assert leg.encoded_order is None


@pytest.mark.asyncio
async def test_same_token_leg_is_flat(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(USDC, 0.01)

    assert await leg.set_input_amount(10_031) is True

    assert source.calls == []
    assert leg.price == 1.0
    assert leg.guaranteed_price == 1.0
    assert leg.output_qty == 10_001
    assert leg.fees.amount == 30
    assert leg.operator == "Flat"
    assert leg.encoded_order.call_args == (("address", USDC), ("uint256", 10_001))


@pytest.mark.asyncio
async def test_native_and_wrapped_token_leg_is_flat(session, source) -> None:
    leg = session.create_portfolio(NATIVE_TOKEN).add_token(WMATIC, 0.01)

    assert await leg.set_input_amount(10_000) is True
    assert leg.is_flat
    assert source.calls == []
    assert leg.encoded_order.call_args[0] == ("address", WMATIC)


@pytest.mark.asyncio
async def test_late_completion_never_overwrites_newer_amount(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)
    first_qty = remove_fees(1_000, 30)
    source.delays[first_qty] = 0.2

    first = asyncio.create_task(leg.set_input_amount(1_000))
    await asyncio.sleep(0.05)
    assert source.calls and source.calls[-1].amount.qty == first_qty

    second = await leg.set_input_amount(2_000)
    assert second is True
    assert await first is False

    assert source.completed[-1] == first_qty
    assert leg.input_qty == 2_000
    assert leg.output_qty == remove_fees(2_000, 30) * 2
    assert leg.is_settled


@pytest.mark.asyncio
async def test_overlapping_amounts_converge_to_last_issued(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    results = await asyncio.gather(
        leg.set_input_amount(1_000),
        leg.set_input_amount(3_000),
        leg.set_output_amount(500),
    )

    assert results == [False, False, True]
    assert leg.fixed_side is Side.OUTPUT
    assert leg.output_qty == 500
    assert len(source.calls) == 1


@pytest.mark.asyncio
async def test_rapid_refreshes_issue_a_single_request(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)
    await leg.set_input_amount(1_000)
    calls = len(source.calls)

    results = await asyncio.gather(leg.refresh(), leg.refresh(), leg.refresh())

    assert results == [False, False, True]
    assert len(source.calls) == calls + 1


@pytest.mark.asyncio
async def test_refresh_is_idempotent(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)
    await leg.set_input_amount(1_000)

    assert await leg.refresh() is True
    first = _state(leg)
    assert await leg.refresh() is True

    assert _state(leg) == first


@pytest.mark.asyncio
async def test_change_slippage_waits_for_pending_conversion(make_session, decimals, source) -> None:
    decimals.delay = 0.05
    session = make_session(source)
    leg = session.create_portfolio(DAI).add_token(SUSHI, 0.01)

    setting = asyncio.create_task(leg.set_input_amount(Decimal("2")))
    await asyncio.sleep(0)
    changed = await leg.change_slippage(0.05)

    assert changed is True
    assert await setting is False
    assert leg.slippage == 0.05
    assert leg.input_qty == 2 * 10**18
    assert len(source.calls) == 1
    assert source.calls[-1].slippage == 0.05
    assert leg.is_settled


@pytest.mark.asyncio
async def test_change_slippage_noop_when_unchanged(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)
    await leg.set_input_amount(1_000)
    calls = len(source.calls)

    assert await leg.change_slippage(0.01) is True
    assert len(source.calls) == calls


@pytest.mark.asyncio
async def test_change_slippage_rejects_out_of_range(session) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    with pytest.raises(InvalidOperation):
        await leg.change_slippage(1.0)


@pytest.mark.asyncio
async def test_current_failure_propagates(session, source) -> None:
    source.error = InsufficientLiquidityError("Fake")
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    with pytest.raises(InsufficientLiquidityError):
        await leg.set_input_amount(1_000)

    assert not leg.pending
    assert not leg.is_settled


@pytest.mark.asyncio
async def test_superseded_failure_is_swallowed(session, source) -> None:
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)
    failing = remove_fees(1_000, 30)
    source.delays[failing] = 0.1
    source.failures[failing] = RuntimeError("boom")

    first = asyncio.create_task(leg.set_input_amount(1_000))
    await asyncio.sleep(0.03)
    assert await leg.set_input_amount(2_000) is True

    assert await first is False
    assert leg.input_qty == 2_000


@pytest.mark.asyncio
async def test_flat_fallback_on_error(make_session) -> None:
    source = FakeSource(error=InsufficientLiquidityError("Fake"))
    session = make_session(source)
    batch = session.sell_tokens(USDC)
    leg = batch._add_leg(SUSHI, USDC, 0.01, flat_on_error=True)

    assert await leg.set_input_amount(10_000) is True

    assert leg.fell_back_to_flat
    assert leg.operator == "Flat"
    assert leg.price == 1.0
    assert leg.output_qty == remove_fees(10_000, 30)
    assert leg.encoded_order.token == SUSHI
    assert leg.fees.on_token == SUSHI


@pytest.mark.asyncio
async def test_remove_detaches_and_discards_pending(session, source) -> None:
    batch = session.create_portfolio(USDC)
    leg = batch.add_token(SUSHI, 0.01)
    source.delay = 0.05

    pending = asyncio.create_task(leg.set_input_amount(1_000))
    await asyncio.sleep(0)
    leg.remove()

    assert await pending is False
    assert batch.legs == ()
    assert leg.encoded_order is None


@pytest.mark.asyncio
async def test_superseded_fee_rate_failure_resolves_false(session, fee_rates, source) -> None:
    fee_rates.delay = 0.02
    fee_rates.fail_next = 1
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    first = asyncio.create_task(leg.set_input_amount(1_000))
    await asyncio.sleep(0.005)
    with pytest.raises(ConnectionError):
        await leg.set_input_amount(2_000)

    assert await first is False
    assert fee_rates.calls == ["entry"]
    assert source.calls == []

    assert await leg.set_input_amount(2_000) is True
    assert leg.is_settled
    assert fee_rates.calls == ["entry", "entry"]


@pytest.mark.asyncio
async def test_current_fee_rate_failure_clears_pending(session, fee_rates, source) -> None:
    fee_rates.fail_next = 1
    leg = session.create_portfolio(USDC).add_token(SUSHI, 0.01)

    with pytest.raises(ConnectionError):
        await leg.set_input_amount(1_000)

    assert not leg.pending
    assert not leg.is_settled
    assert source.calls == []
