from __future__ import annotations

import pytest

from basketswap.config.schema import BasketSwapConfig
from basketswap.router.selector import AggregatorSelector
from basketswap.session import Session
from basketswap.util.chains import Chain

from tests.fakes.fake_sources import FakeDecimals, FakeFeeRates, FakeSource

USDC = "0x2791bca1f2de4661ed88a30c99a7a9449aa84174"
DAI = "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063"
SUSHI = "0x0b3f868e0be5597d5db7feb59e1cadbb0fdda50a"
WMATIC = "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270"


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def decimals() -> FakeDecimals:
    return FakeDecimals({DAI: 18, SUSHI: 18})


@pytest.fixture
def fee_rates() -> FakeFeeRates:
    return FakeFeeRates(30)


@pytest.fixture
def make_session(decimals: FakeDecimals, fee_rates: FakeFeeRates):
    def _make(*sources: FakeSource, window_ms: float = 5.0, **config) -> Session:
        cfg = BasketSwapConfig(coalesce_window_ms=window_ms, **config)
        return Session(
            Chain.POLY,
            decimals=decimals,
            fee_rates=fee_rates,
            selector=AggregatorSelector(list(sources), excluded=cfg.excluded_sources),
            config=cfg,
        )

    return _make


@pytest.fixture
def session(make_session, source: FakeSource) -> Session:
    return make_session(source)
