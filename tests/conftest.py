"""Shared test fixtures for the L-DCA calculator."""

from datetime import timedelta
from decimal import Decimal

import pytest

from ldca.backtest.models import SimulationParameters
from ldca.data.models import Candle
from ldca.exchange.types import SymbolRoundingRules
from ldca.models import OrderSide, SymbolPair

START_MS = 1_743_465_600_000  # 2025-04-01 00:00:00 UTC
MINUTE_MS = 60_000


def make_candle(
    minute: int,
    open_: str = "100",
    close: str = "102",
    high: str = "105",
    low: str = "95",
) -> Candle:
    """1-minute candle at START_MS + minute."""
    return Candle(
        timestamp_ms=START_MS + minute * MINUTE_MS,
        open=Decimal(open_),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
        base_volume=Decimal("1000"),
        quote_volume=Decimal("20"),
    )


@pytest.fixture
def btc_usdt() -> SymbolPair:
    return SymbolPair("BTC", "USDT")


@pytest.fixture
def btc_rules() -> SymbolRoundingRules:
    """BTC/USDT precision: 5 base decimals, 2 price decimals."""
    return SymbolRoundingRules(
        base_volume_precision=5,
        quote_volume_precision=8,
        price_precision=2,
        min_base_size=Decimal("0.00001"),
        min_quote_size=Decimal("5"),
    )


@pytest.fixture
def scenario_candles() -> list[Candle]:
    """18 one-minute candles; with a 5 minute period the reference candles
    are minutes 0, 5, 10 and 15 with midpoints 100.23, 100.555, 100.1 and
    101.715. The last candle closes at 100.28.
    """
    references = {
        0: ("100.2", "100.26"),
        5: ("100.5", "100.61"),
        10: ("100.0", "100.2"),
        15: ("101.5", "101.93"),
        17: ("100.9", "100.28"),
    }
    candles = []
    for minute in range(18):
        open_, close = references.get(minute, ("100", "102"))
        candles.append(make_candle(minute, open_, close))
    return candles


@pytest.fixture
def buy_parameters(btc_usdt: SymbolPair) -> SimulationParameters:
    return SimulationParameters(
        symbol_pair=btc_usdt,
        period=timedelta(minutes=5),
        notional_quote_size=Decimal("100.0"),
        side=OrderSide.BUY,
        fee_rate=Decimal("0.001"),
        leverage=Decimal("1.0"),
    )


@pytest.fixture
def sell_parameters(buy_parameters: SimulationParameters) -> SimulationParameters:
    return buy_parameters.with_overrides(side=OrderSide.SELL)


@pytest.fixture
def candle_factory():
    """Factory for 1-minute candles: candle_factory(minute, open_, close)."""
    return make_candle
