"""Tests for run_calculation wiring and the result summary.

The exchange is mocked; candles are served from the scenario fixture and
cached in a temporary SQLite file.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from ldca.backtest.engine import calculate_ldca
from ldca.backtest.models import LdcaResult
from ldca.backtest.runner import format_result_summary, run_calculation
from ldca.config import AppSettings, CalculatorSettings, HistoricalDataSettings
from ldca.data.database import CandleDatabase
from ldca.data.store import CandleStore
from ldca.exceptions import SymbolNotFoundError
from ldca.exchange.client import ExchangeClient
from ldca.exchange.types import SymbolRoundingRules
from ldca.models import OrderSide

START = datetime(2025, 4, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        calculator=CalculatorSettings(
            symbol_pair="BTC/USDT",
            start_time_utc=START,
            end_time_utc=START + timedelta(minutes=18),
            period=timedelta(minutes=5),
            quote_size=Decimal("100.0"),
            order_side=OrderSide.BUY,
            trade_fee_percent=Decimal("0.1"),
            leverage=Decimal("1"),
        ),
        historical=HistoricalDataSettings(
            db_path=str(tmp_path / "candles.db"),
            fetch_batch_delay=0.0,
        ),
    )


@pytest.fixture
def mock_exchange(scenario_candles, btc_rules) -> AsyncMock:
    rows = [
        [
            c.timestamp_ms,
            float(c.open),
            float(c.high),
            float(c.low),
            float(c.close),
            float(c.base_volume),
        ]
        for c in scenario_candles
    ]

    async def fetch_ohlcv(symbol, timeframe="1m", since=None, limit=1000):
        return [row for row in rows if row[0] >= since][:limit]

    exchange = AsyncMock(spec=ExchangeClient)
    exchange.get_rounding_rules.return_value = btc_rules
    exchange.fetch_ohlcv.side_effect = fetch_ohlcv
    return exchange


class TestRunCalculation:
    @pytest.mark.asyncio
    async def test_end_to_end_buy(self, settings, mock_exchange) -> None:
        result = await run_calculation(settings, exchange=mock_exchange)

        assert result.final_price == Decimal("100.28")
        assert result.trade_count == 4
        assert result.fee_symbol == "BTC"
        assert [o.base_quantity for o in result.orders] == [
            Decimal("0.99771"),
            Decimal("0.99448"),
            Decimal("0.999"),
            Decimal("0.98314"),
        ]
        mock_exchange.connect.assert_awaited_once()
        mock_exchange.get_rounding_rules.assert_awaited_once_with("BTC/USDT")

    @pytest.mark.asyncio
    async def test_given_exchange_is_not_closed(self, settings, mock_exchange) -> None:
        await run_calculation(settings, exchange=mock_exchange)
        mock_exchange.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_run_uses_cache(self, settings, mock_exchange) -> None:
        first = await run_calculation(settings, exchange=mock_exchange)
        calls = mock_exchange.fetch_ohlcv.await_count
        second = await run_calculation(settings, exchange=mock_exchange)

        assert mock_exchange.fetch_ohlcv.await_count == calls
        assert first == second

    @pytest.mark.asyncio
    async def test_cache_keyed_by_configured_exchange(self, settings, mock_exchange) -> None:
        await run_calculation(settings, exchange=mock_exchange)

        async with CandleDatabase(settings.historical.db_path) as database:
            store = CandleStore(database)
            assert await store.get_coverage("binance", "BTC/USDT", "1m") is not None
            assert await store.get_coverage("kucoin", "BTC/USDT", "1m") is None

    @pytest.mark.asyncio
    async def test_owned_client_is_created_and_closed(self, settings, mock_exchange) -> None:
        with patch("ldca.backtest.runner.CcxtClient", return_value=mock_exchange) as factory:
            await run_calculation(settings)

        factory.assert_called_once_with(settings.exchange)
        mock_exchange.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_owned_client_closed_on_error(self, settings, mock_exchange) -> None:
        mock_exchange.get_rounding_rules.side_effect = SymbolNotFoundError("not listed")

        with patch("ldca.backtest.runner.CcxtClient", return_value=mock_exchange):
            with pytest.raises(SymbolNotFoundError):
                await run_calculation(settings)

        mock_exchange.close.assert_awaited_once()


class TestFormatResultSummary:
    def test_buy_summary(self, scenario_candles, btc_rules, buy_parameters) -> None:
        result = calculate_ldca(scenario_candles, btc_rules, buy_parameters)
        summary = format_result_summary(result, buy_parameters)

        assert "Final price: 100.28 USDT" in summary
        assert "Orders executed: 4" in summary
        assert "Total fees paid: 0.00397433 BTC." in summary
        assert "Total invested: 400.00039480 USDT." in summary
        assert "Profit: -0.463%" in summary
        assert "Warning" not in summary

    def test_sell_summary_valued_in_base(
        self, scenario_candles, btc_rules, sell_parameters
    ) -> None:
        result = calculate_ldca(scenario_candles, btc_rules, sell_parameters)
        summary = format_result_summary(result, sell_parameters)

        assert "Total invested: 3.97433 BTC." in summary
        assert "USDT." in summary

    def test_below_minimum_warning(self, scenario_candles, buy_parameters) -> None:
        rules = SymbolRoundingRules(5, 8, 2, min_quote_size=Decimal("500"))
        result = calculate_ldca(scenario_candles, rules, buy_parameters)

        assert "Warning: 4 orders were below" in format_result_summary(result, buy_parameters)

    @pytest.mark.parametrize(
        ("profit", "printed"),
        [("1.0005", "1.001"), ("-1.0005", "-1.001"), ("2.0004999", "2.000")],
    )
    def test_profit_rounds_half_away_from_zero(self, buy_parameters, profit, printed) -> None:
        result = LdcaResult(
            final_price=Decimal("100"),
            final_base_balance=Decimal("1"),
            final_quote_balance=Decimal("-100"),
            fees_paid=Decimal("0.001"),
            fee_symbol="BTC",
            average_order_price=Decimal("100"),
            total_value=Decimal("0"),
            total_invested_amount=Decimal("100"),
            profit_percent=Decimal(profit),
            trade_count=1,
        )

        assert f"Profit: {printed}%" in format_result_summary(result, buy_parameters)
