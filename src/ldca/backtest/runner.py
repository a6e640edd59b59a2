"""High-level entry points for running an L-DCA calculation.

run_calculation() wires settings to the exchange client, candle cache and
fetcher, downloads the candles and precision rules, and runs the engine.
format_result_summary() renders the result the way the CLI prints it.
"""

import time
from decimal import ROUND_HALF_UP, Decimal

from ldca.backtest.engine import calculate_ldca
from ldca.backtest.models import LdcaResult, SimulationParameters
from ldca.config import AppSettings
from ldca.data.database import CandleDatabase
from ldca.data.fetcher import CandleFetcher
from ldca.data.store import CandleStore
from ldca.exchange.ccxt_client import CcxtClient
from ldca.exchange.client import ExchangeClient
from ldca.logging import get_logger
from ldca.models import OrderSide

logger = get_logger(__name__)


async def run_calculation(
    settings: AppSettings,
    exchange: ExchangeClient | None = None,
) -> LdcaResult:
    """Fetch historical data and run one L-DCA calculation.

    Args:
        settings: Application settings; settings.calculator holds the run inputs.
        exchange: Exchange client to use. Defaults to a CcxtClient built from
            settings.exchange; a client created here is also closed here.

    Returns:
        The LdcaResult of the run.

    Raises:
        LdcaError: Any calculation or configuration failure.
    """
    calc = settings.calculator
    parameters = calc.to_simulation_parameters()
    symbol = str(parameters.symbol_pair)

    owns_exchange = exchange is None
    if exchange is None:
        exchange = CcxtClient(settings.exchange)

    start_time = time.monotonic()
    logger.info(
        "run_calculation_starting",
        exchange_id=settings.exchange.exchange_id,
        symbol=symbol,
        start_ms=calc.start_ms,
        end_ms=calc.end_ms,
        db_path=settings.historical.db_path,
    )

    try:
        await exchange.connect()
        rules = await exchange.get_rounding_rules(symbol)

        async with CandleDatabase(settings.historical.db_path) as database:
            fetcher = CandleFetcher(
                exchange,
                CandleStore(database),
                settings.historical,
                exchange_id=settings.exchange.exchange_id,
            )
            candles = await fetcher.get_candles(symbol, calc.start_ms, calc.end_ms)
    finally:
        if owns_exchange:
            await exchange.close()

    result = calculate_ldca(candles, rules, parameters)

    logger.info(
        "run_calculation_complete",
        symbol=symbol,
        candle_count=len(candles),
        trade_count=result.trade_count,
        profit_percent=str(result.profit_percent),
        elapsed_seconds=round(time.monotonic() - start_time, 2),
    )
    return result


def format_result_summary(result: LdcaResult, parameters: SimulationParameters) -> str:
    """Render a human-readable summary of a finished calculation.

    Buy runs are valued in the quote symbol, sell runs in the base symbol.
    """
    pair = parameters.symbol_pair
    value_symbol = pair.quote if parameters.side is OrderSide.BUY else pair.base

    lines = [
        f"Final price: {result.final_price} {pair.quote}",
        f"Orders executed: {result.trade_count}",
        f"Final balance: {result.final_base_balance} {pair.base}, "
        f"{result.final_quote_balance} {pair.quote}.",
        f"Total fees paid: {result.fees_paid} {result.fee_symbol}.",
        f"Average order price: {result.average_order_price} {pair.quote}.",
        f"Total invested: {result.total_invested_amount} {value_symbol}.",
        f"Total value: {result.total_value} {value_symbol}",
        f"Profit: {result.profit_percent.quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)}%",
    ]
    if result.below_minimum_count:
        lines.append(
            f"Warning: {result.below_minimum_count} orders were below the exchange "
            "minimum order size and would be rejected in live trading."
        )
    return "\n".join(lines)
