"""L-DCA calculation engine: a single synchronous pass over a candle series.

Phases:
1. Sampling   -- PeriodSampler picks one reference candle per period.
2. Accounting -- for each reference candle, OrderSizer sizes the order at the
                 candle's (open + close) / 2 and FillAccountant records it.
3. Finalize   -- ResultAggregator values the position at the last close.

The engine holds no state between calls; each call owns its RunningState, so
independent runs (e.g. a parameter sweep) can execute side by side. All
arithmetic runs in a fixed decimal context, whatever the caller's context is.

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from collections.abc import Sequence
from decimal import (
    ROUND_HALF_EVEN,
    Context,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)

from ldca.backtest.aggregator import ResultAggregator
from ldca.backtest.models import (
    LdcaResult,
    RunningState,
    SimulatedOrder,
    SimulationParameters,
)
from ldca.backtest.sampler import PeriodSampler
from ldca.data.models import Candle
from ldca.exceptions import EmptyInputError
from ldca.exchange.types import SymbolRoundingRules
from ldca.logging import get_logger
from ldca.pnl.accounting import FillAccountant
from ldca.position.sizing import OrderSizer

logger = get_logger(__name__)

DECIMAL_CONTEXT = Context(
    prec=28,
    rounding=ROUND_HALF_EVEN,
    Emin=-999_999,
    Emax=999_999,
    traps=[InvalidOperation, DivisionByZero, Overflow],
    flags=[],
)


class LdcaEngine:
    """Replays an L-DCA strategy over historical candles.

    Args:
        rules: Rounding rules of the traded pair.
        parameters: Validated simulation parameters.
    """

    def __init__(
        self,
        rules: SymbolRoundingRules,
        parameters: SimulationParameters,
    ) -> None:
        self._parameters = parameters
        self._sampler = PeriodSampler(parameters.period_ms)
        self._sizer = OrderSizer(rules)
        self._accountant = FillAccountant(parameters.side, parameters.fee_rate)
        self._aggregator = ResultAggregator(parameters.side, parameters.fee_symbol)

    def run(self, candles: Sequence[Candle]) -> LdcaResult:
        """Execute the simulation and return its result.

        Args:
            candles: Candles in ascending timestamp order.

        Returns:
            LdcaResult valued at the close of the last candle.

        Raises:
            EmptyInputError: If candles is empty.
            InvalidPriceError: If a reference candle's midpoint is <= 0.
            InvalidParameterError: If candles are out of order.
        """
        if not candles:
            raise EmptyInputError("Candle series is empty")

        with localcontext(DECIMAL_CONTEXT):
            return self._run(candles)

    def _run(self, candles: Sequence[Candle]) -> LdcaResult:
        params = self._parameters
        state = RunningState()
        orders: list[SimulatedOrder] = []

        logger.info(
            "ldca_calculation_starting",
            symbol_pair=str(params.symbol_pair),
            side=params.side.value,
            candle_count=len(candles),
            period_ms=params.period_ms,
            notional_quote_size=str(params.notional_quote_size),
            leverage=str(params.leverage),
            fee_rate=str(params.fee_rate),
        )

        for candle in self._sampler.sample(candles):
            price = candle.mid_price
            quantity = self._sizer.size(
                params.notional_quote_size, params.leverage, price
            )
            fee = self._accountant.apply_fill(state, quantity, price)
            below_minimum = self._sizer.is_below_minimum(quantity, price)

            order = SimulatedOrder(
                timestamp_ms=candle.timestamp_ms,
                price=price,
                base_quantity=quantity,
                quote_amount=quantity * price,
                fee=fee,
                below_minimum=below_minimum,
            )
            orders.append(order)

            if below_minimum:
                logger.warning(
                    "ldca_order_below_exchange_minimum",
                    timestamp_ms=candle.timestamp_ms,
                    base_quantity=str(quantity),
                    quote_amount=str(order.quote_amount),
                    min_base_size=str(self._sizer.rules.min_base_size),
                    min_quote_size=str(self._sizer.rules.min_quote_size),
                )

            logger.debug(
                "ldca_order_simulated",
                timestamp_ms=candle.timestamp_ms,
                side=params.side.value,
                price=str(price),
                base_quantity=str(quantity),
                quote_amount=str(order.quote_amount),
                fee=str(fee),
                fee_symbol=params.fee_symbol,
            )

        result = self._aggregator.finalize(state, candles[-1].close, orders)

        logger.info(
            "ldca_calculation_complete",
            symbol_pair=str(params.symbol_pair),
            trade_count=result.trade_count,
            below_minimum_count=result.below_minimum_count,
            final_price=str(result.final_price),
            profit_percent=str(result.profit_percent),
        )

        return result


def calculate_ldca(
    candles: Sequence[Candle],
    rules: SymbolRoundingRules,
    parameters: SimulationParameters,
) -> LdcaResult:
    """Run a single L-DCA simulation. See LdcaEngine.run for errors."""
    return LdcaEngine(rules, parameters).run(candles)
