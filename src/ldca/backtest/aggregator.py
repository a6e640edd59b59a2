"""Final valuation of an L-DCA run.

Buy side (value in the quote symbol):
    base balance  = gross base - fees
    quote balance = -gross quote
    total value   = base balance * final price - gross quote
    profit %      = total value / gross quote * 100

Sell side (value in the base symbol):
    base balance  = -gross base
    quote balance = gross quote - fees
    total value   = base balance + quote balance / final price
    profit %      = total value / gross base * 100

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from collections.abc import Sequence
from decimal import Decimal

from ldca.backtest.models import LdcaResult, RunningState, SimulatedOrder
from ldca.exceptions import EmptyInputError, InvalidPriceError, NothingTradedError
from ldca.models import OrderSide

_HUNDRED = Decimal("100")


class ResultAggregator:
    """Builds the LdcaResult from the accumulated RunningState.

    Args:
        side: Side of every order in the run.
        fee_symbol: Symbol the fees were charged in.
    """

    def __init__(self, side: OrderSide, fee_symbol: str) -> None:
        self._side = side
        self._fee_symbol = fee_symbol

    def finalize(
        self,
        state: RunningState,
        last_close_price: Decimal,
        orders: Sequence[SimulatedOrder] = (),
    ) -> LdcaResult:
        """Value the accumulated position at the last close.

        Args:
            state: State after the last period.
            last_close_price: Close of the very last candle of the series.
            orders: Per-period order records to attach to the result.

        Returns:
            The immutable LdcaResult.

        Raises:
            EmptyInputError: If no period was executed.
            NothingTradedError: If every order rounded to a zero quantity.
            InvalidPriceError: For Sell, if last_close_price <= 0.
        """
        if state.trade_count == 0:
            raise EmptyInputError("No periods were executed, nothing to finalize")
        if state.gross_base_acquired == 0:
            raise NothingTradedError(
                f"All {state.trade_count} orders rounded to a zero base quantity"
            )

        gross_base = state.gross_base_acquired
        gross_quote = state.gross_quote_moved
        fees = state.fees_paid
        average_price = gross_quote / gross_base

        if self._side is OrderSide.BUY:
            base_balance = gross_base - fees
            quote_balance = -gross_quote
            invested = gross_quote
            total_value = base_balance * last_close_price - gross_quote
        else:
            if last_close_price <= 0:
                raise InvalidPriceError(
                    f"Final price must be positive to value a sell run, got {last_close_price}"
                )
            base_balance = -gross_base
            quote_balance = gross_quote - fees
            invested = gross_base
            total_value = base_balance + quote_balance / last_close_price

        profit_percent = total_value / invested * _HUNDRED

        return LdcaResult(
            final_price=last_close_price,
            final_base_balance=base_balance,
            final_quote_balance=quote_balance,
            fees_paid=fees,
            fee_symbol=self._fee_symbol,
            average_order_price=average_price,
            total_value=total_value,
            total_invested_amount=invested,
            profit_percent=profit_percent,
            trade_count=state.trade_count,
            orders=tuple(orders),
            below_minimum_count=sum(1 for o in orders if o.below_minimum),
        )
