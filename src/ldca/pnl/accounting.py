"""Per-fill bookkeeping for the L-DCA simulation.

All calculations use Decimal arithmetic exclusively -- no float conversions anywhere.

Fee currency convention:
  - Buy receives base currency, so the fee is taken from the base received:
    fee = fee_rate * base_quantity (in the base symbol)
  - Sell receives quote currency, so the fee is taken from the proceeds:
    fee = fee_rate * base_quantity * price (in the quote symbol)

Both sides accumulate unsigned gross base and quote magnitudes.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from ldca.models import OrderSide

if TYPE_CHECKING:
    from ldca.backtest.models import RunningState


class FillAccountant:
    """Applies simulated fills to a RunningState.

    Args:
        side: Side of every order in the run.
        fee_rate: Trading fee as a fraction of the received amount.
    """

    def __init__(self, side: OrderSide, fee_rate: Decimal) -> None:
        self._side = side
        self._fee_rate = fee_rate

    def calculate_fee(self, base_quantity: Decimal, price: Decimal) -> Decimal:
        """Fee for one fill, in the base symbol for Buy and quote symbol for Sell."""
        if self._side is OrderSide.BUY:
            return self._fee_rate * base_quantity
        return self._fee_rate * (base_quantity * price)

    def apply_fill(
        self,
        state: RunningState,
        base_quantity: Decimal,
        price: Decimal,
    ) -> Decimal:
        """Record one fill in place.

        Args:
            state: Running state of the current simulation; mutated.
            base_quantity: Rounded order quantity.
            price: Fill price.

        Returns:
            The fee charged for this fill.
        """
        fee = self.calculate_fee(base_quantity, price)

        state.gross_base_acquired += base_quantity
        state.gross_quote_moved += base_quantity * price
        state.fees_paid += fee
        state.trade_count += 1

        return fee
