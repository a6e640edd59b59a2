"""Order sizing for the L-DCA simulation.

All calculations use Decimal arithmetic exclusively -- no float conversions.

Sizing flow:
1. effective notional = notional_quote_size * leverage
2. raw quantity = effective notional / reference price
3. round to the pair's base precision, half away from zero
4. the quote amount of the order is quantity * price, left unrounded

Orders under the exchange minimums are NOT rejected here; the historical
calculation records them anyway. is_below_minimum() lets the caller flag them.
"""

from decimal import Decimal

from ldca.exceptions import InvalidPriceError
from ldca.exchange.types import SymbolRoundingRules, round_to_precision


class OrderSizer:
    """Converts a quote notional into an exchange-rounded base quantity.

    Side-agnostic: a buy and a sell at the same price get the same quantity.

    Args:
        rules: Rounding rules of the traded pair.
    """

    def __init__(self, rules: SymbolRoundingRules) -> None:
        self._rules = rules

    @property
    def rules(self) -> SymbolRoundingRules:
        return self._rules

    def size(
        self,
        notional_quote_size: Decimal,
        leverage: Decimal,
        reference_price: Decimal,
    ) -> Decimal:
        """Calculate the rounded base quantity for one order.

        Args:
            notional_quote_size: Quote amount per period before leverage.
            leverage: Notional multiplier.
            reference_price: Fill price in the quote symbol.

        Returns:
            Base quantity rounded to base_volume_precision decimal places.

        Raises:
            InvalidPriceError: If reference_price <= 0.
        """
        if reference_price <= 0:
            raise InvalidPriceError(f"Reference price must be positive, got {reference_price}")

        effective_notional = notional_quote_size * leverage
        raw_qty = effective_notional / reference_price
        return round_to_precision(raw_qty, self._rules.base_volume_precision)

    def is_below_minimum(self, base_quantity: Decimal, price: Decimal) -> bool:
        """Whether a live exchange would reject this order for its size."""
        if base_quantity < self._rules.min_base_size:
            return True
        return base_quantity * price < self._rules.min_quote_size
