"""Data models for the L-DCA simulation.

Defines the validated simulation parameters, the running state mutated once
per period, the per-period simulated order record, and the terminal result.

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from decimal import Decimal

from ldca.exceptions import InvalidParameterError
from ldca.models import OrderSide, SymbolPair


@dataclass(frozen=True)
class SimulationParameters:
    """Validated inputs of one L-DCA run.

    Attributes:
        symbol_pair: Traded pair; only used for the fee symbol and log context.
        period: Time between two consecutive orders.
        notional_quote_size: Quote amount traded per period before leverage.
        side: Buy or Sell for every order.
        fee_rate: Trading fee as a fraction (0.001 = 0.1%), 0 <= fee_rate < 1.
        leverage: Notional multiplier, > 0.

    Raises:
        InvalidParameterError: On construction, if any constraint is violated.
    """

    symbol_pair: SymbolPair
    period: timedelta
    notional_quote_size: Decimal
    side: OrderSide
    fee_rate: Decimal
    leverage: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        if self.period <= timedelta(0):
            raise InvalidParameterError(f"period must be positive, got {self.period}")
        if self.notional_quote_size <= 0:
            raise InvalidParameterError(
                f"notional_quote_size must be positive, got {self.notional_quote_size}"
            )
        if self.leverage <= 0:
            raise InvalidParameterError(f"leverage must be positive, got {self.leverage}")
        if not (Decimal("0") <= self.fee_rate < Decimal("1")):
            raise InvalidParameterError(f"fee_rate must be in [0, 1), got {self.fee_rate}")
        if not isinstance(self.side, OrderSide):
            raise InvalidParameterError(f"side must be an OrderSide, got {self.side!r}")

    @property
    def period_ms(self) -> int:
        """Period length in whole milliseconds."""
        return self.period // timedelta(milliseconds=1)

    @property
    def fee_symbol(self) -> str:
        """Buys pay fees in the base symbol, sells in the quote symbol."""
        if self.side is OrderSide.BUY:
            return self.symbol_pair.base
        return self.symbol_pair.quote

    def with_overrides(self, **kwargs: object) -> SimulationParameters:
        """Return a new, re-validated SimulationParameters with fields overridden."""
        return replace(self, **kwargs)

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output; Decimals as strings."""
        return {
            "symbol_pair": str(self.symbol_pair),
            "period_seconds": self.period.total_seconds(),
            "notional_quote_size": str(self.notional_quote_size),
            "side": self.side.value,
            "fee_rate": str(self.fee_rate),
            "leverage": str(self.leverage),
        }


@dataclass
class RunningState:
    """Accumulators owned by a single simulation loop.

    gross_base_acquired and gross_quote_moved are unsigned magnitudes; the
    side-dependent sign is applied only when the result is built.
    """

    gross_base_acquired: Decimal = Decimal("0")
    gross_quote_moved: Decimal = Decimal("0")
    fees_paid: Decimal = Decimal("0")
    trade_count: int = 0


@dataclass(frozen=True)
class SimulatedOrder:
    """One period's simulated fill.

    Attributes:
        timestamp_ms: Timestamp of the reference candle.
        price: Reference price, (open + close) / 2 of that candle.
        base_quantity: Order quantity rounded to the base precision.
        quote_amount: base_quantity * price, unrounded.
        fee: Fee charged, in the run's fee symbol.
        below_minimum: True when the order is under the exchange minimums
            (still recorded, a live exchange would reject it).
    """

    timestamp_ms: int
    price: Decimal
    base_quantity: Decimal
    quote_amount: Decimal
    fee: Decimal
    below_minimum: bool = False

    def to_dict(self) -> dict:
        return {
            "timestamp_ms": self.timestamp_ms,
            "price": str(self.price),
            "base_quantity": str(self.base_quantity),
            "quote_amount": str(self.quote_amount),
            "fee": str(self.fee),
            "below_minimum": self.below_minimum,
        }


@dataclass(frozen=True)
class LdcaResult:
    """Terminal result of an L-DCA run. Immutable once constructed.

    Attributes:
        final_price: Close of the last candle of the whole series.
        final_base_balance: Signed base balance after all orders and fees.
        final_quote_balance: Signed quote balance after all orders and fees.
        fees_paid: Sum of all fees, in fee_symbol.
        fee_symbol: Base symbol for Buy, quote symbol for Sell.
        average_order_price: Quote moved / base traded across all orders.
        total_value: Mark-to-market value at final_price. In the quote symbol
            for Buy, in the base symbol for Sell.
        total_invested_amount: Quote spent for Buy, base sold for Sell.
        profit_percent: total_value relative to total_invested_amount, x100.
        trade_count: Number of executed periods.
        orders: Every simulated order, chronological.
        below_minimum_count: Orders that a live exchange would have rejected.
    """

    final_price: Decimal
    final_base_balance: Decimal
    final_quote_balance: Decimal
    fees_paid: Decimal
    fee_symbol: str
    average_order_price: Decimal
    total_value: Decimal
    total_invested_amount: Decimal
    profit_percent: Decimal
    trade_count: int
    orders: tuple[SimulatedOrder, ...] = field(default_factory=tuple)
    below_minimum_count: int = 0

    def to_dict(self, include_orders: bool = True) -> dict:
        """Serialize to dict for JSON output.

        Args:
            include_orders: Whether to include the per-order list.

        Returns:
            Dict with all fields; Decimal values as strings.
        """
        data = {
            "final_price": str(self.final_price),
            "final_base_balance": str(self.final_base_balance),
            "final_quote_balance": str(self.final_quote_balance),
            "fees_paid": str(self.fees_paid),
            "fee_symbol": self.fee_symbol,
            "average_order_price": str(self.average_order_price),
            "total_value": str(self.total_value),
            "total_invested_amount": str(self.total_invested_amount),
            "profit_percent": str(self.profit_percent),
            "trade_count": self.trade_count,
            "below_minimum_count": self.below_minimum_count,
        }
        if include_orders:
            data["orders"] = [o.to_dict() for o in self.orders]
        return data
