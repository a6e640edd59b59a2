"""Candle record consumed by the simulation.

CRITICAL: All prices and volumes use Decimal. Never use float for prices or quantities.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Candle:
    """A single OHLCV candle for one fixed-width time bucket.

    Stored in SQLite as TEXT to preserve Decimal precision. quote_volume is
    None when the data source only reports base volume (ccxt OHLCV rows).
    """

    timestamp_ms: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    base_volume: Decimal
    quote_volume: Decimal | None = None

    @property
    def mid_price(self) -> Decimal:
        """Midpoint of open and close, the simulated fill price for this candle."""
        return (self.open + self.close) / 2

    @staticmethod
    def from_ohlcv_row(row: list) -> "Candle":
        """Build a Candle from a ccxt row [timestamp_ms, open, high, low, close, volume]."""
        return Candle(
            timestamp_ms=int(row[0]),
            open=Decimal(str(row[1])),
            high=Decimal(str(row[2])),
            low=Decimal(str(row[3])),
            close=Decimal(str(row[4])),
            base_volume=Decimal(str(row[5])) if row[5] is not None else Decimal("0"),
        )
