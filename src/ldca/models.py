"""Shared domain types: order side and symbol pair."""

from dataclasses import dataclass
from enum import Enum


class OrderSide(str, Enum):
    """Side of every order placed by an L-DCA run."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: "str | OrderSide") -> "OrderSide":
        """Parse a case-insensitive side name ("Buy", "sell", ...)."""
        if isinstance(value, OrderSide):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown order side '{value}', expected Buy or Sell") from None


@dataclass(frozen=True)
class SymbolPair:
    """Trading pair A/B: A is the base symbol, B the quote symbol."""

    base: str
    quote: str

    @classmethod
    def parse(cls, value: str) -> "SymbolPair":
        """Parse "BTC/USDT" (also "btc/usdt" or ccxt "BTC/USDT:USDT").

        Raises:
            ValueError: If the string does not contain exactly one "/".
        """
        parts = value.split(":")[0].split("/")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ValueError(f"Invalid symbol pair '{value}', expected BASE/QUOTE")
        return cls(base=parts[0].strip().upper(), quote=parts[1].strip().upper())

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"
