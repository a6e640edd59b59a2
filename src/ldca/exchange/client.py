"""Abstract exchange client interface.

The calculator needs only public market data from an exchange: historical
OHLCV candles and the precision rules of a trading pair. Everything
exchange-specific stays in the concrete implementation.
"""

from abc import ABC, abstractmethod

from ldca.exchange.types import SymbolRoundingRules


class ExchangeClient(ABC):
    """Abstract base class for exchange market-data clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def load_markets(self) -> dict:
        """Load and cache market data from the exchange."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int = 1000,
    ) -> list[list]:
        """Fetch OHLCV candles starting at ``since`` (inclusive), oldest first.

        Returns list of [timestamp_ms, open, high, low, close, volume].
        Pagination is NOT handled here -- callers iterate with ``since``.
        """
        ...

    @abstractmethod
    async def get_rounding_rules(self, symbol: str) -> SymbolRoundingRules:
        """Get precision rules and minimum order sizes for a symbol pair."""
        ...
