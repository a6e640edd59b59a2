"""Exchange client implementation via ccxt async.

Wraps any ccxt.async_support exchange (selected by id) with rate limiting,
market loading, precision-rule extraction, and async cleanup. Only public
market-data endpoints are used; API keys are optional.
"""

from decimal import Decimal

import ccxt.async_support as ccxt_async
from ccxt.base.decimal_to_precision import TICK_SIZE

from ldca.config import ExchangeSettings
from ldca.exceptions import SymbolNotFoundError
from ldca.exchange.client import ExchangeClient
from ldca.exchange.types import (
    DEFAULT_PRECISION,
    SymbolRoundingRules,
    precision_from_step,
)
from ldca.logging import get_logger

logger = get_logger(__name__)


def to_decimal_places(value: object, precision_mode: int) -> int:
    """Convert a ccxt market precision entry to a number of decimal places.

    ccxt publishes precision either as a step size (TICK_SIZE mode, e.g.
    0.00001 -> 5) or directly as decimal places (e.g. 5). Missing values
    fall back to DEFAULT_PRECISION.
    """
    if value is None:
        return DEFAULT_PRECISION
    number = Decimal(str(value))
    if precision_mode == TICK_SIZE:
        return precision_from_step(number)
    return int(number)


class CcxtClient(ExchangeClient):
    """Concrete market-data client backed by a ccxt async exchange."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        exchange_class = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_class is None:
            raise ValueError(f"Unknown ccxt exchange id '{settings.exchange_id}'")

        config: dict = {"enableRateLimit": True}
        api_key = settings.api_key.get_secret_value()
        if api_key:
            config["apiKey"] = api_key
            config["secret"] = settings.api_secret.get_secret_value()

        self._exchange = exchange_class(config)
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_exchange", exchange_id=self._settings.exchange_id)
        await self.load_markets()
        logger.info(
            "exchange_connected",
            exchange_id=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("exchange_connection_closed", exchange_id=self._settings.exchange_id)

    async def load_markets(self) -> dict:
        """Load and cache market data."""
        self._markets = await self._exchange.load_markets()
        return self._markets

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int = 1000,
    ) -> list[list]:
        """Fetch OHLCV candles via ccxt, oldest first."""
        rows = await self._exchange.fetch_ohlcv(symbol, timeframe, since=since, limit=limit)
        return sorted(rows, key=lambda row: row[0])

    async def get_rounding_rules(self, symbol: str) -> SymbolRoundingRules:
        """Extract precision rules from cached market data.

        All numeric values are converted to Decimal for precision.

        Raises:
            SymbolNotFoundError: If the exchange does not list the symbol.
        """
        if not self._markets:
            await self.load_markets()

        market = self._markets.get(symbol)
        if not market:
            raise SymbolNotFoundError(
                f"Symbol {symbol} not found on {self._settings.exchange_id}"
            )

        mode = getattr(self._exchange, "precisionMode", TICK_SIZE)
        precision = market.get("precision") or {}
        limits = market.get("limits") or {}
        amount_limits = limits.get("amount") or {}
        cost_limits = limits.get("cost") or {}

        return SymbolRoundingRules(
            base_volume_precision=to_decimal_places(precision.get("amount"), mode),
            quote_volume_precision=to_decimal_places(
                precision.get("cost", precision.get("quote")), mode
            ),
            price_precision=to_decimal_places(precision.get("price"), mode),
            min_base_size=Decimal(str(amount_limits.get("min") or 0)),
            min_quote_size=Decimal(str(cost_limits.get("min") or 0)),
        )
