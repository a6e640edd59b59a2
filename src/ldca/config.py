"""Configuration system using pydantic-settings with environment variable loading.

Settings can also be loaded from a JSON parameters file (load_parameters_file),
whose keys are matched case-insensitively and without underscores, so both
``trade_fee_percent`` and ``TradeFeePercent`` are accepted.
"""

from __future__ import annotations

import json
import os
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ldca.exceptions import ConfigurationError
from ldca.logging import get_logger
from ldca.models import OrderSide, SymbolPair

if TYPE_CHECKING:
    from ldca.backtest.models import SimulationParameters

logger = get_logger(__name__)

# "d.hh:mm:ss" as written in .NET TimeSpan strings, e.g. "1.00:00:00".
_DOTTED_TIMESPAN_RE = re.compile(r"^(?:(\d+)\.)?(\d{1,2}):(\d{2}):(\d{2})$")


class ExchangeSettings(BaseSettings):
    """Exchange used as the source of candles and precision rules."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: str = "binance"  # any ccxt exchange id
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")


class CalculatorSettings(BaseSettings):
    """Inputs of one L-DCA calculation.

    trade_fee_percent is a percentage (0.1 means 0.1%), converted to a
    fraction by to_simulation_parameters().
    """

    model_config = SettingsConfigDict(env_prefix="LDCA_")

    symbol_pair: str = "BTC/USDT"
    start_time_utc: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end_time_utc: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc)
    period: timedelta = timedelta(days=1)
    quote_size: Decimal = Decimal("10")
    order_side: OrderSide = OrderSide.BUY
    trade_fee_percent: Decimal = Decimal("0.1")
    leverage: Decimal = Decimal("1")

    @field_validator("symbol_pair")
    @classmethod
    def _check_symbol_pair(cls, value: str) -> str:
        return str(SymbolPair.parse(value))

    @field_validator("start_time_utc", "end_time_utc")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("period", mode="before")
    @classmethod
    def _parse_period(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _DOTTED_TIMESPAN_RE.match(value.strip())
            if match:
                days, hours, minutes, seconds = match.groups()
                return timedelta(
                    days=int(days or 0),
                    hours=int(hours),
                    minutes=int(minutes),
                    seconds=int(seconds),
                )
        return value

    @field_validator("order_side", mode="before")
    @classmethod
    def _parse_side(cls, value: Any) -> Any:
        if isinstance(value, str):
            return OrderSide.parse(value)
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> CalculatorSettings:
        if self.end_time_utc <= self.start_time_utc:
            raise ValueError("end_time_utc must be after start_time_utc")
        if self.period <= timedelta(0):
            raise ValueError("period must be positive")
        if self.quote_size <= 0:
            raise ValueError("quote_size must be positive")
        if self.leverage <= 0:
            raise ValueError("leverage must be positive")
        if not (Decimal("0") <= self.trade_fee_percent < Decimal("100")):
            raise ValueError("trade_fee_percent must be in [0, 100)")
        return self

    @property
    def start_ms(self) -> int:
        return int(self.start_time_utc.timestamp() * 1000)

    @property
    def end_ms(self) -> int:
        return int(self.end_time_utc.timestamp() * 1000)

    def to_simulation_parameters(self) -> SimulationParameters:
        """Construct SimulationParameters from these settings.

        Returns:
            SimulationParameters with fee_rate = trade_fee_percent / 100.
        """
        from ldca.backtest.models import SimulationParameters

        return SimulationParameters(
            symbol_pair=SymbolPair.parse(self.symbol_pair),
            period=self.period,
            notional_quote_size=self.quote_size,
            side=self.order_side,
            fee_rate=self.trade_fee_percent / Decimal("100"),
            leverage=self.leverage,
        )


class HistoricalDataSettings(BaseSettings):
    """Candle download and cache configuration.

    All fields configurable via HISTORICAL_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="HISTORICAL_")

    db_path: str = "data/candles.db"
    timeframe: str = "1m"
    chunk_days: int = 14  # progress is logged once per chunk
    page_limit: int = 1000  # candles per exchange request
    max_retries: int = 5
    retry_base_delay: float = 1.0
    fetch_batch_delay: float = 0.1


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    calculator: CalculatorSettings = CalculatorSettings()
    historical: HistoricalDataSettings = HistoricalDataSettings()


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()


def _exchange_id_from_market(market: str) -> str:
    """Map an exchange market name such as "BinanceSpot" to a ccxt id ("binance")."""
    name = market.strip()
    if name.lower().endswith("spot"):
        name = name[: -len("spot")]
    return name.lower()


def load_parameters_file(file_path: str) -> AppSettings:
    """Load calculation parameters from a JSON file.

    Calculator fields are matched case-insensitively. Two extra keys are
    understood: "ExchangeMarket" (e.g. "BinanceSpot") selects the exchange
    and "AppDataPath" sets the directory of the candle cache.

    Example file::

        {
          "AppDataPath": "Data",
          "ExchangeMarket": "BinanceSpot",
          "SymbolPair": "BTC/EUR",
          "StartTimeUtc": "2024-01-01 00:00:00",
          "EndTimeUtc": "2025-01-01 00:00:00",
          "Period": "1.00:00:00",
          "QuoteSize": 10.0,
          "OrderSide": "Buy",
          "TradeFeePercent": 0.1,
          "Leverage": 2.0
        }

    Args:
        file_path: Path to the JSON file.

    Returns:
        AppSettings with the calculator (and optionally exchange and
        historical) settings taken from the file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid JSON or fails validation.
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"The specified file '{file_path}' does not exist.")

    try:
        with open(file_path, encoding="utf-8") as fh:
            raw = json.load(fh, parse_float=Decimal)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Unable to read parameters file '{file_path}': {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Parameters file '{file_path}' must contain a JSON object")

    fields = {_normalize_key(name): name for name in CalculatorSettings.model_fields}
    calculator_kwargs: dict[str, Any] = {}
    exchange_kwargs: dict[str, Any] = {}
    historical_kwargs: dict[str, Any] = {}

    for key, value in raw.items():
        normalized = _normalize_key(key)
        if normalized in fields:
            calculator_kwargs[fields[normalized]] = value
        elif normalized == "exchangemarket":
            exchange_kwargs["exchange_id"] = _exchange_id_from_market(str(value))
        elif normalized == "appdatapath":
            historical_kwargs["db_path"] = os.path.join(str(value), "candles.db")
        else:
            logger.warning("unknown_parameter_ignored", key=key, file_path=file_path)

    try:
        return AppSettings(
            exchange=ExchangeSettings(**exchange_kwargs),
            calculator=CalculatorSettings(**calculator_kwargs),
            historical=HistoricalDataSettings(**historical_kwargs),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid parameters in '{file_path}': {e}") from e
