"""Historical candle data: models, SQLite cache and exchange fetcher."""

from ldca.data.database import CandleDatabase
from ldca.data.fetcher import CandleFetcher
from ldca.data.models import Candle
from ldca.data.store import CandleStore

__all__ = ["Candle", "CandleDatabase", "CandleFetcher", "CandleStore"]
