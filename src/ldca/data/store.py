"""Typed SQLite read/write abstraction for cached candles.

CRITICAL: All prices and volumes are stored as TEXT in SQLite and restored as Decimal on read.
"""

import time
from decimal import Decimal

from ldca.data.database import CandleDatabase
from ldca.data.models import Candle
from ldca.logging import get_logger

logger = get_logger(__name__)


class CandleStore:
    """Candle cache keyed by (exchange_id, symbol, timeframe, timestamp_ms).

    Coverage records which [start_ms, end_ms) range of an (exchange_id,
    symbol, timeframe) has been downloaded completely, so repeated runs
    reuse the cache.
    """

    def __init__(self, database: CandleDatabase) -> None:
        self._database = database

    async def insert_candles(
        self, exchange_id: str, symbol: str, timeframe: str, candles: list[Candle]
    ) -> int:
        """Insert candles, ignoring duplicates. Returns the number of new rows."""
        if not candles:
            return 0

        data = [
            (
                exchange_id,
                symbol,
                timeframe,
                c.timestamp_ms,
                str(c.open),
                str(c.high),
                str(c.low),
                str(c.close),
                str(c.base_volume),
                str(c.quote_volume) if c.quote_volume is not None else None,
            )
            for c in candles
        ]
        cursor = await self._database.db.executemany(
            "INSERT OR IGNORE INTO candles "
            "(exchange_id, symbol, timeframe, timestamp_ms, "
            "open, high, low, close, base_volume, quote_volume) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            data,
        )
        await self._database.db.commit()

        logger.debug(
            "inserted_candles",
            exchange_id=exchange_id,
            symbol=symbol,
            timeframe=timeframe,
            total=len(candles),
            inserted=cursor.rowcount,
        )
        return cursor.rowcount

    async def get_candles(
        self, exchange_id: str, symbol: str, timeframe: str, start_ms: int, end_ms: int
    ) -> list[Candle]:
        """Candles with start_ms <= timestamp_ms < end_ms, oldest first."""
        cursor = await self._database.db.execute(
            "SELECT timestamp_ms, open, high, low, close, base_volume, quote_volume "
            "FROM candles WHERE exchange_id = ? AND symbol = ? AND timeframe = ? "
            "AND timestamp_ms >= ? AND timestamp_ms < ? ORDER BY timestamp_ms ASC",
            (exchange_id, symbol, timeframe, start_ms, end_ms),
        )
        rows = await cursor.fetchall()
        return [
            Candle(
                timestamp_ms=row[0],
                open=Decimal(row[1]),
                high=Decimal(row[2]),
                low=Decimal(row[3]),
                close=Decimal(row[4]),
                base_volume=Decimal(row[5]),
                quote_volume=Decimal(row[6]) if row[6] is not None else None,
            )
            for row in rows
        ]

    async def get_coverage(
        self, exchange_id: str, symbol: str, timeframe: str
    ) -> tuple[int, int] | None:
        """Return the downloaded (start_ms, end_ms) range, or None."""
        cursor = await self._database.db.execute(
            "SELECT start_ms, end_ms FROM coverage "
            "WHERE exchange_id = ? AND symbol = ? AND timeframe = ?",
            (exchange_id, symbol, timeframe),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return row[0], row[1]

    async def update_coverage(
        self, exchange_id: str, symbol: str, timeframe: str, start_ms: int, end_ms: int
    ) -> None:
        """Record a completely downloaded range.

        Merged with the existing coverage when the two ranges overlap or
        touch; otherwise the new range replaces it.
        """
        existing = await self.get_coverage(exchange_id, symbol, timeframe)
        if existing is not None and start_ms <= existing[1] and existing[0] <= end_ms:
            start_ms = min(start_ms, existing[0])
            end_ms = max(end_ms, existing[1])

        await self._database.db.execute(
            "INSERT INTO coverage (exchange_id, symbol, timeframe, start_ms, end_ms, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(exchange_id, symbol, timeframe) DO UPDATE SET "
            "start_ms = excluded.start_ms, end_ms = excluded.end_ms, "
            "updated_at = excluded.updated_at",
            (exchange_id, symbol, timeframe, start_ms, end_ms, int(time.time())),
        )
        await self._database.db.commit()
