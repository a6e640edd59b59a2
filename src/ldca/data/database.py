"""Async SQLite connection manager for the candle cache.

Uses aiosqlite so that cache reads and writes do not block the event loop
while candles are being downloaded. Candles and coverage are keyed by
exchange, so one cache file can serve several exchanges.
"""

import os
from typing import Self

import aiosqlite

from ldca.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 2

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS candles (
    exchange_id TEXT NOT NULL,
    symbol TEXT NOT NULL,
    timeframe TEXT NOT NULL,
    timestamp_ms INTEGER NOT NULL,
    open TEXT NOT NULL,
    high TEXT NOT NULL,
    low TEXT NOT NULL,
    close TEXT NOT NULL,
    base_volume TEXT NOT NULL,
    quote_volume TEXT,
    PRIMARY KEY (exchange_id, symbol, timeframe, timestamp_ms)
);

CREATE TABLE IF NOT EXISTS coverage (
    exchange_id TEXT NOT NULL,
    symbol TEXT NOT NULL,
    timeframe TEXT NOT NULL,
    start_ms INTEGER NOT NULL,
    end_ms INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    PRIMARY KEY (exchange_id, symbol, timeframe)
);
"""

# Older caches are dropped and downloaded again.
_DROP_TABLES_SQL = """
DROP TABLE IF EXISTS candles;
DROP TABLE IF EXISTS coverage;
DELETE FROM schema_version;
"""


class CandleDatabase:
    """Async SQLite connection manager for cached candles.

    Usage:
        async with CandleDatabase("data/candles.db") as database:
            store = CandleStore(database)
    """

    def __init__(self, db_path: str = "data/candles.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, create the parent directory and the schema."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute(
            "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)"
        )

        cursor = await self._connection.execute("SELECT MAX(version) FROM schema_version")
        version = (await cursor.fetchone())[0]
        if version is not None and version < SCHEMA_VERSION:
            logger.warning(
                "candle_cache_schema_outdated",
                db_path=self._db_path,
                found=version,
                expected=SCHEMA_VERSION,
            )
            await self._connection.executescript(_DROP_TABLES_SQL)
            version = None

        await self._connection.executescript(_CREATE_TABLES_SQL)
        if version is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
        await self._connection.commit()

        logger.info("candle_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("candle_db_closed", db_path=self._db_path)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
