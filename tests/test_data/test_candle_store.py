"""Tests for CandleDatabase and CandleStore against a temporary SQLite file."""

from decimal import Decimal

import pytest
import pytest_asyncio

from ldca.data.database import SCHEMA_VERSION, CandleDatabase
from ldca.data.models import Candle
from ldca.data.store import CandleStore

EXCHANGE = "binance"
SYMBOL = "BTC/USDT"
START_MS = 1_743_465_600_000
MINUTE_MS = 60_000


@pytest_asyncio.fixture
async def database(tmp_path):
    async with CandleDatabase(str(tmp_path / "cache" / "candles.db")) as db:
        yield db


@pytest.fixture
def store(database: CandleDatabase) -> CandleStore:
    return CandleStore(database)


class TestCandleDatabase:
    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path) -> None:
        path = tmp_path / "nested" / "dir" / "candles.db"
        async with CandleDatabase(str(path)):
            pass
        assert path.exists()

    def test_db_before_connect_raises(self, tmp_path) -> None:
        with pytest.raises(RuntimeError, match="not connected"):
            _ = CandleDatabase(str(tmp_path / "x.db")).db

    @pytest.mark.asyncio
    async def test_reconnect_keeps_single_schema_version(self, tmp_path) -> None:
        path = str(tmp_path / "candles.db")
        async with CandleDatabase(path):
            pass
        async with CandleDatabase(path) as db:
            cursor = await db.db.execute("SELECT COUNT(*) FROM schema_version")
            row = await cursor.fetchone()
        assert row[0] == 1


class TestCandleStore:
    @pytest.mark.asyncio
    async def test_insert_ignores_duplicates(self, store: CandleStore, candle_factory) -> None:
        candles = [candle_factory(i) for i in range(3)]
        assert await store.insert_candles(EXCHANGE, SYMBOL, "1m", candles) == 3
        assert await store.insert_candles(EXCHANGE, SYMBOL, "1m", candles) == 0

    @pytest.mark.asyncio
    async def test_insert_empty(self, store: CandleStore) -> None:
        assert await store.insert_candles(EXCHANGE, SYMBOL, "1m", []) == 0

    @pytest.mark.asyncio
    async def test_get_candles_range_is_half_open(
        self, store: CandleStore, candle_factory
    ) -> None:
        await store.insert_candles(EXCHANGE, SYMBOL, "1m", [candle_factory(i) for i in range(5)])

        result = await store.get_candles(
            EXCHANGE, SYMBOL, "1m", START_MS + MINUTE_MS, START_MS + 4 * MINUTE_MS
        )

        assert [c.timestamp_ms for c in result] == [
            START_MS + MINUTE_MS,
            START_MS + 2 * MINUTE_MS,
            START_MS + 3 * MINUTE_MS,
        ]

    @pytest.mark.asyncio
    async def test_values_restored_as_decimal(self, store: CandleStore, candle_factory) -> None:
        candle = candle_factory(0, open_="100.12345678", close="100.87654321")
        await store.insert_candles(EXCHANGE, SYMBOL, "1m", [candle])

        [restored] = await store.get_candles(
            EXCHANGE, SYMBOL, "1m", START_MS, START_MS + MINUTE_MS
        )

        assert restored == candle
        assert isinstance(restored.open, Decimal)

    @pytest.mark.asyncio
    async def test_missing_quote_volume_round_trips_as_none(self, store: CandleStore) -> None:
        candle = Candle.from_ohlcv_row([START_MS, 1.5, 2, 1, 1.75, 12.5])
        await store.insert_candles(EXCHANGE, SYMBOL, "1m", [candle])

        [restored] = await store.get_candles(EXCHANGE, SYMBOL, "1m", START_MS, START_MS + 1)

        assert restored.quote_volume is None
        assert restored.base_volume == Decimal("12.5")

    @pytest.mark.asyncio
    async def test_keys_are_separate(self, store: CandleStore, candle_factory) -> None:
        await store.insert_candles(EXCHANGE, SYMBOL, "1m", [candle_factory(0)])
        end = START_MS + 1
        assert await store.get_candles(EXCHANGE, "ETH/USDT", "1m", START_MS, end) == []
        assert await store.get_candles(EXCHANGE, SYMBOL, "1h", START_MS, end) == []
        assert await store.get_candles("kucoin", SYMBOL, "1m", START_MS, end) == []

    @pytest.mark.asyncio
    async def test_same_timestamp_on_two_exchanges(
        self, store: CandleStore, candle_factory
    ) -> None:
        await store.insert_candles(EXCHANGE, SYMBOL, "1m", [candle_factory(0, close="100")])
        inserted = await store.insert_candles(
            "kucoin", SYMBOL, "1m", [candle_factory(0, close="999")]
        )

        [binance] = await store.get_candles(EXCHANGE, SYMBOL, "1m", START_MS, START_MS + 1)
        [kucoin] = await store.get_candles("kucoin", SYMBOL, "1m", START_MS, START_MS + 1)

        assert inserted == 1
        assert binance.close == Decimal("100")
        assert kucoin.close == Decimal("999")


class TestCoverage:
    @pytest.mark.asyncio
    async def test_no_coverage(self, store: CandleStore) -> None:
        assert await store.get_coverage(EXCHANGE, SYMBOL, "1m") is None

    @pytest.mark.asyncio
    async def test_overlapping_ranges_merge(self, store: CandleStore) -> None:
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 100, 200)
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 150, 300)
        assert await store.get_coverage(EXCHANGE, SYMBOL, "1m") == (100, 300)

    @pytest.mark.asyncio
    async def test_touching_ranges_merge(self, store: CandleStore) -> None:
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 100, 200)
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 0, 100)
        assert await store.get_coverage(EXCHANGE, SYMBOL, "1m") == (0, 200)

    @pytest.mark.asyncio
    async def test_disjoint_range_replaces(self, store: CandleStore) -> None:
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 100, 200)
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 500, 600)
        assert await store.get_coverage(EXCHANGE, SYMBOL, "1m") == (500, 600)

    @pytest.mark.asyncio
    async def test_coverage_is_per_exchange(self, store: CandleStore) -> None:
        await store.update_coverage(EXCHANGE, SYMBOL, "1m", 100, 200)
        assert await store.get_coverage("kucoin", SYMBOL, "1m") is None


class TestSchemaUpgrade:
    @pytest.mark.asyncio
    async def test_outdated_cache_is_rebuilt(self, tmp_path) -> None:
        path = str(tmp_path / "candles.db")
        async with CandleDatabase(path) as db:
            await db.db.execute("DELETE FROM schema_version")
            await db.db.execute("INSERT INTO schema_version (version) VALUES (1)")
            await db.db.execute("DROP TABLE coverage")
            await db.db.execute(
                "CREATE TABLE coverage (symbol TEXT, timeframe TEXT, start_ms INTEGER, "
                "end_ms INTEGER, updated_at INTEGER, PRIMARY KEY (symbol, timeframe))"
            )
            await db.db.commit()

        async with CandleDatabase(path) as db:
            store = CandleStore(db)
            await store.update_coverage(EXCHANGE, SYMBOL, "1m", 100, 200)
            assert await store.get_coverage(EXCHANGE, SYMBOL, "1m") == (100, 200)
            cursor = await db.db.execute("SELECT version FROM schema_version")
            assert await cursor.fetchall() == [(SCHEMA_VERSION,)]
