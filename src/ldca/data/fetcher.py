"""Chunked, paginated historical candle download with retry and caching.

Downloads the requested range in chunks of ``chunk_days`` (progress is
logged once per chunk). Each chunk is paginated forward with ``since``,
``page_limit`` candles per request, and each request is retried with
exponential backoff. Downloaded candles are cached in SQLite; a range
already covered by the cache is served without touching the exchange.

Only closed candles are cached, and the recorded coverage ends after the
last candle actually received, so ranges reaching into the future or into
the current candle are fetched again on the next run.
"""

import asyncio
import time
from collections.abc import Callable

import ccxt.async_support

from ldca.config import HistoricalDataSettings
from ldca.data.models import Candle
from ldca.data.store import CandleStore
from ldca.exchange.client import ExchangeClient
from ldca.logging import get_logger

logger = get_logger(__name__)

_DAY_MS = 86_400 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class CandleFetcher:
    """Fetches candles from the exchange and persists them via the store.

    Usage:
        fetcher = CandleFetcher(exchange, store, settings, exchange_id="binance")
        candles = await fetcher.get_candles("BTC/USDT", start_ms, end_ms)
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        store: CandleStore,
        settings: HistoricalDataSettings,
        exchange_id: str,
    ) -> None:
        self._exchange = exchange
        self._store = store
        self._settings = settings
        self._exchange_id = exchange_id
        self._timeframe_ms = ccxt.async_support.Exchange.parse_timeframe(settings.timeframe) * 1000

    async def get_candles(self, symbol: str, start_ms: int, end_ms: int) -> list[Candle]:
        """Return candles with start_ms <= timestamp < end_ms, oldest first.

        Args:
            symbol: Unified symbol, e.g. "BTC/USDT".
            start_ms: Inclusive start of the range.
            end_ms: Exclusive end of the range.
        """
        timeframe = self._settings.timeframe
        coverage = await self._store.get_coverage(self._exchange_id, symbol, timeframe)

        if coverage is not None and coverage[0] <= start_ms and end_ms <= coverage[1]:
            logger.info(
                "candles_served_from_cache",
                exchange_id=self._exchange_id,
                symbol=symbol,
                timeframe=timeframe,
                start_ms=start_ms,
                end_ms=end_ms,
            )
        else:
            last_ts = await self._download_range(symbol, start_ms, end_ms)
            if last_ts is None:
                logger.warning(
                    "no_candles_downloaded",
                    exchange_id=self._exchange_id,
                    symbol=symbol,
                    start_ms=start_ms,
                    end_ms=end_ms,
                )
            else:
                covered_end = min(end_ms, last_ts + self._timeframe_ms)
                await self._store.update_coverage(
                    self._exchange_id, symbol, timeframe, start_ms, covered_end
                )

        return await self._store.get_candles(
            self._exchange_id, symbol, timeframe, start_ms, end_ms
        )

    async def _download_range(self, symbol: str, start_ms: int, end_ms: int) -> int | None:
        """Download [start_ms, end_ms) chunk by chunk.

        Returns the timestamp of the newest candle received, or None.
        """
        started = time.monotonic()
        chunk_ms = self._settings.chunk_days * _DAY_MS
        total_inserted = 0
        last_ts: int | None = None

        chunk_start = start_ms
        while chunk_start < end_ms:
            chunk_end = min(chunk_start + chunk_ms, end_ms)
            logger.info(
                "downloading_candles",
                exchange_id=self._exchange_id,
                symbol=symbol,
                timeframe=self._settings.timeframe,
                chunk_start_ms=chunk_start,
                chunk_end_ms=chunk_end,
            )
            inserted, chunk_last_ts = await self._fetch_paginated(symbol, chunk_start, chunk_end)
            total_inserted += inserted
            if chunk_last_ts is not None:
                last_ts = chunk_last_ts
            chunk_start = chunk_end

        logger.info(
            "candle_download_complete",
            exchange_id=self._exchange_id,
            symbol=symbol,
            inserted=total_inserted,
            last_timestamp_ms=last_ts,
            duration_seconds=round(time.monotonic() - started, 1),
        )
        return last_ts

    async def _fetch_paginated(
        self, symbol: str, since_ms: int, until_ms: int
    ) -> tuple[int, int | None]:
        """Walk FORWARD from since_ms to until_ms.

        Returns the inserted row count and the newest candle timestamp.
        """
        total_inserted = 0
        last_ts: int | None = None
        cursor = since_ms

        while cursor < until_ms:
            rows = await self._fetch_with_retry(
                self._exchange.fetch_ohlcv,
                symbol,
                timeframe=self._settings.timeframe,
                since=cursor,
                limit=self._settings.page_limit,
            )
            # The candle still forming is never cached.
            closed_before = _now_ms() - self._timeframe_ms
            candles = [
                Candle.from_ohlcv_row(row)
                for row in rows
                if cursor <= row[0] < until_ms and row[0] <= closed_before
            ]
            if not candles:
                break

            total_inserted += await self._store.insert_candles(
                self._exchange_id, symbol, self._settings.timeframe, candles
            )
            last_ts = candles[-1].timestamp_ms

            next_cursor = last_ts + self._timeframe_ms
            if next_cursor <= cursor:
                break  # No progress guard
            cursor = next_cursor

            await asyncio.sleep(self._settings.fetch_batch_delay)

        return total_inserted, last_ts

    async def _fetch_with_retry(self, fetch_fn: Callable, *args, **kwargs) -> list:
        """Execute a fetch function with exponential backoff retry.

        Delays are retry_base_delay * 2**attempt; rate-limit errors wait three
        times longer. Re-raises on final failure.
        """
        max_retries = self._settings.max_retries
        base_delay = self._settings.retry_base_delay

        for attempt in range(max_retries):
            try:
                return await fetch_fn(*args, **kwargs)
            except ccxt.async_support.NetworkError as e:
                if attempt == max_retries - 1:
                    logger.error("fetch_failed_permanently", error=str(e), attempts=max_retries)
                    raise

                delay = base_delay * (2**attempt)
                if isinstance(e, ccxt.async_support.RateLimitExceeded):
                    delay *= 3

                logger.warning(
                    "fetch_retry",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

        return []
