"""Period segmentation of a candle series.

Windows are anchored at the first candle's timestamp and advance in whole
multiples of the period: [t0, t0 + p), [t0 + p, t0 + 2p), ... The first
candle inside each window is that window's reference candle. A trailing
window shorter than the period still yields its first candle, and windows
with no candles at all (gaps in the data) yield nothing.
"""

from collections.abc import Iterable, Iterator

from ldca.data.models import Candle
from ldca.exceptions import InvalidParameterError


class PeriodSampler:
    """Selects one reference candle per period.

    Args:
        period_ms: Window length in milliseconds, > 0.
    """

    def __init__(self, period_ms: int) -> None:
        if period_ms <= 0:
            raise InvalidParameterError(f"period must be positive, got {period_ms}ms")
        self._period_ms = period_ms

    def sample(self, candles: Iterable[Candle]) -> Iterator[Candle]:
        """Yield the reference candle of every non-empty window, in order.

        Args:
            candles: Candles in non-decreasing timestamp order.

        Yields:
            The first candle of each window.

        Raises:
            InvalidParameterError: If a candle is older than its predecessor.
        """
        window_end: int | None = None
        previous_ts: int | None = None

        for candle in candles:
            ts = candle.timestamp_ms
            if previous_ts is not None and ts < previous_ts:
                raise InvalidParameterError(
                    f"Candles must be in ascending order: {ts} follows {previous_ts}"
                )
            previous_ts = ts

            if window_end is None:
                window_end = ts + self._period_ms
                yield candle
            elif ts >= window_end:
                # Skip over any windows that received no candles.
                skipped = (ts - window_end) // self._period_ms
                window_end += (skipped + 1) * self._period_ms
                yield candle
