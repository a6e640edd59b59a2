"""Parameter sweep: grid search over L-DCA simulation parameters.

Generates all combinations of parameter values via itertools.product and runs
the engine for each on the same, already fetched candle series. Every run
gets its own RunningState, so runs are independent of each other.

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from itertools import product

from ldca.backtest.engine import calculate_ldca
from ldca.backtest.models import LdcaResult, SimulationParameters
from ldca.data.models import Candle
from ldca.exceptions import InvalidParameterError, LdcaError
from ldca.exchange.types import SymbolRoundingRules
from ldca.logging import get_logger
from ldca.models import OrderSide

logger = get_logger(__name__)

SWEEPABLE_FIELDS = ("period", "notional_quote_size", "side", "fee_rate", "leverage")


@dataclass
class SweepEntry:
    """Outcome of one parameter combination: a result or an error message."""

    params: dict
    result: LdcaResult | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "params": {k: _format_value(v) for k, v in self.params.items()},
            "result": self.result.to_dict(include_orders=False) if self.result else None,
            "error": self.error,
        }


@dataclass
class SweepResult:
    """All sweep entries, best profit first; failed combinations last."""

    param_grid: dict[str, list]
    entries: list[SweepEntry] = field(default_factory=list)

    @property
    def best(self) -> SweepEntry | None:
        """Entry with the highest profit_percent, or None if every run failed."""
        if self.entries and self.entries[0].result is not None:
            return self.entries[0]
        return None

    def to_dict(self) -> dict:
        return {
            "param_grid": {
                k: [_format_value(v) for v in vals] for k, vals in self.param_grid.items()
            },
            "entries": [e.to_dict() for e in self.entries],
        }


def _format_value(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, OrderSide):
        return value.value
    return str(value) if not isinstance(value, (int, float, str, bool)) else value


def _convert(key: str, value: object, base: SimulationParameters) -> object:
    """Coerce grid values to the type of the base parameter field."""
    if key == "side":
        return OrderSide.parse(value)  # type: ignore[arg-type]
    if isinstance(getattr(base, key), Decimal) and not isinstance(value, Decimal):
        return Decimal(str(value))
    return value


class ParameterSweep:
    """Grid search engine over SimulationParameters.

    Args:
        candles: Candle series shared by every run.
        rules: Rounding rules of the traded pair.
    """

    def __init__(self, candles: Sequence[Candle], rules: SymbolRoundingRules) -> None:
        self._candles = candles
        self._rules = rules

    def run(
        self,
        base_parameters: SimulationParameters,
        param_grid: dict[str, list],
        progress_callback: Callable | None = None,
    ) -> SweepResult:
        """Run the engine for every combination in the grid.

        Args:
            base_parameters: Parameters overridden by each combination.
            param_grid: Maps field names (see SWEEPABLE_FIELDS) to value lists.
            progress_callback: Optional callback(index, total, entry).

        Returns:
            SweepResult sorted by profit_percent descending.

        Raises:
            InvalidParameterError: If a grid key is not a sweepable field.
        """
        for key in param_grid:
            if key not in SWEEPABLE_FIELDS:
                raise InvalidParameterError(
                    f"Invalid parameter '{key}': expected one of {', '.join(SWEEPABLE_FIELDS)}"
                )

        keys = list(param_grid.keys())
        combinations = list(product(*param_grid.values()))
        total = len(combinations)

        logger.info("sweep_starting", parameters=keys, total_combinations=total)

        entries: list[SweepEntry] = []
        for idx, combo in enumerate(combinations):
            params = dict(zip(keys, combo))
            entry = SweepEntry(params=params)
            try:
                overrides = {k: _convert(k, v, base_parameters) for k, v in params.items()}
                parameters = base_parameters.with_overrides(**overrides)
                entry.result = calculate_ldca(self._candles, self._rules, parameters)
            except (LdcaError, ValueError, ArithmeticError, TypeError) as e:
                entry.error = str(e)
                logger.warning("sweep_combination_failed", params=str(params), error=str(e))
            entries.append(entry)

            if progress_callback is not None:
                progress_callback(idx + 1, total, entry)

        entries.sort(
            key=lambda e: (e.result is None, -(e.result.profit_percent if e.result else 0))
        )

        logger.info(
            "sweep_complete",
            total_combinations=total,
            failed=sum(1 for e in entries if e.result is None),
        )
        return SweepResult(param_grid=param_grid, entries=entries)


def format_sweep_summary(sweep: SweepResult, top_n: int = 10) -> str:
    """Format the best sweep entries as a plain-text table."""
    if not sweep.entries:
        return "No sweep results."

    keys = list(sweep.param_grid.keys())
    header = " | ".join(["Rank", *keys, "Trades", "Profit %"])
    lines = [header, "-" * len(header)]

    for rank, entry in enumerate(sweep.entries[:top_n], 1):
        values = [str(_format_value(entry.params[k])) for k in keys]
        if entry.result is not None:
            trades = str(entry.result.trade_count)
            profit = str(
                entry.result.profit_percent.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
            )
        else:
            trades, profit = "-", f"error: {entry.error}"
        lines.append(" | ".join([str(rank), *values, trades, profit]))

    return "\n".join(lines)
