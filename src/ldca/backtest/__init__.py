"""L-DCA calculation package.

Provides the period sampler, result aggregator and engine that replay a
leveraged dollar-cost-averaging strategy over historical candles, plus a
parameter sweep and the high-level runner used by the CLI.
"""

from ldca.backtest.aggregator import ResultAggregator
from ldca.backtest.engine import LdcaEngine, calculate_ldca
from ldca.backtest.models import (
    LdcaResult,
    RunningState,
    SimulatedOrder,
    SimulationParameters,
)
from ldca.backtest.runner import format_result_summary, run_calculation
from ldca.backtest.sampler import PeriodSampler
from ldca.backtest.sweep import ParameterSweep, SweepResult, format_sweep_summary

__all__ = [
    "LdcaEngine",
    "LdcaResult",
    "ParameterSweep",
    "PeriodSampler",
    "ResultAggregator",
    "RunningState",
    "SimulatedOrder",
    "SimulationParameters",
    "SweepResult",
    "calculate_ldca",
    "format_result_summary",
    "format_sweep_summary",
    "run_calculation",
]
