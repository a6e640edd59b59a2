"""Entry point for the L-DCA calculator.

Usage:
    ldca <parametersFilePath>

Loads the JSON parameters file, downloads the candles for the configured
range (reusing the local cache), runs the calculation and prints a summary.
Ctrl+C aborts the download; the calculation itself is not interruptible.
"""

import argparse
import asyncio
import sys
from datetime import datetime, timezone

from ldca.backtest.runner import format_result_summary, run_calculation
from ldca.config import load_parameters_file
from ldca.exceptions import LdcaError
from ldca.logging import get_logger, setup_logging


def _print_info(msg: str = "") -> None:
    """Print a timestamped line to the console."""
    if msg:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        print(f"{stamp}: {msg}")
    else:
        print()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ldca",
        description="Calculate the profit of a leveraged dollar-cost-averaging strategy "
        "on historical exchange data.",
    )
    parser.add_argument("parameters_file", help="Path to the JSON parameters file.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI. Returns the process exit code."""
    args = _build_parser().parse_args(argv)

    try:
        settings = load_parameters_file(args.parameters_file)
    except (FileNotFoundError, LdcaError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level)
    logger = get_logger("ldca.main")

    calc = settings.calculator
    parameters = calc.to_simulation_parameters()
    pair = parameters.symbol_pair

    _print_info("Press Ctrl+C to terminate the program.")
    _print_info(
        f"Starting calculation of L-DCA on {settings.exchange.exchange_id}, "
        f"{parameters.side.value}ing {calc.quote_size} {pair.quote} worth of {pair.base} "
        f"every {calc.period} with {calc.leverage}x leverage and "
        f"{calc.trade_fee_percent}% trading fee."
    )

    try:
        result = asyncio.run(run_calculation(settings))
    except KeyboardInterrupt:
        _print_info()
        _print_info("Shutdown detected.")
        return 130
    except LdcaError as e:
        logger.warning("calculation_failed", error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_info()
    print(format_result_summary(result, parameters))
    return 0


if __name__ == "__main__":
    sys.exit(main())
