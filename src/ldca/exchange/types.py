"""Exchange precision rules and rounding helpers.

All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_PRECISION = 8


@dataclass(frozen=True)
class SymbolRoundingRules:
    """Precision limits and minimum order sizes for one trading pair.

    Precisions are numbers of decimal places as published by the exchange
    (typically 0-8). Supplied once per simulation run and passed by value.
    """

    base_volume_precision: int
    quote_volume_precision: int
    price_precision: int
    min_base_size: Decimal = Decimal("0")
    min_quote_size: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in ("base_volume_precision", "quote_volume_precision", "price_precision"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


def round_to_precision(value: Decimal, decimals: int) -> Decimal:
    """Round to a number of decimal places, half away from zero.

    This is commercial rounding (ROUND_HALF_UP in the decimal module), not
    banker's rounding: 0.000005 -> 0.00001 at 5 places.

    Args:
        value: The raw amount.
        decimals: Number of decimal places to keep.

    Returns:
        The rounded value with exactly ``decimals`` places.
    """
    return value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def precision_from_step(step: Decimal) -> int:
    """Convert a step size such as 0.001 (or 1, 10) to decimal places.

    Steps of 1 or more map to 0 places.

    Raises:
        ValueError: If the step is zero or negative.
    """
    if step <= 0:
        raise ValueError(f"Step must be positive, got {step}")
    exponent = step.normalize().as_tuple().exponent
    return max(0, -int(exponent))
