"""Exchange layer -- market data and precision rules via ccxt."""

from ldca.exchange.types import SymbolRoundingRules, precision_from_step, round_to_precision
from ldca.exchange.client import ExchangeClient
from ldca.exchange.ccxt_client import CcxtClient

__all__ = [
    "CcxtClient",
    "ExchangeClient",
    "SymbolRoundingRules",
    "precision_from_step",
    "round_to_precision",
]
