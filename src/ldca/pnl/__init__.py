"""Fill accounting: balances and fees per simulated order."""

from ldca.pnl.accounting import FillAccountant

__all__ = ["FillAccountant"]
