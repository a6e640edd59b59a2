"""Order sizing under exchange precision rules."""

from ldca.position.sizing import OrderSizer

__all__ = ["OrderSizer"]
