"""Custom exceptions for the L-DCA calculator.

All calculation, configuration and data-collaborator exceptions live here
to avoid circular imports between modules.
"""


class LdcaError(Exception):
    """Base exception for all L-DCA calculator errors."""


class InvalidParameterError(LdcaError):
    """Raised when simulation parameters or inputs violate their constraints."""


class InvalidPriceError(LdcaError):
    """Raised when a reference or final price is zero or negative."""


class EmptyInputError(LdcaError):
    """Raised when the candle series is empty and there is nothing to finalize."""


class NothingTradedError(EmptyInputError):
    """Raised when every simulated order rounded down to a zero base quantity."""


class ConfigurationError(LdcaError):
    """Raised when a parameters file cannot be parsed or validated."""


class SymbolNotFoundError(LdcaError):
    """Raised when a symbol pair is not listed by the exchange."""
