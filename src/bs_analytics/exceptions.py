"""
Error types raised by the analytics and solver functions.

Each error also derives from the built-in exception that callers would
naturally catch (``ValueError`` for bad data, ``RuntimeError`` for solver
failures), so ``except ValueError`` keeps working.
"""


class BSAnalyticsError(Exception):
    """Base class for all errors raised by bs_analytics."""


class InvalidInputError(BSAnalyticsError, ValueError):
    """A market parameter is outside the domain where the formulas are defined."""


class TimeOrderingError(BSAnalyticsError, ValueError):
    """Evaluation time lies after the contract expiration."""


class OutOfDomainError(BSAnalyticsError, ValueError):
    """Observed price cannot be produced by any volatility in the search domain."""


class NoConvergenceError(BSAnalyticsError, RuntimeError):
    """
    Implied volatility search stopped before converging.

    Attributes
    ----------
    iterations : int
        Number of iterations performed
    bracket : tuple[float, float]
        Last volatility bracket known to contain the root
    """

    def __init__(self, message: str, iterations: int, bracket: tuple[float, float]):
        super().__init__(message)
        self.iterations = iterations
        self.bracket = bracket
