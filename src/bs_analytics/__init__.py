"""
Black-Scholes-Merton Analytics

Closed-form prices and Greeks for European vanilla options, and a
safeguarded Newton-Raphson implied volatility solver.
"""

from bs_analytics._version import __version__

# Types and errors
from bs_analytics.exceptions import (
    BSAnalyticsError,
    InvalidInputError,
    NoConvergenceError,
    OutOfDomainError,
    TimeOrderingError,
)
from bs_analytics.types import D1D2, ContractType, GreeksResult, MarketParameters

# Analytics
from bs_analytics.analytics.batch import bs_greeks_array, bs_price_array, implied_vol_array
from bs_analytics.analytics.black_scholes import (
    bs_delta,
    bs_gamma,
    bs_greeks,
    bs_price,
    bs_rho,
    bs_theta,
    bs_vega,
)
from bs_analytics.analytics.expiry import expiry_to_years, time_to_expiry
from bs_analytics.analytics.implied_vol import SolverConfig, implied_vol, implied_vol_result

__all__ = [
    # Version
    "__version__",
    # Types
    "ContractType",
    "MarketParameters",
    "D1D2",
    "GreeksResult",
    # Errors
    "BSAnalyticsError",
    "InvalidInputError",
    "TimeOrderingError",
    "OutOfDomainError",
    "NoConvergenceError",
    # Analytics
    "bs_price",
    "bs_delta",
    "bs_gamma",
    "bs_vega",
    "bs_theta",
    "bs_rho",
    "bs_greeks",
    "time_to_expiry",
    "expiry_to_years",
    "implied_vol",
    "implied_vol_result",
    "SolverConfig",
    # Vectorized
    "bs_price_array",
    "bs_greeks_array",
    "implied_vol_array",
]
