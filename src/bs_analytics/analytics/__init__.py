"""
Analytics module for Black-Scholes-Merton pricing and implied volatility.

Provides the closed-form premium and Greeks, time-to-expiry conversion,
the implied volatility solver and numpy-vectorized variants.
"""

from bs_analytics.analytics.batch import bs_greeks_array, bs_price_array, implied_vol_array
from bs_analytics.analytics.black_scholes import (
    bs_delta,
    bs_gamma,
    bs_greeks,
    bs_price,
    bs_rho,
    bs_theta,
    bs_vega,
    compute_d1_d2,
    d1,
    d2,
    norm_cdf,
    norm_pdf,
)
from bs_analytics.analytics.expiry import expiry_to_years, time_to_expiry
from bs_analytics.analytics.implied_vol import (
    ImpliedVolResult,
    SolverConfig,
    implied_vol,
    implied_vol_result,
)

__all__ = [
    "ImpliedVolResult",
    "SolverConfig",
    "bs_delta",
    "bs_gamma",
    "bs_greeks",
    "bs_greeks_array",
    "bs_price",
    "bs_price_array",
    "bs_rho",
    "bs_theta",
    "bs_vega",
    "compute_d1_d2",
    "d1",
    "d2",
    "expiry_to_years",
    "implied_vol",
    "implied_vol_array",
    "implied_vol_result",
    "norm_cdf",
    "norm_pdf",
    "time_to_expiry",
]
