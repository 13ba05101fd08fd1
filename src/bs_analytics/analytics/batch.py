"""
Vectorized Black-Scholes pricing over arrays of contracts.

Inputs broadcast against each other with numpy rules, so a whole strike
ladder or a spot grid is priced in one call. Results match the scalar
functions in :mod:`bs_analytics.analytics.black_scholes` element-wise.
"""

import logging
from typing import assert_never

import numpy as np
import numpy.typing as npt

from bs_analytics.analytics.black_scholes import DAYS_PER_YEAR, VEGA_SCALE, norm_cdf, norm_pdf
from bs_analytics.analytics.implied_vol import implied_vol
from bs_analytics.exceptions import InvalidInputError, NoConvergenceError, OutOfDomainError
from bs_analytics.types import ContractType

logger = logging.getLogger(__name__)

_norm_cdf = np.vectorize(norm_cdf, otypes=[float])
_norm_pdf = np.vectorize(norm_pdf, otypes=[float])


def _as_arrays(**named) -> dict[str, np.ndarray]:
    """Convert inputs to float arrays of a common shape and check their domain."""
    try:
        broadcast = np.broadcast_arrays(*(np.asarray(v, dtype=float) for v in named.values()))
    except ValueError as e:
        raise InvalidInputError(f"Inputs cannot be broadcast together: {e}") from e
    arrays = dict(zip(named, broadcast))

    for name in ("S", "K", "T", "sigma", "r", "q"):
        if name in arrays and not np.all(np.isfinite(arrays[name])):
            raise InvalidInputError(f"{name} must be finite")
    for name in ("S", "K", "T", "sigma"):
        if name in arrays and np.any(arrays[name] <= 0):
            raise InvalidInputError(f"{name} must be positive")
    return arrays


def _d1_d2(S, K, T, sigma, r, q) -> tuple[np.ndarray, np.ndarray]:
    sigma_sqrt_t = sigma * np.sqrt(T)
    d1 = (np.log(S / K) + (r - q + 0.5 * sigma**2) * T) / sigma_sqrt_t
    return d1, d1 - sigma_sqrt_t


def bs_price_array(
    option_type: ContractType | str,
    S: npt.ArrayLike,
    K: npt.ArrayLike,
    T: npt.ArrayLike,
    sigma: npt.ArrayLike,
    r: npt.ArrayLike,
    q: npt.ArrayLike = 0.0,
) -> np.ndarray:
    """
    Black-Scholes-Merton premiums for broadcastable array inputs.

    Parameters
    ----------
    option_type : ContractType | str
        Contract type shared by every element
    S, K, T, sigma, r, q : array_like
        Market inputs; S, K, T and sigma must be strictly positive

    Returns
    -------
    np.ndarray
        Premiums with the broadcast shape of the inputs
    """
    kind = ContractType.parse(option_type)
    a = _as_arrays(S=S, K=K, T=T, sigma=sigma, r=r, q=q)
    S, K, T, sigma, r, q = (a[n] for n in ("S", "K", "T", "sigma", "r", "q"))

    d1, d2 = _d1_d2(S, K, T, sigma, r, q)
    forward_leg = S * np.exp(-q * T)
    strike_leg = K * np.exp(-r * T)

    if kind is ContractType.CALL:
        premium = forward_leg * _norm_cdf(d1) - strike_leg * _norm_cdf(d2)
    elif kind is ContractType.PUT:
        premium = strike_leg * _norm_cdf(-d2) - forward_leg * _norm_cdf(-d1)
    else:
        assert_never(kind)

    return np.maximum(premium, 0.0)


def bs_greeks_array(
    option_type: ContractType | str,
    S: npt.ArrayLike,
    K: npt.ArrayLike,
    T: npt.ArrayLike,
    sigma: npt.ArrayLike,
    r: npt.ArrayLike,
    q: npt.ArrayLike = 0.0,
    *,
    legacy_put_theta: bool = False,
) -> dict[str, np.ndarray]:
    """
    All Greeks for broadcastable array inputs.

    Returns
    -------
    dict[str, np.ndarray]
        Keys 'delta', 'gamma', 'vega', 'theta', 'rho', scaled as in
        :class:`bs_analytics.types.GreeksResult`
    """
    kind = ContractType.parse(option_type)
    a = _as_arrays(S=S, K=K, T=T, sigma=sigma, r=r, q=q)
    S, K, T, sigma, r, q = (a[n] for n in ("S", "K", "T", "sigma", "r", "q"))

    d1, d2 = _d1_d2(S, K, T, sigma, r, q)
    sqrt_t = np.sqrt(T)
    discount = np.exp(-r * T)
    dividend = np.exp(-q * T)
    pdf_d1 = _norm_pdf(d1)

    gamma = dividend * pdf_d1 / (S * sigma * sqrt_t)
    vega = S * dividend * pdf_d1 * sqrt_t / VEGA_SCALE
    decay = -dividend * S * pdf_d1 * sigma / (2.0 * sqrt_t)
    carry = r * K * discount
    income = q * S * dividend

    if kind is ContractType.CALL:
        delta = discount * _norm_cdf(d1)
        theta = decay - carry * _norm_cdf(d2) + income * _norm_cdf(d1)
        rho = K * T * discount * _norm_cdf(d2)
    elif kind is ContractType.PUT:
        weight = _norm_pdf(-d2) if legacy_put_theta else _norm_cdf(-d2)
        delta = -discount * _norm_cdf(-d1)
        theta = decay + carry * weight - income * _norm_cdf(-d1)
        rho = -K * T * discount * _norm_cdf(-d2)
    else:
        assert_never(kind)

    return {
        "delta": delta,
        "gamma": gamma,
        "vega": vega,
        "theta": theta / DAYS_PER_YEAR,
        "rho": rho,
    }


def implied_vol_array(
    option_type: ContractType | str,
    prices: npt.ArrayLike,
    S: npt.ArrayLike,
    K: npt.ArrayLike,
    T: npt.ArrayLike,
    r: npt.ArrayLike,
    q: npt.ArrayLike = 0.0,
    **solver_kwargs,
) -> np.ndarray:
    """
    Element-wise implied volatility for an array of observed premiums.

    Parameters
    ----------
    option_type : ContractType | str
        Contract type shared by every element
    prices : array_like
        Observed premiums; NaN entries are skipped, negative or infinite
        quotes give NaN
    S, K, T, r, q : array_like
        Market inputs broadcast against ``prices``
    **solver_kwargs
        Passed to :func:`bs_analytics.analytics.implied_vol.implied_vol`

    Returns
    -------
    np.ndarray
        Implied volatilities; NaN where the price is missing, violates
        arbitrage bounds or the search does not converge

    Notes
    -----
    Quotes in market data may be stale or crossed, so per-element solver
    failures become NaN instead of raising. Invalid market inputs still
    raise InvalidInputError.
    """
    kind = ContractType.parse(option_type)
    a = _as_arrays(prices=prices, S=S, K=K, T=T, r=r, q=q)

    out = np.full(a["prices"].shape, np.nan)
    for idx in np.ndindex(out.shape):
        price = a["prices"][idx]
        if np.isnan(price):
            continue
        if price < 0 or np.isinf(price):
            logger.debug("implied vol failed at index %s: quote %r is not a premium", idx, price)
            continue
        try:
            out[idx] = implied_vol(
                kind,
                float(a["S"][idx]),
                float(a["K"][idx]),
                float(a["T"][idx]),
                float(a["r"][idx]),
                float(a["q"][idx]),
                float(price),
                **solver_kwargs,
            )
        except (OutOfDomainError, NoConvergenceError) as e:
            logger.debug("implied vol failed at index %s: %s", idx, e)

    return out
