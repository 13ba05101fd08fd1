"""
Black-Scholes-Merton analytical pricing formulas for European options.

All functions take the contract type first (where it matters) followed by
spot S, strike K, time to expiry T (years), volatility sigma, risk-free
rate r and continuous dividend yield q. Inputs are validated through
MarketParameters before any logarithm, square root or division.

Greeks follow market scaling: vega per 1 percentage point of volatility,
theta per calendar day.
"""

import math
from typing import assert_never

from bs_analytics.exceptions import InvalidInputError
from bs_analytics.types import D1D2, ContractType, GreeksResult, MarketParameters

DAYS_PER_YEAR = 365.0
VEGA_SCALE = 100.0


def norm_cdf(x: float) -> float:
    """
    Cumulative distribution function for standard normal distribution.

    Parameters
    ----------
    x : float
        Input value

    Returns
    -------
    float
        CDF value at x: P(Z <= x) where Z ~ N(0,1)
    """
    return 0.5 * math.erfc(-x / math.sqrt(2.0))


def norm_pdf(x: float) -> float:
    """
    Probability density function for standard normal distribution.

    Parameters
    ----------
    x : float
        Input value

    Returns
    -------
    float
        PDF value at x: φ(x) = exp(-x²/2)/√(2π)
    """
    return math.exp(-0.5 * x**2) / math.sqrt(2.0 * math.pi)


def d1(S: float, K: float, T: float, sigma: float, r: float, q: float = 0.0) -> float:
    """d1 = [ln(S/K) + (r - q + σ²/2)T] / (σ√T)"""
    params = MarketParameters(S, K, T, sigma, r, q)
    return compute_d1_d2(params).d1


def d2(T: float, sigma: float, d1_value: float) -> float:
    """d2 = d1 - σ√T"""
    if not (math.isfinite(T) and T > 0) or not (math.isfinite(sigma) and sigma > 0):
        raise InvalidInputError("T and sigma must be positive and finite")
    return d1_value - sigma * math.sqrt(T)


def compute_d1_d2(params: MarketParameters) -> D1D2:
    """
    Compute d1 and d2 once for a validated parameter set.

    Parameters
    ----------
    params : MarketParameters
        Validated market inputs

    Returns
    -------
    D1D2
        (d1, d2) pair
    """
    sigma_sqrt_t = params.volatility * params.sqrt_t
    d1_value = (
        math.log(params.spot / params.strike)
        + (params.rate - params.dividend_yield + 0.5 * params.volatility**2)
        * params.time_to_expiry
    ) / sigma_sqrt_t
    return D1D2(d1_value, d1_value - sigma_sqrt_t)


def _premium(kind: ContractType, p: MarketParameters, d: D1D2) -> float:
    forward_leg = p.spot * p.dividend_factor
    strike_leg = p.strike * p.discount_factor

    if kind is ContractType.CALL:
        premium = forward_leg * norm_cdf(d.d1) - strike_leg * norm_cdf(d.d2)
    elif kind is ContractType.PUT:
        premium = strike_leg * norm_cdf(-d.d2) - forward_leg * norm_cdf(-d.d1)
    else:
        assert_never(kind)

    # Rounding in the two legs can leave a deep out-of-the-money premium just below zero
    return max(premium, 0.0)


def _delta(kind: ContractType, p: MarketParameters, d: D1D2) -> float:
    if kind is ContractType.CALL:
        return p.discount_factor * norm_cdf(d.d1)
    elif kind is ContractType.PUT:
        return -p.discount_factor * norm_cdf(-d.d1)
    else:
        assert_never(kind)


def _gamma(p: MarketParameters, d: D1D2) -> float:
    return p.dividend_factor * norm_pdf(d.d1) / (p.spot * p.volatility * p.sqrt_t)


def _vega(p: MarketParameters, d: D1D2) -> float:
    return p.spot * p.dividend_factor * norm_pdf(d.d1) * p.sqrt_t / VEGA_SCALE


def _theta(kind: ContractType, p: MarketParameters, d: D1D2, legacy_put_theta: bool) -> float:
    decay = -p.dividend_factor * p.spot * norm_pdf(d.d1) * p.volatility / (2.0 * p.sqrt_t)
    carry = p.rate * p.strike * p.discount_factor
    income = p.dividend_yield * p.spot * p.dividend_factor

    if kind is ContractType.CALL:
        theta = decay - carry * norm_cdf(d.d2) + income * norm_cdf(d.d1)
    elif kind is ContractType.PUT:
        # The legacy formula weights the rate term with the density φ(-d2)
        weight = norm_pdf(-d.d2) if legacy_put_theta else norm_cdf(-d.d2)
        theta = decay + carry * weight - income * norm_cdf(-d.d1)
    else:
        assert_never(kind)

    return theta / DAYS_PER_YEAR


def _rho(kind: ContractType, p: MarketParameters, d: D1D2) -> float:
    if kind is ContractType.CALL:
        return p.strike * p.time_to_expiry * p.discount_factor * norm_cdf(d.d2)
    elif kind is ContractType.PUT:
        return -p.strike * p.time_to_expiry * p.discount_factor * norm_cdf(-d.d2)
    else:
        assert_never(kind)


def bs_price(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float = 0.0,
) -> float:
    """
    Compute European option price using the Black-Scholes-Merton formula.

    Parameters
    ----------
    option_type : ContractType | str
        ContractType.CALL / ContractType.PUT, or 'call' / 'put'
    S : float
        Underlying price (must be > 0)
    K : float
        Strike price (must be > 0)
    T : float
        Time to expiry in years (must be > 0)
    sigma : float
        Volatility (annualized, must be > 0)
    r : float
        Continuously compounded risk-free rate
    q : float, optional
        Continuously compounded dividend yield (default: 0.0)

    Returns
    -------
    float
        Option premium

    Raises
    ------
    InvalidInputError
        If S, K, T or sigma is not strictly positive, any input is not
        finite, or option_type is not a call or a put

    Notes
    -----
    - Call: S e^(-qT) N(d1) - K e^(-rT) N(d2)
    - Put: K e^(-rT) N(-d2) - S e^(-qT) N(-d1)
    """
    kind = ContractType.parse(option_type)
    params = MarketParameters(S, K, T, sigma, r, q)
    return _premium(kind, params, compute_d1_d2(params))


def bs_delta(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float = 0.0,
) -> float:
    """
    Compute Delta = ∂V/∂S.

    Parameters are those of :func:`bs_price`.

    Notes
    -----
    - Call delta: e^(-rT) N(d1)
    - Put delta: -e^(-rT) N(-d1)

    Both are discounted at the risk-free rate, so
    delta(call) - delta(put) = e^(-rT) for any parameter set.
    """
    kind = ContractType.parse(option_type)
    params = MarketParameters(S, K, T, sigma, r, q)
    return _delta(kind, params, compute_d1_d2(params))


def bs_gamma(S: float, K: float, T: float, sigma: float, r: float, q: float = 0.0) -> float:
    """
    Compute Gamma = ∂²V/∂S² (same for calls and puts).

    Notes
    -----
    Gamma = e^(-qT) φ(d1) / (S σ √T)
    """
    params = MarketParameters(S, K, T, sigma, r, q)
    return _gamma(params, compute_d1_d2(params))


def bs_vega(S: float, K: float, T: float, sigma: float, r: float, q: float = 0.0) -> float:
    """
    Compute Vega per 1 percentage point of volatility (same for calls and puts).

    Notes
    -----
    Vega = S e^(-qT) φ(d1) √T / 100

    Multiply by 100 to obtain the raw derivative ∂V/∂σ.
    """
    params = MarketParameters(S, K, T, sigma, r, q)
    return _vega(params, compute_d1_d2(params))


def bs_theta(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float = 0.0,
    *,
    legacy_put_theta: bool = False,
) -> float:
    """
    Compute Theta per calendar day.

    Parameters
    ----------
    option_type, S, K, T, sigma, r, q
        As for :func:`bs_price`
    legacy_put_theta : bool, optional
        Reproduce the legacy put formula, which weights the r·K·e^(-rT)
        term with the normal density φ(-d2) instead of N(-d2)
        (default: False)

    Returns
    -------
    float
        Theta, annualized value divided by 365

    Notes
    -----
    For call: [-e^(-qT) S φ(d1) σ/(2√T) - rK e^(-rT) N(d2) + qS e^(-qT) N(d1)] / 365
    For put: [-e^(-qT) S φ(d1) σ/(2√T) + rK e^(-rT) N(-d2) - qS e^(-qT) N(-d1)] / 365
    """
    kind = ContractType.parse(option_type)
    params = MarketParameters(S, K, T, sigma, r, q)
    return _theta(kind, params, compute_d1_d2(params), legacy_put_theta)


def bs_rho(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float = 0.0,
) -> float:
    """
    Compute Rho = ∂V/∂r.

    Notes
    -----
    For call: K T e^(-rT) N(d2)
    For put: -K T e^(-rT) N(-d2)
    """
    kind = ContractType.parse(option_type)
    params = MarketParameters(S, K, T, sigma, r, q)
    return _rho(kind, params, compute_d1_d2(params))


def bs_greeks(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float = 0.0,
    *,
    legacy_put_theta: bool = False,
) -> GreeksResult:
    """
    Compute all Greeks from a single d1/d2 evaluation.

    Returns
    -------
    GreeksResult
        delta, gamma, vega (per vol point), theta (per day), rho
    """
    kind = ContractType.parse(option_type)
    params = MarketParameters(S, K, T, sigma, r, q)
    d = compute_d1_d2(params)
    return GreeksResult(
        delta=_delta(kind, params, d),
        gamma=_gamma(params, d),
        vega=_vega(params, d),
        theta=_theta(kind, params, d, legacy_put_theta),
        rho=_rho(kind, params, d),
    )
