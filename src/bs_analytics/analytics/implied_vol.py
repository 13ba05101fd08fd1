"""
Implied volatility solver for European options.

Safeguarded Newton-Raphson: Newton steps use the analytical vega as the
derivative of the premium, and fall back to bisection of a bracket that
always contains the root whenever a Newton step is unusable.
"""

import logging
import math
import time
from dataclasses import dataclass, replace
from numbers import Real
from typing import assert_never

from bs_analytics.analytics.black_scholes import VEGA_SCALE, _premium, _vega, compute_d1_d2
from bs_analytics.exceptions import InvalidInputError, NoConvergenceError, OutOfDomainError
from bs_analytics.types import ContractType, MarketParameters

logger = logging.getLogger(__name__)

# Relative price residual treated as an exact match
PRICE_EPS = 1e-12


@dataclass(frozen=True)
class SolverConfig:
    """
    Settings of the implied volatility search.

    Attributes
    ----------
    tol : float
        Absolute tolerance on the volatility step
    max_iter : int
        Maximum number of iterations
    sigma_low : float
        Lower end of the search domain (>= 0)
    sigma_high : float
        Upper end of the search domain
    timeout : float | None
        Wall-clock budget in seconds, or None for no limit
    """

    tol: float = 1e-3
    max_iter: int = 100
    sigma_low: float = 0.0
    sigma_high: float = 100.0
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.tol > 0:
            raise InvalidInputError("tol must be positive")
        if self.max_iter < 1:
            raise InvalidInputError("max_iter must be at least 1")
        if not (0.0 <= self.sigma_low < self.sigma_high) or not math.isfinite(self.sigma_high):
            raise InvalidInputError("Search domain must satisfy 0 <= sigma_low < sigma_high < inf")
        if self.timeout is not None and not self.timeout > 0:
            raise InvalidInputError("timeout must be positive")


@dataclass(frozen=True)
class ImpliedVolResult:
    """
    Implied volatility with solver diagnostics.

    Attributes
    ----------
    sigma : float
        Implied volatility
    iterations : int
        Iterations performed (0 when the price sits on a domain boundary)
    converged_on : str
        'price' (residual vanished), 'step' (volatility step below tol)
        or 'boundary' (price equals the premium at an end of the domain)
    bisection_steps : int
        Number of iterations that fell back to bisection
    """

    sigma: float
    iterations: int
    converged_on: str
    bisection_steps: int


def _premium_limit(kind: ContractType, params: MarketParameters, sigma: float) -> float:
    """Premium at sigma, using its sigma -> 0 limit (discounted forward intrinsic) at zero."""
    if sigma > 0:
        p = params.with_volatility(sigma)
        return _premium(kind, p, compute_d1_d2(p))

    forward_leg = params.spot * params.dividend_factor
    strike_leg = params.strike * params.discount_factor
    if kind is ContractType.CALL:
        return max(forward_leg - strike_leg, 0.0)
    elif kind is ContractType.PUT:
        return max(strike_leg - forward_leg, 0.0)
    else:
        assert_never(kind)


def _check_arbitrage_bounds(kind: ContractType, params: MarketParameters, price: float) -> None:
    forward_leg = params.spot * params.dividend_factor
    strike_leg = params.strike * params.discount_factor

    if kind is ContractType.CALL:
        lower_bound = max(forward_leg - strike_leg, 0.0)
        upper_bound = forward_leg
        upper_name = "discounted spot"
    elif kind is ContractType.PUT:
        lower_bound = max(strike_leg - forward_leg, 0.0)
        upper_bound = strike_leg
        upper_name = "discounted strike"
    else:
        assert_never(kind)

    slack = PRICE_EPS * max(1.0, upper_bound)
    if price < lower_bound - slack:
        raise OutOfDomainError(
            f"{kind.value.capitalize()} price {price:.6f} is below arbitrage lower bound "
            f"{lower_bound:.6f} (intrinsic value)"
        )
    if price > upper_bound + slack:
        raise OutOfDomainError(
            f"{kind.value.capitalize()} price {price:.6f} exceeds arbitrage upper bound "
            f"{upper_bound:.6f} ({upper_name})"
        )


def implied_vol_result(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float,
    price: float,
    *,
    tol: float | None = None,
    max_iter: int | None = None,
    sigma_low: float | None = None,
    sigma_high: float | None = None,
    timeout: float | None = None,
    initial_guess: float | None = None,
    config: SolverConfig | None = None,
) -> ImpliedVolResult:
    """
    Solve for implied volatility and report how the search converged.

    Parameters and errors are those of :func:`implied_vol`.

    Returns
    -------
    ImpliedVolResult
        Volatility plus iteration diagnostics
    """
    overrides = {
        "tol": tol,
        "max_iter": max_iter,
        "sigma_low": sigma_low,
        "sigma_high": sigma_high,
        "timeout": timeout,
    }
    config = replace(
        config or SolverConfig(), **{k: v for k, v in overrides.items() if v is not None}
    )

    kind = ContractType.parse(option_type)
    params = MarketParameters(S, K, T, config.sigma_high, r, q)
    if isinstance(price, bool) or not isinstance(price, Real) or not math.isfinite(price):
        raise InvalidInputError(f"Price must be a finite number, got {price!r}")
    if price < 0:
        raise InvalidInputError("Price must be non-negative")

    _check_arbitrage_bounds(kind, params, price)

    price_eps = PRICE_EPS * max(1.0, price)
    lo, hi = config.sigma_low, config.sigma_high

    f_lo = _premium_limit(kind, params, lo) - price
    if abs(f_lo) <= price_eps:
        return ImpliedVolResult(lo, 0, "boundary", 0)
    if f_lo > 0:
        raise OutOfDomainError(
            f"Market price {price:.6f} is below the premium {f_lo + price:.6f} "
            f"at sigma_low={lo:.4f}"
        )
    f_hi = _premium_limit(kind, params, hi) - price
    if f_hi < -price_eps:
        raise OutOfDomainError(
            f"Market price {price:.6f} is too high to be matched even with "
            f"σ={hi:.2f} (BS price: {f_hi + price:.6f})"
        )
    if f_hi <= price_eps:
        return ImpliedVolResult(hi, 0, "boundary", 0)

    if initial_guess is None:
        # Brenner-Subrahmanyam at-the-money approximation
        initial_guess = math.sqrt(2.0 * math.pi / params.time_to_expiry) * price / (
            params.spot * params.dividend_factor
        )
    x = initial_guess if lo < initial_guess < hi else 0.5 * (lo + hi)

    dx_old = hi - lo
    dx = dx_old
    bisections = 0
    start = time.perf_counter()

    for iteration in range(1, config.max_iter + 1):
        if config.timeout is not None and time.perf_counter() - start > config.timeout:
            raise NoConvergenceError(
                f"Implied volatility search timed out after {iteration - 1} iterations. "
                f"Final bracket: [{lo:.6f}, {hi:.6f}], target: {price:.6f}",
                iterations=iteration - 1,
                bracket=(lo, hi),
            )

        p = params.with_volatility(x)
        d = compute_d1_d2(p)
        fx = _premium(kind, p, d) - price
        if abs(fx) <= price_eps:
            logger.debug("implied vol %.6f found on price after %d iterations", x, iteration)
            return ImpliedVolResult(x, iteration, "price", bisections)

        if fx < 0:
            lo = x
        else:
            hi = x

        # Undo the per-vol-point scaling to get dPrice/dSigma
        dfx = VEGA_SCALE * _vega(p, d)
        x_newton = x - fx / dfx if math.isfinite(dfx) and dfx > 0 else math.nan
        use_newton = lo < x_newton < hi and abs(2.0 * fx) <= abs(dx_old * dfx)

        dx_old = dx
        if use_newton:
            dx = fx / dfx
            x = x_newton
        else:
            dx = 0.5 * (hi - lo)
            x = lo + dx
            bisections += 1

        if abs(dx) < config.tol:
            logger.debug(
                "implied vol %.6f found on step after %d iterations (%d bisections)",
                x,
                iteration,
                bisections,
            )
            return ImpliedVolResult(x, iteration, "step", bisections)

    raise NoConvergenceError(
        f"Implied volatility did not converge after {config.max_iter} iterations. "
        f"Final bracket: [{lo:.6f}, {hi:.6f}], target: {price:.6f}",
        iterations=config.max_iter,
        bracket=(lo, hi),
    )


def implied_vol(
    option_type: ContractType | str,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float,
    price: float,
    *,
    tol: float | None = None,
    max_iter: int | None = None,
    sigma_low: float | None = None,
    sigma_high: float | None = None,
    timeout: float | None = None,
    initial_guess: float | None = None,
    config: SolverConfig | None = None,
) -> float:
    """
    Compute implied volatility using safeguarded Newton-Raphson.

    Solves for σ such that BS(type, S, K, T, σ, r, q) = price.

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
    r : float
        Continuously compounded risk-free rate
    q : float
        Continuously compounded dividend yield
    price : float
        Observed market premium (must be >= 0)
    tol : float, optional
        Absolute tolerance on the volatility step (default: 1e-3)
    max_iter : int, optional
        Maximum number of iterations (default: 100)
    sigma_low : float, optional
        Lower bound of the search domain (default: 0.0)
    sigma_high : float, optional
        Upper bound of the search domain (default: 100.0)
    timeout : float, optional
        Wall-clock budget in seconds (default: no limit)
    initial_guess : float, optional
        Starting volatility; defaults to the Brenner-Subrahmanyam
        approximation
    config : SolverConfig, optional
        Base settings; explicit keyword arguments take precedence

    Returns
    -------
    float
        Implied volatility, always within [sigma_low, sigma_high]

    Raises
    ------
    InvalidInputError
        If market inputs or solver settings are invalid
    OutOfDomainError
        If price is outside arbitrage bounds or cannot be matched by any
        volatility in the search domain
    NoConvergenceError
        If max_iter or timeout is exhausted

    Notes
    -----
    Arbitrage bounds for European options:
    - Call: max(0, S e^(-qT) - K e^(-rT)) <= price <= S e^(-qT)
    - Put: max(0, K e^(-rT) - S e^(-qT)) <= price <= K e^(-rT)

    The premium is strictly increasing in σ, so the root is unique. Every
    iteration shrinks a bracket around it; a Newton step is taken only when
    vega is positive, the step lands inside the bracket and it shrinks
    faster than the step before last. Otherwise the bracket is bisected.
    """
    return implied_vol_result(
        option_type,
        S,
        K,
        T,
        r,
        q,
        price,
        tol=tol,
        max_iter=max_iter,
        sigma_low=sigma_low,
        sigma_high=sigma_high,
        timeout=timeout,
        initial_guess=initial_guess,
        config=config,
    ).sigma
