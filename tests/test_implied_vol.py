"""
Tests for the implied volatility solver.
"""

import math
import time

import numpy as np
import pytest

from bs_analytics.analytics.black_scholes import bs_price
from bs_analytics.analytics.implied_vol import (
    ImpliedVolResult,
    SolverConfig,
    implied_vol,
    implied_vol_result,
)
from bs_analytics.exceptions import (
    InvalidInputError,
    NoConvergenceError,
    OutOfDomainError,
)
from bs_analytics.types import ContractType


class TestImpliedVolRecovery:
    """Test that implied_vol recovers the true volatility."""

    @pytest.mark.parametrize(
        "S,K,T,r,q,sigma,option_type",
        [
            (100, 100, 1.0, 0.05, 0.0, 0.20, "call"),
            (100, 100, 1.0, 0.05, 0.0, 0.20, "put"),
            (100, 110, 1.0, 0.05, 0.0, 0.25, "call"),  # OTM call
            (100, 90, 1.0, 0.05, 0.0, 0.25, "put"),  # OTM put
            (100, 90, 1.0, 0.05, 0.0, 0.15, "call"),  # ITM call
            (100, 110, 1.0, 0.05, 0.0, 0.15, "put"),  # ITM put
            (50, 50, 0.5, 0.03, 0.01, 0.30, "call"),  # With dividend yield
            (150, 150, 2.0, 0.02, 0.03, 0.18, "put"),  # Longer maturity
            (80, 100, 0.25, 0.04, 0.0, 0.40, "call"),  # High vol
            (120, 100, 0.5, 0.01, 0.02, 0.15, "put"),  # Moderate maturity OTM put
            (100, 100, 1.0, 0.05, 0.0, 2.50, "call"),  # Very high vol
        ],
    )
    def test_recovery_accuracy(self, S, K, T, r, q, sigma, option_type):
        """Test that IV solver recovers true volatility accurately."""
        price = bs_price(option_type, S, K, T, sigma, r, q)

        iv = implied_vol(option_type, S, K, T, r, q, price, tol=1e-8)

        assert abs(iv - sigma) < 1e-6, (
            f"IV recovery failed: got {iv:.8f}, expected {sigma:.8f}, error: {abs(iv - sigma):.2e}"
        )

    @pytest.mark.parametrize("option_type", [ContractType.CALL, ContractType.PUT])
    def test_round_trip_random_volatilities(self, option_type):
        """Round trip sigma0 -> price -> implied vol for sigma0 drawn from (0, 5)."""
        S, K, T, r, q = 100.0, 100.0, 1.0, 0.03, 0.03
        rng = np.random.default_rng(20240101)

        for sigma0 in rng.uniform(0.0, 5.0, size=25):
            if sigma0 == 0.0:
                continue
            price = bs_price(option_type, S, K, T, sigma0, r, q)
            iv = implied_vol(option_type, S, K, T, r, q, price)
            assert abs(iv - sigma0) < 0.01, f"sigma0={sigma0:.6f}, iv={iv:.6f}"

    def test_default_tolerance_is_on_sigma(self):
        """Default tol=1e-3 bounds the volatility error."""
        price = bs_price("call", 100, 105, 0.5, 0.35, 0.02, 0.0)
        iv = implied_vol("call", 100, 105, 0.5, 0.02, 0.0, price)
        assert abs(iv - 0.35) < 1e-3

    def test_higher_price_gives_higher_iv(self):
        price1 = bs_price("call", 100, 100, 1.0, 0.15, 0.05, 0.0)
        price2 = bs_price("call", 100, 100, 1.0, 0.30, 0.05, 0.0)

        iv1 = implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price1)
        iv2 = implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price2)

        assert iv1 < iv2


class TestNewtonDerivativeUnits:
    """The solver works with dPrice/dSigma, not the per-vol-point vega."""

    def test_pure_newton_near_root(self):
        """From a close initial guess, Newton converges without bisection."""
        S, K, T, r, q, sigma = 100.0, 100.0, 1.0, 0.0, 0.0, 0.2
        price = bs_price("call", S, K, T, sigma, r, q)

        result = implied_vol_result("call", S, K, T, r, q, price, tol=1e-10, initial_guess=0.19)

        assert result.bisection_steps == 0
        assert result.iterations <= 6
        assert result.sigma == pytest.approx(sigma, abs=1e-9)

    def test_far_initial_guess_falls_back_to_bisection(self):
        """Vega vanishes near sigma=100, so the search must bisect first."""
        price = bs_price("put", 100.0, 95.0, 0.5, 0.3, 0.02, 0.0)

        result = implied_vol_result("put", 100.0, 95.0, 0.5, 0.02, 0.0, price, initial_guess=99.0)

        assert result.bisection_steps > 0
        assert abs(result.sigma - 0.3) < 1e-3


class TestSearchDomain:
    """Test the bounded search domain and its boundaries."""

    def test_result_within_domain(self):
        for sigma in [0.01, 0.5, 5.0, 30.0]:
            price = bs_price("call", 100, 100, 1.0, sigma, 0.01, 0.0)
            iv = implied_vol("call", 100, 100, 1.0, 0.01, 0.0, price)
            assert 0.0 <= iv <= 100.0

    def test_price_at_intrinsic_returns_lower_bound(self):
        """An ITM call priced at discounted intrinsic implies zero volatility."""
        S, K, T, r = 100.0, 90.0, 1.0, 0.05
        intrinsic = S - K * math.exp(-r * T)

        result = implied_vol_result("call", S, K, T, r, 0.0, intrinsic)

        assert result.sigma == 0.0
        assert result.converged_on == "boundary"
        assert result.iterations == 0

    def test_zero_price_otm_returns_lower_bound(self):
        assert implied_vol("call", 100.0, 150.0, 1.0, 0.05, 0.0, 0.0) == 0.0

    def test_library_premium_is_always_accepted(self):
        """A premium that rounds to nothing is matched at the lower bound."""
        args = (65.784, 203.749, 0.00325)
        price = bs_price("call", *args, 2.467, -0.00398, 0.0701)

        iv = implied_vol("call", *args, -0.00398, 0.0701, price)

        assert 0.0 <= iv <= 100.0

    def test_custom_search_bounds(self):
        price = bs_price("call", 100, 100, 1.0, 0.25, 0.05, 0.0)
        iv = implied_vol(
            "call", 100, 100, 1.0, 0.05, 0.0, price, sigma_low=0.1, sigma_high=0.5, tol=1e-8
        )
        assert abs(iv - 0.25) < 1e-6

    def test_price_above_domain(self):
        price = bs_price("call", 100, 100, 1.0, 0.30, 0.05, 0.0)
        with pytest.raises(OutOfDomainError, match="too high to be matched"):
            implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price, sigma_high=0.1)

    def test_price_below_domain(self):
        price = bs_price("call", 100, 100, 1.0, 0.20, 0.05, 0.0)
        with pytest.raises(OutOfDomainError, match="below the premium"):
            implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price, sigma_low=0.5)


class TestArbitrageBounds:
    """Test that arbitrage bounds are enforced."""

    def test_call_below_intrinsic(self):
        S, K, T, r = 100, 90, 1.0, 0.05
        intrinsic = S - K * math.exp(-r * T)

        with pytest.raises(OutOfDomainError, match="below arbitrage lower bound"):
            implied_vol("call", S, K, T, r, 0.0, intrinsic - 0.1)

    def test_call_above_discounted_spot(self):
        S, q, T = 100, 0.02, 1.0
        with pytest.raises(OutOfDomainError, match="exceeds arbitrage upper bound"):
            implied_vol("call", S, 100, T, 0.05, q, S * math.exp(-q * T) + 0.1)

    def test_put_below_intrinsic(self):
        S, K, T, r = 100, 110, 1.0, 0.05
        intrinsic = K * math.exp(-r * T) - S

        with pytest.raises(OutOfDomainError, match="below arbitrage lower bound"):
            implied_vol("put", S, K, T, r, 0.0, intrinsic - 0.1)

    def test_put_above_discounted_strike(self):
        K, r, T = 100, 0.05, 1.0
        with pytest.raises(OutOfDomainError, match="exceeds arbitrage upper bound"):
            implied_vol("put", 100, K, T, r, 0.0, K * math.exp(-r * T) + 0.1)

    def test_out_of_domain_is_value_error(self):
        with pytest.raises(ValueError):
            implied_vol("put", 100, 100, 1.0, 0.05, 0.0, 1000.0)


class TestConvergenceLimits:
    """Test iteration cap and timeout."""

    def test_max_iterations(self):
        price = bs_price("call", 100, 100, 1.0, 0.2, 0.0, 0.0)

        with pytest.raises(NoConvergenceError, match="did not converge") as excinfo:
            implied_vol("call", 100, 100, 1.0, 0.0, 0.0, price, tol=1e-15, max_iter=1)

        assert excinfo.value.iterations == 1
        low, high = excinfo.value.bracket
        assert 0.0 <= low < high <= 100.0
        assert isinstance(excinfo.value, RuntimeError)

    def test_timeout(self, monkeypatch):
        ticks = iter(range(0, 1000, 10))
        monkeypatch.setattr(time, "perf_counter", lambda: next(ticks))
        price = bs_price("call", 100, 100, 1.0, 0.2, 0.05, 0.0)

        with pytest.raises(NoConvergenceError, match="timed out"):
            implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price, tol=1e-12, timeout=5.0)

    def test_converges_well_within_default_cap(self):
        price = bs_price("put", 100, 80, 0.1, 0.6, 0.02, 0.0)
        result = implied_vol_result("put", 100, 80, 0.1, 0.02, 0.0, price, tol=1e-10)
        assert result.iterations < 100
        assert abs(result.sigma - 0.6) < 1e-8


class TestSolverConfig:
    """Test configuration handling."""

    def test_defaults(self):
        config = SolverConfig()
        assert config.tol == 1e-3
        assert config.max_iter == 100
        assert config.sigma_low == 0.0
        assert config.sigma_high == 100.0
        assert config.timeout is None

    def test_config_object(self):
        price = bs_price("call", 100, 100, 1.0, 0.25, 0.05, 0.0)
        config = SolverConfig(tol=1e-9, sigma_low=0.1, sigma_high=1.0)
        iv = implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price, config=config)
        assert abs(iv - 0.25) < 1e-7

    def test_keywords_override_config(self):
        price = bs_price("call", 100, 100, 1.0, 0.30, 0.05, 0.0)
        config = SolverConfig(sigma_high=0.1)
        iv = implied_vol("call", 100, 100, 1.0, 0.05, 0.0, price, config=config, sigma_high=1.0)
        assert abs(iv - 0.30) < 1e-3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"tol": 0.0},
            {"max_iter": 0},
            {"sigma_low": -0.1},
            {"sigma_low": 2.0, "sigma_high": 1.0},
            {"sigma_high": math.inf},
            {"timeout": 0.0},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(InvalidInputError):
            SolverConfig(**kwargs)


class TestInvalidInputs:
    """Test that invalid inputs raise appropriate errors."""

    def test_invalid_inputs(self):
        price = 10.0

        with pytest.raises(InvalidInputError, match="S must be positive"):
            implied_vol("call", -1, 100, 1.0, 0.05, 0.0, price)

        with pytest.raises(InvalidInputError, match="K must be positive"):
            implied_vol("call", 100, -1, 1.0, 0.05, 0.0, price)

        with pytest.raises(InvalidInputError, match="T must be positive"):
            implied_vol("call", 100, 100, 0.0, 0.05, 0.0, price)

        with pytest.raises(InvalidInputError, match="Price must be non-negative"):
            implied_vol("call", 100, 100, 1.0, 0.05, 0.0, -1.0)

        with pytest.raises(InvalidInputError, match="Price must be a finite number"):
            implied_vol("call", 100, 100, 1.0, 0.05, 0.0, math.nan)

        with pytest.raises(InvalidInputError, match="option_type must be"):
            implied_vol("invalid", 100, 100, 1.0, 0.05, 0.0, price)

    def test_result_type(self):
        price = bs_price("put", 100, 100, 1.0, 0.2, 0.05, 0.0)
        result = implied_vol_result(ContractType.PUT, 100, 100, 1.0, 0.05, 0.0, price)
        assert isinstance(result, ImpliedVolResult)
        assert result.converged_on in {"price", "step"}
