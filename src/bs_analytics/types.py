"""
Value types shared by the pricing and solver functions.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from numbers import Real
from typing import NamedTuple

from bs_analytics.exceptions import InvalidInputError


class ContractType(Enum):
    """European option contract type."""

    CALL = "call"
    PUT = "put"

    @classmethod
    def parse(cls, value: "ContractType | str") -> "ContractType":
        """
        Coerce a contract type or its name to a ContractType.

        Parameters
        ----------
        value : ContractType | str
            A ContractType member or 'call' / 'put' (case-insensitive)

        Returns
        -------
        ContractType
            Matching member

        Raises
        ------
        InvalidInputError
            If value names neither a call nor a put
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidInputError(f"option_type must be 'call' or 'put', got {value!r}")


@dataclass(frozen=True)
class MarketParameters:
    """
    Inputs of the Black-Scholes-Merton formulas.

    Attributes
    ----------
    spot : float
        Underlying price S (must be > 0)
    strike : float
        Strike price K (must be > 0)
    time_to_expiry : float
        Time to expiry T in years (must be > 0 and finite)
    volatility : float
        Annualized volatility sigma (must be > 0)
    rate : float
        Continuously compounded risk-free rate r
    dividend_yield : float
        Continuously compounded dividend yield q
    """

    spot: float
    strike: float
    time_to_expiry: float
    volatility: float
    rate: float
    dividend_yield: float = 0.0

    def __post_init__(self) -> None:
        for name in ("spot", "strike", "time_to_expiry", "volatility", "rate", "dividend_yield"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvalidInputError(f"{name} must be a real number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidInputError(f"{name} must be finite, got {value!r}")
        if self.spot <= 0:
            raise InvalidInputError("Spot price S must be positive")
        if self.strike <= 0:
            raise InvalidInputError("Strike K must be positive")
        if self.time_to_expiry <= 0:
            raise InvalidInputError("Time to expiry T must be positive")
        if self.volatility <= 0:
            raise InvalidInputError("Volatility sigma must be positive")

    def with_volatility(self, sigma: float) -> "MarketParameters":
        """Return a copy with a different volatility."""
        return replace(self, volatility=sigma)

    @property
    def sqrt_t(self) -> float:
        """Square root of time to expiry."""
        return math.sqrt(self.time_to_expiry)

    @property
    def discount_factor(self) -> float:
        """e^(-rT)"""
        return math.exp(-self.rate * self.time_to_expiry)

    @property
    def dividend_factor(self) -> float:
        """e^(-qT)"""
        return math.exp(-self.dividend_yield * self.time_to_expiry)


class D1D2(NamedTuple):
    """Standardized moneyness terms of the Black-Scholes formula."""

    d1: float
    d2: float


@dataclass(frozen=True)
class GreeksResult:
    """
    Black-Scholes sensitivities in market convention.

    Attributes
    ----------
    delta : float
        dPrice/dS
    gamma : float
        d2Price/dS2
    vega : float
        Price change per 1 percentage point of volatility
    theta : float
        Price change per calendar day
    rho : float
        dPrice/dr
    """

    delta: float
    gamma: float
    vega: float
    theta: float
    rho: float

    def as_dict(self) -> dict[str, float]:
        return {
            "delta": self.delta,
            "gamma": self.gamma,
            "vega": self.vega,
            "theta": self.theta,
            "rho": self.rho,
        }

    def __repr__(self) -> str:
        return (
            f"GreeksResult(delta={self.delta:.6f}, gamma={self.gamma:.6f}, "
            f"vega={self.vega:.6f}, theta={self.theta:.6f}, rho={self.rho:.6f})"
        )
