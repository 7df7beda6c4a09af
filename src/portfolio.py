"""
portfolio.py — Allocation-level Return Arithmetic
=================================================
Implements:
  • Allocation-weighted nominal return
  • Real return (Fisher relation) for a given inflation rate
  • Compounded future value
  • Volatility of an uncorrelated allocation
  • Blending an allocation into a single ReturnDistribution for simulation

Author  : Investment Analytics Engine contributors
Project : Investment Analytics Engine
"""

import numpy as np
from typing import Dict, Optional, Sequence, Union

from src.exceptions import InvalidInput
from src.monte_carlo import ReturnDistribution
from src.utils import is_finite

Weights = Union[Sequence[float], Dict[str, float]]


def _normalise_weights(weights: Weights) -> np.ndarray:
    """
    Weights as fractions summing to 1.

    Accepts fractions (sum 1) or percentages (sum 100).
    """
    w = np.asarray(list(weights.values()) if isinstance(weights, dict) else weights,
                   dtype=np.float64)
    if w.size == 0 or not np.all(np.isfinite(w)) or np.any(w < 0):
        raise InvalidInput(f"Weights must be finite and non-negative, got {w}")
    total = float(w.sum())
    if abs(total - 100.0) < 1e-6:
        return w / 100.0
    if abs(total - 1.0) > 1e-6:
        raise InvalidInput(f"Weights must sum to 1 (or 100), got {total}")
    return w


def _aligned(weights: Weights, values: Weights) -> tuple[np.ndarray, np.ndarray]:
    if isinstance(weights, dict) and isinstance(values, dict):
        missing = set(weights) - set(values)
        if missing:
            raise InvalidInput(f"No value supplied for {sorted(missing)}")
        values = [values[k] for k in weights]
    elif isinstance(values, dict):
        values = list(values.values())
    v = np.asarray(values, dtype=np.float64)
    w = _normalise_weights(weights)
    if v.shape != w.shape:
        raise InvalidInput(f"{w.size} weights but {v.size} values")
    if not np.all(np.isfinite(v)):
        raise InvalidInput(f"Values must be finite, got {v}")
    return w, v


def weighted_return(weights: Weights, returns: Weights) -> float:
    """Σ w_i r_i over the allocation."""
    w, r = _aligned(weights, returns)
    return float(np.dot(w, r))


def real_return(nominal: float, inflation: float) -> float:
    """
    Fisher relation:

        r_real = (1 + r_nominal) / (1 + π) - 1
    """
    if not is_finite(nominal, inflation) or inflation <= -1:
        raise InvalidInput(f"Invalid rates: nominal={nominal}, inflation={inflation}")
    return (1.0 + nominal) / (1.0 + inflation) - 1.0


def future_value(initial: float, rate: float, years: float,
                 payments_per_year: int = 1) -> float:
    """FV = initial * (1 + rate/m)^(years*m)."""
    if not is_finite(initial, rate, years) or payments_per_year <= 0:
        raise InvalidInput(
            f"Invalid inputs: initial={initial}, rate={rate}, years={years}, "
            f"payments_per_year={payments_per_year}")
    if rate <= -payments_per_year:
        raise InvalidInput(f"rate must exceed -{payments_per_year}, got {rate}")
    return initial * (1.0 + rate / payments_per_year) ** (years * payments_per_year)


def portfolio_volatility(weights: Weights, std_devs: Weights) -> float:
    """
    Volatility of an allocation of uncorrelated assets:

        σ_p = sqrt( Σ w_i² σ_i² )
    """
    w, s = _aligned(weights, std_devs)
    if np.any(s < 0):
        raise InvalidInput(f"Standard deviations must be non-negative, got {s}")
    return float(np.sqrt(np.dot(w ** 2, s ** 2)))


def blend_distribution(name: str, weights: Weights, means: Weights,
                       std_dev: Optional[float] = None,
                       std_devs: Optional[Weights] = None) -> ReturnDistribution:
    """
    Single ReturnDistribution for a whole allocation.

    The mean is allocation-weighted. The volatility is either given directly
    (std_dev) or derived from per-asset volatilities (std_devs) assuming the
    assets are uncorrelated.
    """
    if std_dev is None:
        if std_devs is None:
            raise InvalidInput("Supply either std_dev or per-asset std_devs")
        std_dev = portfolio_volatility(weights, std_devs)
    return ReturnDistribution(mean_annual_return=weighted_return(weights, means),
                              annual_std_dev=std_dev, name=name)
