"""
Investment Analytics Engine
===========================
Quantitative core of the investment-allocation dashboard: closed-form
fixed-income analytics and a Monte Carlo return-simulation engine.

Modules:
    bond        - PV, Macaulay/modified duration, convexity, YTM, Taylor repricing
    sampler     - Box-Muller normal sampler on a seedable uniform source
    monte_carlo - Multi-distribution compounding simulator, percentiles, histograms
    portfolio   - Weighted / real returns, future value, volatility, blended distributions
    config      - Environment-driven defaults and case-study inputs
    exceptions  - InvalidInput / InvalidConfiguration failures
"""

from src.exceptions import (
    AnalyticsError, InvalidInput, InvalidConfiguration, SimulationCancelled,
)
from src.bond import (
    Instrument, BondMetrics, compute_bond_metrics, present_value,
    macaulay_duration, modified_duration, convexity, price_change,
)
from src.sampler import RandomNormalSampler
from src.monte_carlo import (
    ReturnDistribution, SimulationConfig, SimulationResult, MonteCarloEngine,
    run_simulation, compare_results,
)

__version__ = "1.0.0"

__all__ = [
    "AnalyticsError", "InvalidInput", "InvalidConfiguration", "SimulationCancelled",
    "Instrument", "BondMetrics", "compute_bond_metrics", "present_value",
    "macaulay_duration", "modified_duration", "convexity", "price_change",
    "RandomNormalSampler",
    "ReturnDistribution", "SimulationConfig", "SimulationResult",
    "MonteCarloEngine", "run_simulation", "compare_results",
]
