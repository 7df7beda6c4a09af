"""
config.py
---------
Centralised configuration for the investment analytics engine.
Simulation parameters are read from environment variables with sensible
defaults; the case-study data mirrors the reference dashboard inputs.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from src.bond import Instrument
from src.monte_carlo import ReturnDistribution, SimulationConfig


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "")
    return int(raw) if raw.strip() else None


@dataclass
class SimulationDefaults:
    """Monte Carlo run parameters."""
    trials:           int   = int(os.getenv("MC_TRIALS",   "10000"))
    years:            int   = int(os.getenv("MC_YEARS",    "10"))
    initial_value:    float = float(os.getenv("MC_INITIAL_VALUE", "200000000"))
    paths_to_capture: int   = int(os.getenv("MC_PATHS",    "100"))
    histogram_bins:   int   = int(os.getenv("MC_BINS",     "50"))
    percentiles: Tuple[float, ...] = field(
        default_factory=lambda: (0.05, 0.50, 0.95))
    chunk_size:       int   = int(os.getenv("MC_CHUNK",    "1000"))
    n_workers:        int   = int(os.getenv("MC_WORKERS",  "1"))
    seed:   Optional[int]   = field(default_factory=lambda: _optional_int("MC_SEED"))
    common_shock:     bool  = os.getenv("MC_COMMON_SHOCK", "false").lower() == "true"

    def to_simulation_config(self, **overrides) -> SimulationConfig:
        """Build a validated SimulationConfig, applying keyword overrides."""
        params = dict(
            trials=self.trials, years=self.years,
            initial_value=self.initial_value,
            paths_to_capture=self.paths_to_capture,
            histogram_bins=self.histogram_bins,
            percentiles=tuple(self.percentiles),
            seed=self.seed, chunk_size=self.chunk_size,
            n_workers=self.n_workers, common_shock=self.common_shock,
        )
        params.update(overrides)
        return SimulationConfig(**params)


@dataclass
class CaseStudyConfig:
    """
    Reference inputs of the 10-year, 200M VND allocation case study.

    Bond prices are quoted per 100 face value; rates are decimals.
    """
    government_bond: Instrument = field(default_factory=lambda: Instrument(
        coupon_rate=0.048, maturity_years=10, yield_to_maturity=0.0521,
        payments_per_year=1))
    corporate_bond:  Instrument = field(default_factory=lambda: Instrument(
        coupon_rate=0.08, maturity_years=7, yield_to_maturity=0.0772,
        payments_per_year=2))
    government_bond_price: float = 96.0
    corporate_bond_price:  float = 102.0

    # Nominal annual returns of options A / B / C
    nominal_returns: Dict[str, float] = field(default_factory=lambda: {
        "government_bond": 0.0521,
        "corporate_bond":  0.0791,
        "balanced_fund":   0.09,
    })
    allocation: Dict[str, float] = field(default_factory=lambda: {
        "government_bond": 0.20,
        "corporate_bond":  0.40,
        "balanced_fund":   0.40,
    })
    # Annual volatility per option; bonds held to maturity carry none
    asset_std_devs: Dict[str, float] = field(default_factory=lambda: {
        "government_bond": 0.0,
        "corporate_bond":  0.0,
        "balanced_fund":   0.12,
    })
    inflation: float = 0.04

    fund_distribution: ReturnDistribution = field(
        default_factory=lambda: ReturnDistribution(
            name="Balanced Fund", mean_annual_return=0.09, annual_std_dev=0.12))
    portfolio_distribution: ReturnDistribution = field(
        default_factory=lambda: ReturnDistribution(
            name="Portfolio", mean_annual_return=0.0781, annual_std_dev=0.048))


@dataclass
class EngineConfig:
    """Master configuration aggregating all sub-configs."""
    simulation: SimulationDefaults = field(default_factory=SimulationDefaults)
    case_study: CaseStudyConfig    = field(default_factory=CaseStudyConfig)

    log_level: str           = os.getenv("LOG_LEVEL", "INFO")
    log_dir:   Optional[str] = os.getenv("LOG_DIR") or None


# Singleton instance used throughout the project
CONFIG = EngineConfig()
