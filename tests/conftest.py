"""
conftest.py
-----------
Shared fixtures: seeded configurations and the case-study inputs.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from src.bond import Instrument
from src.monte_carlo import ReturnDistribution, SimulationConfig


@pytest.fixture
def government_bond():
    """10-year 4.8% annual-pay bond at 5.21% YTM."""
    return Instrument(coupon_rate=0.048, maturity_years=10,
                      yield_to_maturity=0.0521, payments_per_year=1)


@pytest.fixture
def fund():
    return ReturnDistribution(mean_annual_return=0.09, annual_std_dev=0.12,
                              name="Balanced Fund")


@pytest.fixture
def portfolio():
    return ReturnDistribution(mean_annual_return=0.0781, annual_std_dev=0.048,
                              name="Portfolio")


@pytest.fixture
def small_config():
    return SimulationConfig(trials=2000, years=10, initial_value=200_000_000,
                            paths_to_capture=25, histogram_bins=50,
                            seed=42, chunk_size=500)
