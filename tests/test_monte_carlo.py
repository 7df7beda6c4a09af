"""
Unit Tests -- Monte Carlo Return Simulation
===========================================
Tests terminal-value invariants, percentile extraction, histogram
binning, sample-path capture, reproducibility across worker counts,
correlation mode, cancellation and configuration failures.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import math
import threading

import numpy as np
import pandas as pd
import pytest

from src.monte_carlo import (ReturnDistribution, SimulationConfig,
                             SimulationResult, MonteCarloEngine,
                             run_simulation, compare_results,
                             percentile, build_histogram)
from src.exceptions import InvalidConfiguration, SimulationCancelled


class CancelAfter:
    """Cancellation flag that trips after n polls."""

    def __init__(self, n):
        self.n = n
        self.polls = 0

    def is_set(self):
        self.polls += 1
        return self.polls > self.n


# ---------------------------------------------------------------------------
# Terminal values
# ---------------------------------------------------------------------------
class TestTerminalValues:

    def test_no_variance_keeps_initial_value(self):
        cfg = SimulationConfig(trials=10000, years=10, initial_value=200_000_000,
                               paths_to_capture=100, histogram_bins=50, seed=0)
        flat = ReturnDistribution(mean_annual_return=0.0, annual_std_dev=0.0)
        (result,) = run_simulation([flat], cfg)
        assert np.all(result.terminal_values == 200_000_000)
        assert all(p.value == 200_000_000 for path in result.sample_paths for p in path)

    def test_deterministic_growth(self):
        cfg = SimulationConfig(trials=100, years=10, initial_value=100.0, seed=0)
        (result,) = run_simulation([ReturnDistribution(0.05, 0.0)], cfg)
        np.testing.assert_allclose(result.terminal_values, 100.0 * 1.05 ** 10)

    def test_length_and_sorted(self, fund, portfolio, small_config):
        for r in run_simulation([fund, portfolio], small_config):
            assert len(r.terminal_values) == small_config.trials
            assert np.all(np.diff(r.terminal_values) >= 0)

    def test_mean_matches_compounded_expectation(self, fund):
        """E[V_T] = V_0 (1 + mu)^T for independent annual returns."""
        cfg = SimulationConfig(trials=20000, years=10, initial_value=1.0, seed=2024)
        (result,) = run_simulation([fund], cfg)
        expected = 1.09 ** 10
        assert abs(result.mean() - expected) / expected < 0.02

    def test_results_are_read_only(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        with pytest.raises(ValueError):
            result.terminal_values[0] = 0.0
        with pytest.raises(TypeError):
            result.percentiles[0.05] = 0.0


# ---------------------------------------------------------------------------
# Percentiles
# ---------------------------------------------------------------------------
class TestPercentiles:

    def test_order_statistic_not_interpolated(self):
        values = np.array([10.0, 20.0, 30.0, 40.0])
        assert percentile(values, 0.5) == 30.0
        assert percentile(values, 0.0) == 10.0
        assert percentile(values, 1.0) == 40.0      # index clamped to n-1
        assert percentile(values, 0.24) == 10.0

    def test_reported_percentiles_use_floor_index(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        n = small_config.trials
        for q in (0.05, 0.50, 0.95):
            assert result.percentiles[q] == result.terminal_values[math.floor(n * q)]

    def test_monotone_in_quantile(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        qs = np.linspace(0.0, 1.0, 101)
        values = [result.percentile(q) for q in qs]
        assert np.all(np.diff(values) >= 0)

    def test_diversified_portfolio_has_narrower_range(self, fund, portfolio, small_config):
        f, p = run_simulation([fund, portfolio], small_config)
        assert (p.percentile(0.95) - p.percentile(0.05)) < (f.percentile(0.95) - f.percentile(0.05))
        assert p.percentile(0.05) > f.percentile(0.05)

    @pytest.mark.parametrize("q", [-0.01, 1.01, math.nan])
    def test_rejects_bad_quantile(self, q):
        with pytest.raises(InvalidConfiguration):
            percentile(np.array([1.0, 2.0]), q)

    def test_probability_below(self):
        values = np.arange(1.0, 101.0)
        result = SimulationResult(ReturnDistribution(0.0, 0.0), values, {}, ())
        assert result.probability_below(11.0) == pytest.approx(0.10)
        assert result.probability_below(0.0) == 0.0


# ---------------------------------------------------------------------------
# Histogram
# ---------------------------------------------------------------------------
class TestHistogram:

    def test_known_binning(self):
        hist = build_histogram(np.array([0.0, 1.0, 2.0, 3.0, 4.0]), bins=2)
        assert [b.count for b in hist] == [2, 3]    # max clamped into last bin
        assert [b.center for b in hist] == [1.0, 3.0]

    def test_degenerate_sample(self):
        hist = build_histogram(np.full(7, 5.0), bins=3)
        assert [b.count for b in hist] == [7, 0, 0]
        assert all(b.center == 5.0 for b in hist)

    def test_count_conservation(self, fund, portfolio, small_config):
        for r in run_simulation([fund, portfolio], small_config):
            assert len(r.histogram) == small_config.histogram_bins
            assert sum(b.count for b in r.histogram) == small_config.trials

    def test_centers_increase(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        centers = [b.center for b in result.histogram]
        assert np.all(np.diff(centers) > 0)
        assert centers[0] > result.terminal_values[0]
        assert centers[-1] < result.terminal_values[-1]

    def test_frame(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        df = result.histogram_frame()
        assert list(df.columns) == ["center", "count"]
        assert df["count"].sum() == small_config.trials


# ---------------------------------------------------------------------------
# Sample paths
# ---------------------------------------------------------------------------
class TestSamplePaths:

    def test_path_count_and_shape(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        assert len(result.sample_paths) == 25
        for path in result.sample_paths:
            assert len(path) == small_config.years + 1
            assert [p.year for p in path] == list(range(small_config.years + 1))
            assert path[0].value == small_config.initial_value

    def test_paths_end_on_terminal_values(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        ends = [path[-1].value for path in result.sample_paths]
        assert np.all(np.isin(ends, result.terminal_values))

    def test_paths_spanning_blocks(self, fund):
        cfg = SimulationConfig(trials=300, years=5, paths_to_capture=250,
                               chunk_size=100, seed=8)
        (result,) = run_simulation([fund], cfg)
        assert len(result.sample_paths) == 250
        assert all(len(path) == 6 for path in result.sample_paths)

    def test_paths_clamped_to_trials(self, fund):
        cfg = SimulationConfig(trials=40, years=3, paths_to_capture=500, seed=1)
        assert cfg.paths_to_capture == 40
        (result,) = run_simulation([fund], cfg)
        assert len(result.sample_paths) == 40

    def test_no_paths_requested(self, fund):
        cfg = SimulationConfig(trials=100, years=3, paths_to_capture=0, seed=1)
        (result,) = run_simulation([fund], cfg)
        assert result.sample_paths == ()

    def test_paths_frame(self, fund, small_config):
        (result,) = run_simulation([fund], small_config)
        df = result.paths_frame()
        assert len(df) == 25 * (small_config.years + 1)
        assert df.groupby("path")["year"].max().eq(small_config.years).all()


# ---------------------------------------------------------------------------
# Random streams, workers and cancellation
# ---------------------------------------------------------------------------
class TestStreams:

    def test_seeded_runs_reproducible(self, fund, portfolio, small_config):
        a = run_simulation([fund, portfolio], small_config)
        b = run_simulation([fund, portfolio], small_config)
        for x, y in zip(a, b):
            np.testing.assert_array_equal(x.terminal_values, y.terminal_values)

    def test_worker_count_does_not_change_results(self, fund, portfolio):
        base = dict(trials=3000, years=10, chunk_size=250, seed=77)
        serial = run_simulation([fund, portfolio], SimulationConfig(n_workers=1, **base))
        pooled = run_simulation([fund, portfolio], SimulationConfig(n_workers=4, **base))
        for s, p in zip(serial, pooled):
            np.testing.assert_array_equal(s.terminal_values, p.terminal_values)
            assert [b.count for b in s.histogram] == [b.count for b in p.histogram]

    def test_distributions_draw_independently(self, fund):
        twin = ReturnDistribution(0.09, 0.12, name="Twin")
        cfg = SimulationConfig(trials=1000, years=10, seed=5)
        a, b = run_simulation([fund, twin], cfg)
        assert not np.array_equal(a.terminal_values, b.terminal_values)

    def test_common_shock_shares_draws(self, fund):
        twin = ReturnDistribution(0.09, 0.12, name="Twin")
        cfg = SimulationConfig(trials=1000, years=10, seed=5, common_shock=True)
        a, b = run_simulation([fund, twin], cfg)
        np.testing.assert_array_equal(a.terminal_values, b.terminal_values)

    def test_cancel_before_start(self, fund, small_config):
        event = threading.Event()
        event.set()
        with pytest.raises(SimulationCancelled):
            run_simulation([fund], small_config, cancel_event=event)

    def test_cancel_mid_run(self, fund, small_config):
        flag = CancelAfter(2)
        with pytest.raises(SimulationCancelled):
            run_simulation([fund], small_config, cancel_event=flag)
        assert flag.polls == 3

    def test_unset_event_runs_to_completion(self, fund, small_config):
        (result,) = run_simulation([fund], small_config, cancel_event=threading.Event())
        assert len(result.terminal_values) == small_config.trials


# ---------------------------------------------------------------------------
# Configuration failures
# ---------------------------------------------------------------------------
class TestConfiguration:

    @pytest.mark.parametrize("kwargs", [
        dict(trials=0), dict(trials=-10), dict(years=0), dict(years=-1),
        dict(histogram_bins=0), dict(paths_to_capture=-1), dict(chunk_size=0),
        dict(n_workers=0), dict(initial_value=0.0), dict(initial_value=math.inf),
        dict(percentiles=(0.05, 1.5)), dict(trials=10.5),
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(InvalidConfiguration):
            SimulationConfig(**kwargs)

    def test_negative_std_dev(self):
        with pytest.raises(InvalidConfiguration):
            ReturnDistribution(mean_annual_return=0.05, annual_std_dev=-0.01)

    def test_empty_distributions(self, small_config):
        with pytest.raises(InvalidConfiguration):
            MonteCarloEngine(small_config).run([])

    def test_histogram_rejects_zero_bins(self):
        with pytest.raises(InvalidConfiguration):
            build_histogram(np.array([1.0, 2.0]), bins=0)

    def test_overflowing_growth_rejected(self):
        cfg = SimulationConfig(trials=10, years=2, initial_value=1e10, seed=1)
        runaway = ReturnDistribution(mean_annual_return=1e200, annual_std_dev=0.0,
                                     name="Runaway")
        with pytest.raises(InvalidConfiguration, match="Runaway"):
            run_simulation([runaway], cfg)

    def test_histogram_rejects_unbounded_range(self):
        with pytest.raises(InvalidConfiguration):
            build_histogram(np.array([-1.7e308, 1.7e308]), bins=2)


class TestComparison:

    def test_compare_results_frame(self, fund, portfolio, small_config):
        df = compare_results(run_simulation([fund, portfolio], small_config))
        assert isinstance(df, pd.DataFrame)
        assert list(df.index) == ["Balanced Fund", "Portfolio"]
        assert {"p5", "p50", "p95", "mean_terminal", "p95_p5_spread"} <= set(df.columns)
        assert (df["p5"] <= df["p50"]).all() and (df["p50"] <= df["p95"]).all()
