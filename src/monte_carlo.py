"""
Monte Carlo Return Simulation Engine
====================================

Compounds a starting value under i.i.d. normal annual returns:

    V(y) = V(y-1) * (1 + r_y),   r_y ~ N(mu, sigma),   y = 1..years

for many independent trials per ReturnDistribution, then summarises the
terminal values (order-statistic percentiles, equal-width histogram) and
keeps the full year-by-year path only for the first `paths_to_capture`
trials.

Trials are processed in blocks of `chunk_size`. Every block owns a private
generator spawned from one SeedSequence, so a seeded run gives the same
numbers whatever `n_workers` is, and blocks can run on a thread pool
without sharing RNG state. The cancellation flag is polled between blocks.

Author  : Investment Analytics Engine contributors
Project : Investment Analytics Engine
"""

import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from src.exceptions import InvalidConfiguration, SimulationCancelled
from src.sampler import RandomNormalSampler
from src.utils import clamp, get_logger, is_finite, timeit

log = get_logger(__name__)


# ==============================================================================
# Inputs
# ==============================================================================
@dataclass(frozen=True)
class ReturnDistribution:
    """
    Annual return assumptions for one simulated asset or strategy.

    Attributes:
        mean_annual_return: Expected annual return (decimal)
        annual_std_dev: Annual standard deviation of returns (decimal, >= 0)
        name: Display label
    """
    mean_annual_return: float
    annual_std_dev: float
    name: str = ""

    def __post_init__(self):
        if not is_finite(self.mean_annual_return, self.annual_std_dev):
            raise InvalidConfiguration(
                f"Return distribution parameters must be finite, got {self}")
        if self.annual_std_dev < 0:
            raise InvalidConfiguration(
                f"annual_std_dev must be non-negative, got {self.annual_std_dev}")


def _require_int(name: str, value, minimum: int) -> None:
    if isinstance(value, bool) or not is_finite(value) or int(value) != value \
            or value < minimum:
        raise InvalidConfiguration(
            f"{name} must be an integer >= {minimum}, got {value}")


@dataclass(frozen=True)
class SimulationConfig:
    """
    Attributes:
        trials: Number of independent trials per distribution
        years: Compounding horizon in whole years
        initial_value: Starting value of every trial
        paths_to_capture: Trials whose full path is kept (clamped to trials)
        histogram_bins: Equal-width bins over [min, max] of terminal values
        percentiles: Quantiles in [0, 1] to report
        seed: Seed for reproducibility (None = fresh entropy)
        chunk_size: Trials per block; also the cancellation poll interval
        n_workers: Threads used to run blocks
        common_shock: Share one standard-normal draw per trial/year across
            distributions instead of drawing each independently
    """
    trials: int = 10000
    years: int = 10
    initial_value: float = 200_000_000.0
    paths_to_capture: int = 100
    histogram_bins: int = 50
    percentiles: Tuple[float, ...] = (0.05, 0.50, 0.95)
    seed: Optional[int] = None
    chunk_size: int = 1000
    n_workers: int = 1
    common_shock: bool = False

    def __post_init__(self):
        _require_int("trials", self.trials, 1)
        _require_int("years", self.years, 1)
        _require_int("histogram_bins", self.histogram_bins, 1)
        _require_int("paths_to_capture", self.paths_to_capture, 0)
        _require_int("chunk_size", self.chunk_size, 1)
        _require_int("n_workers", self.n_workers, 1)
        if not is_finite(self.initial_value) or self.initial_value <= 0:
            raise InvalidConfiguration(
                f"initial_value must be positive, got {self.initial_value}")
        for q in self.percentiles:
            if not is_finite(q) or not 0.0 <= q <= 1.0:
                raise InvalidConfiguration(f"Quantile must lie in [0, 1], got {q}")
        object.__setattr__(self, "percentiles", tuple(self.percentiles))
        if self.paths_to_capture > self.trials:
            log.warning("paths_to_capture=%d exceeds trials=%d; clamping",
                        self.paths_to_capture, self.trials)
            object.__setattr__(self, "paths_to_capture", self.trials)


# ==============================================================================
# Outputs
# ==============================================================================
class PathPoint(NamedTuple):
    year: int
    value: float


class HistogramBin(NamedTuple):
    center: float
    count: int


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """
    Summary of one distribution's run. Immutable once produced.

    terminal_values is sorted ascending and read-only.
    """
    distribution: ReturnDistribution
    terminal_values: np.ndarray
    percentiles: Mapping[float, float]
    histogram: Tuple[HistogramBin, ...]
    sample_paths: Tuple[Tuple[PathPoint, ...], ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return self.distribution.name

    def percentile(self, q: float) -> float:
        """Order-statistic percentile for any quantile, requested or not."""
        return percentile(self.terminal_values, q)

    def mean(self) -> float:
        return float(np.mean(self.terminal_values))

    def probability_below(self, threshold: float) -> float:
        """Share of trials ending strictly below threshold."""
        below = np.searchsorted(self.terminal_values, threshold, side="left")
        return float(below) / len(self.terminal_values)

    def histogram_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.histogram, columns=["center", "count"])

    def paths_frame(self) -> pd.DataFrame:
        """Long format: one row per (path, year)."""
        rows = [(i, p.year, p.value)
                for i, path in enumerate(self.sample_paths) for p in path]
        return pd.DataFrame(rows, columns=["path", "year", "value"])


# ==============================================================================
# Summary Statistics
# ==============================================================================
def percentile(sorted_values: np.ndarray, q: float) -> float:
    """
    Simple order-statistic percentile: sorted[floor(n*q)], index clamped to
    [0, n-1]. No interpolation between neighbouring order statistics.
    """
    if not is_finite(q) or not 0.0 <= q <= 1.0:
        raise InvalidConfiguration(f"Quantile must lie in [0, 1], got {q}")
    n = len(sorted_values)
    if n == 0:
        raise InvalidConfiguration("Cannot take a percentile of an empty sample")
    index = int(clamp(math.floor(n * q), 0, n - 1))
    return float(sorted_values[index])


def build_histogram(values: np.ndarray, bins: int) -> Tuple[HistogramBin, ...]:
    """
    Equal-width histogram over [min, max].

        bin_size = (max - min) / bins
        index    = min(floor((v - min) / bin_size), bins - 1)
        center   = min + (index + 0.5) * bin_size

    When every value is identical all counts go to bin 0 and every center
    equals that value.
    """
    _require_int("histogram_bins", bins, 1)
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise InvalidConfiguration("Cannot build a histogram of an empty sample")

    lo, hi = float(values.min()), float(values.max())
    with np.errstate(over="ignore", invalid="ignore"):
        bin_size = (hi - lo) / bins
    if not math.isfinite(bin_size):
        raise InvalidConfiguration(
            f"Histogram range [{lo}, {hi}] is not finite")
    if bin_size > 0:
        index = np.floor((values - lo) / bin_size).astype(np.int64)
        index = np.clip(index, 0, bins - 1)
    else:
        index = np.zeros(values.size, dtype=np.int64)

    counts  = np.bincount(index, minlength=bins)
    centers = lo + (np.arange(bins) + 0.5) * bin_size
    return tuple(HistogramBin(float(c), int(k)) for c, k in zip(centers, counts))


# ==============================================================================
# Engine
# ==============================================================================
class MonteCarloEngine:
    """
    Multi-distribution compounding simulator.

    Usage:
        >>> engine = MonteCarloEngine(SimulationConfig(trials=10000, seed=42))
        >>> fund, portfolio = engine.run([fund_dist, portfolio_dist])
        >>> fund.percentiles[0.05]
    """

    def __init__(self, config: SimulationConfig):
        self.config = config

    def _blocks(self) -> List[Tuple[int, int]]:
        c = self.config
        return [(start, min(start + c.chunk_size, c.trials))
                for start in range(0, c.trials, c.chunk_size)]

    def _simulate_block(self, distributions: Sequence[ReturnDistribution],
                        start: int, stop: int,
                        seed_seq: np.random.SeedSequence) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compound trials [start, stop) for every distribution.

        Returns terminal values (n_dist, n) and captured paths
        (n_dist, n_paths, years + 1) for the trials of this block that
        fall below paths_to_capture.
        """
        c = self.config
        n = stop - start
        n_paths = int(clamp(c.paths_to_capture - start, 0, n))

        if c.common_shock:
            shock = RandomNormalSampler(rng=np.random.default_rng(seed_seq))
        else:
            samplers = [
                RandomNormalSampler(d.mean_annual_return, d.annual_std_dev,
                                    rng=np.random.default_rng(s))
                for d, s in zip(distributions, seed_seq.spawn(len(distributions)))
            ]

        values = np.full((len(distributions), n), float(c.initial_value))
        paths = np.empty((len(distributions), n_paths, c.years + 1))
        paths[:, :, 0] = c.initial_value

        for year in range(1, c.years + 1):
            # Overflow is checked on the terminal values once all blocks finish
            with np.errstate(over="ignore", invalid="ignore"):
                if c.common_shock:
                    z = shock.standard(n)
                    for k, d in enumerate(distributions):
                        values[k] *= 1.0 + (d.mean_annual_return + d.annual_std_dev * z)
                else:
                    for k, sampler in enumerate(samplers):
                        values[k] *= 1.0 + sampler.draw(n)
            if n_paths:
                paths[:, :, year] = values[:, :n_paths]

        return values, paths

    @timeit
    def run(self, distributions: Sequence[ReturnDistribution],
            cancel_event=None) -> List[SimulationResult]:
        """
        Simulate every distribution and summarise its terminal values.

        Parameters:
            distributions: One or more ReturnDistribution
            cancel_event: Optional object with is_set() (e.g. threading.Event),
                polled before each block

        Raises:
            InvalidConfiguration: empty or malformed distributions, or
                compounding that overflows to inf / NaN
            SimulationCancelled: cancel_event was set during the run
        """
        distributions = list(distributions)
        if not distributions:
            raise InvalidConfiguration("At least one ReturnDistribution is required")
        for d in distributions:
            if not isinstance(d, ReturnDistribution):
                raise InvalidConfiguration(f"Expected ReturnDistribution, got {d!r}")

        c = self.config
        blocks = self._blocks()
        block_seeds = np.random.SeedSequence(c.seed).spawn(len(blocks))
        terminal = np.empty((len(distributions), c.trials))
        captured = np.empty((len(distributions), c.paths_to_capture, c.years + 1))

        log.info("Simulation start | distributions=%d trials=%d years=%d "
                 "blocks=%d workers=%d", len(distributions), c.trials, c.years,
                 len(blocks), c.n_workers)
        t0 = time.perf_counter()

        def run_block(i: int) -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise SimulationCancelled(
                    f"Simulation cancelled before block {i + 1}/{len(blocks)}")
            start, stop = blocks[i]
            values, paths = self._simulate_block(distributions, start, stop,
                                                 block_seeds[i])
            # Blocks write disjoint slices
            terminal[:, start:stop] = values
            if paths.shape[1]:
                captured[:, start:start + paths.shape[1]] = paths
            log.debug("Block %d/%d done | trials %d-%d", i + 1, len(blocks),
                      start, stop - 1)

        if c.n_workers == 1:
            for i in range(len(blocks)):
                run_block(i)
        else:
            with ThreadPoolExecutor(max_workers=c.n_workers) as pool:
                # list() re-raises the first failure, cancellation included
                list(pool.map(run_block, range(len(blocks))))

        for k, d in enumerate(distributions):
            if not np.isfinite(terminal[k]).all():
                raise InvalidConfiguration(
                    f"Compounding overflowed for distribution {d.name or k!r}: "
                    f"initial_value={c.initial_value}, years={c.years}, "
                    f"mean={d.mean_annual_return}, std_dev={d.annual_std_dev}")

        results = [self._summarise(d, terminal[k], captured[k])
                   for k, d in enumerate(distributions)]
        log.info("Simulation finished in %.3f s", time.perf_counter() - t0)
        return results

    def _summarise(self, distribution: ReturnDistribution,
                   terminal: np.ndarray, paths: np.ndarray) -> SimulationResult:
        c = self.config
        ordered = np.sort(terminal)
        ordered.setflags(write=False)
        sample_paths = tuple(
            tuple(PathPoint(year, float(v)) for year, v in enumerate(row))
            for row in paths
        )
        return SimulationResult(
            distribution=distribution,
            terminal_values=ordered,
            percentiles=MappingProxyType(
                {q: percentile(ordered, q) for q in c.percentiles}),
            histogram=build_histogram(ordered, c.histogram_bins),
            sample_paths=sample_paths,
        )


# ==============================================================================
# Caller-facing Interface
# ==============================================================================
def run_simulation(distributions: Sequence[ReturnDistribution],
                   config: SimulationConfig,
                   cancel_event=None) -> List[SimulationResult]:
    """Run the engine once; every call is independent of the previous ones."""
    return MonteCarloEngine(config).run(distributions, cancel_event=cancel_event)


def compare_results(results: Sequence[SimulationResult]) -> pd.DataFrame:
    """Comparative table: one row per distribution."""
    rows = []
    for r in results:
        row: Dict[str, float] = {
            "distribution": r.name,
            "mean_return": r.distribution.mean_annual_return,
            "std_dev": r.distribution.annual_std_dev,
            "mean_terminal": r.mean(),
        }
        for q, v in r.percentiles.items():
            row[f"p{q * 100:g}"] = v
        row["p95_p5_spread"] = r.percentile(0.95) - r.percentile(0.05)
        rows.append(row)
    return pd.DataFrame(rows).set_index("distribution")
