"""
bond.py — Fixed-Coupon Bond Analytics
=====================================
Implements, per 100 of face value:
  • Present value of the coupon + principal cash flows
  • Macaulay & Modified Duration (in years, whatever the coupon frequency)
  • Convexity (second-order Taylor term)
  • DV01 and current yield
  • Yield-to-Maturity solver (Brent's method)
  • Duration-convexity price change approximation under a yield shock

All functions are pure: an Instrument is immutable and every metric is
recomputed on demand.

Author  : Investment Analytics Engine contributors
Project : Investment Analytics Engine
"""

import math
from dataclasses import dataclass, replace, asdict
from typing import Dict

import numpy as np
import pandas as pd
from scipy.optimize import brentq

from src.exceptions import InvalidInput
from src.utils import get_logger, is_finite

log = get_logger(__name__)

FACE_VALUE = 100.0


# ==============================================================================
# Instrument
# ==============================================================================
@dataclass(frozen=True)
class Instrument:
    """
    A fixed-coupon instrument priced per 100 face value.

    Parameters
    ----------
    coupon_rate       : Annual coupon rate as decimal (e.g. 0.048 = 4.8%)
    maturity_years    : Years to maturity (> 0)
    yield_to_maturity : Annual YTM as decimal
    payments_per_year : Coupon payments per year (1=annual, 2=semi-annual)
    """
    coupon_rate       : float
    maturity_years    : float
    yield_to_maturity : float
    payments_per_year : int = 1

    def __post_init__(self):
        if not is_finite(self.coupon_rate, self.maturity_years,
                         self.yield_to_maturity, self.payments_per_year):
            raise InvalidInput(f"Instrument parameters must be finite, got {self}")
        if int(self.payments_per_year) != self.payments_per_year or self.payments_per_year <= 0:
            raise InvalidInput(
                f"payments_per_year must be a positive integer, got {self.payments_per_year}")
        if self.maturity_years <= 0:
            raise InvalidInput(f"maturity_years must be positive, got {self.maturity_years}")
        if self.coupon_rate < 0:
            raise InvalidInput(f"coupon_rate must be non-negative, got {self.coupon_rate}")
        if self.yield_to_maturity <= -self.payments_per_year:
            raise InvalidInput(
                f"yield_to_maturity must exceed -{self.payments_per_year} "
                f"(degenerate discount base), got {self.yield_to_maturity}")
        periods = self.maturity_years * self.payments_per_year
        if abs(periods - round(periods)) > 1e-9:
            raise InvalidInput(
                f"maturity_years * payments_per_year must be a whole number "
                f"of periods, got {periods}")

    # ── Derived ──────────────────────────────────────────────────────────────
    def coupon_payment(self) -> float:
        """Periodic coupon cash flow: (rate × 100) / frequency."""
        return self.coupon_rate * FACE_VALUE / self.payments_per_year

    def n_periods(self) -> int:
        """Total number of coupon periods."""
        return int(round(self.maturity_years * self.payments_per_year))

    def periodic_yield(self) -> float:
        return self.yield_to_maturity / self.payments_per_year

    # ── Cash Flow Schedule ────────────────────────────────────────────────────
    def cash_flows(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Generate cash flow schedule.

        Returns
        -------
        times : ndarray of shape (n,) — cash flow times in years
        cfs   : ndarray of shape (n,) — cash flow amounts per 100 face
        """
        n     = self.n_periods()
        times = np.arange(1, n + 1) / self.payments_per_year
        cfs   = np.full(n, self.coupon_payment())
        cfs[-1] += FACE_VALUE                          # final: coupon + par
        return times, cfs


# ==============================================================================
# Metrics Container
# ==============================================================================
@dataclass(frozen=True)
class BondMetrics:
    """Derived analytics for one Instrument (never persisted)."""
    price             : float
    macaulay_duration : float
    modified_duration : float
    convexity         : float

    def as_dict(self) -> dict:
        return asdict(self)


# ── Discounting ───────────────────────────────────────────────────────────────
def _discounted_cash_flows(instrument: Instrument) -> tuple[np.ndarray, np.ndarray, float]:
    """Return (period index t, PV of each cash flow, price)."""
    _, cfs  = instrument.cash_flows()
    periods = np.arange(1, len(cfs) + 1, dtype=np.float64)
    with np.errstate(over="ignore", divide="ignore"):
        pv_cfs = cfs / (1.0 + instrument.periodic_yield()) ** periods
    price = float(np.sum(pv_cfs))
    if not math.isfinite(price) or price <= 0:
        raise InvalidInput(
            f"Discounting produced a degenerate price ({price}) for {instrument}")
    return periods, pv_cfs, price


# ==============================================================================
# Closed-form Analytics
# ==============================================================================
def present_value(instrument: Instrument) -> float:
    """
    Price per 100 face value.

        P = Σ CF_t / (1 + y/m)^t ,   t = 1 .. maturity·m
    """
    return _discounted_cash_flows(instrument)[2]


def macaulay_duration(instrument: Instrument) -> float:
    """
    Macaulay Duration — PV-weighted average time to cash flows, in years.

        D_mac = Σ [ (t/m) * PV(CF_t) ] / P

    Time weights are scaled by 1/m so semi-annual instruments are
    not reported in periods.
    """
    periods, pv_cfs, price = _discounted_cash_flows(instrument)
    times = periods / instrument.payments_per_year
    return float(np.dot(times, pv_cfs) / price)


def modified_duration(macaulay: float, ytm: float, payments_per_year: int) -> float:
    """
    Modified Duration — proportional price sensitivity to yield.

        D_mod = D_mac / (1 + y/m)
    """
    if not is_finite(macaulay, ytm, payments_per_year) or payments_per_year <= 0:
        raise InvalidInput(
            f"Invalid duration inputs: macaulay={macaulay}, ytm={ytm}, "
            f"payments_per_year={payments_per_year}")
    if ytm <= -payments_per_year:
        raise InvalidInput(f"ytm must exceed -{payments_per_year}, got {ytm}")
    return macaulay / (1.0 + ytm / payments_per_year)


def convexity(instrument: Instrument) -> float:
    """
    Convexity — second-order price sensitivity (curvature correction).

        C = Σ [ t(t+1)/m² * PV(CF_t) ] / ( P * (1 + y/m)² )

    with t counted in periods; the principal sits at t = maturity·m.
    """
    periods, pv_cfs, price = _discounted_cash_flows(instrument)
    m = instrument.payments_per_year
    weights = periods * (periods + 1.0) / m ** 2
    return float(np.dot(weights, pv_cfs) / (price * (1.0 + instrument.periodic_yield()) ** 2))


def price_change(price: float, modified_duration: float, convexity: float,
                 yield_change: float) -> float:
    """
    Taylor-series approximation of the price change under a yield shock Δy.

        ΔP ≈ -D_mod * Δy * P + 0.5 * C * Δy² * P

    Only meaningful for shocks of a few percentage points; use reprice()
    for an exact figure.
    """
    if not is_finite(price, modified_duration, convexity, yield_change):
        raise InvalidInput(
            f"price_change inputs must be finite: price={price}, "
            f"modified_duration={modified_duration}, convexity={convexity}, "
            f"yield_change={yield_change}")
    first_order  = -modified_duration * yield_change * price
    second_order = 0.5 * convexity * yield_change ** 2 * price
    return first_order + second_order


def reprice(instrument: Instrument, yield_change: float) -> float:
    """Exact price after a parallel yield shift of yield_change."""
    shifted = replace(instrument,
                      yield_to_maturity=instrument.yield_to_maturity + yield_change)
    return present_value(shifted)


def dv01(price: float, modified_duration: float) -> float:
    """
    Dollar Value of 1 Basis Point (DV01).

        DV01 = D_mod × P × 0.0001
    """
    return modified_duration * price * 0.0001


def current_yield(coupon_rate: float, price: float) -> float:
    """Annual coupon per 100 face divided by the quoted price."""
    if not is_finite(coupon_rate, price) or price <= 0:
        raise InvalidInput(f"price must be positive, got {price}")
    return coupon_rate * FACE_VALUE / price


# ── YTM Solver ────────────────────────────────────────────────────────────────
def yield_to_maturity(coupon_rate: float, maturity_years: float, price: float,
                      payments_per_year: int = 1, tol: float = 1e-12) -> float:
    """
    Solve for the annual yield at which present_value equals price.

    Price is monotonically decreasing in yield on (-m, ∞), so a bracket is
    grown upward until the sign changes and Brent's method finishes it.
    """
    if not is_finite(price) or price <= 0:
        raise InvalidInput(f"price must be positive, got {price}")

    def objective(y: float) -> float:
        return present_value(Instrument(coupon_rate, maturity_years, y,
                                        payments_per_year)) - price

    lo = -0.9 * payments_per_year
    hi = 1.0
    if objective(lo) < 0:
        raise InvalidInput(f"price {price} is above the solvable range")
    for _ in range(64):
        if objective(hi) < 0:
            break
        hi *= 2.0
    else:
        raise InvalidInput(f"price {price} is below the solvable range")

    return float(brentq(objective, lo, hi, xtol=tol))


# ==============================================================================
# Caller-facing Interface
# ==============================================================================
def compute_bond_metrics(instrument: Instrument) -> BondMetrics:
    """Price, Macaulay / modified duration and convexity for one instrument."""
    price = present_value(instrument)
    d_mac = macaulay_duration(instrument)
    d_mod = modified_duration(d_mac, instrument.yield_to_maturity,
                              instrument.payments_per_year)
    conv  = convexity(instrument)
    log.debug("Bond metrics | price=%.4f D_mac=%.4f D_mod=%.4f C=%.4f",
              price, d_mac, d_mod, conv)
    return BondMetrics(price=price, macaulay_duration=d_mac,
                       modified_duration=d_mod, convexity=conv)


def bond_summary(instruments: Dict[str, Instrument]) -> pd.DataFrame:
    """Comparative metrics table, one row per labelled instrument."""
    rows = []
    for label, inst in instruments.items():
        m = compute_bond_metrics(inst)
        rows.append({
            "instrument"     : label,
            "coupon_rate_pct": inst.coupon_rate * 100,
            "maturity_yrs"   : inst.maturity_years,
            "frequency"      : inst.payments_per_year,
            "ytm_pct"        : inst.yield_to_maturity * 100,
            "price"          : m.price,
            "macaulay_dur"   : m.macaulay_duration,
            "modified_dur"   : m.modified_duration,
            "convexity"      : m.convexity,
            "dv01"           : dv01(m.price, m.modified_duration),
        })
    return pd.DataFrame(rows).set_index("instrument")
