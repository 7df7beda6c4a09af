"""
Investment Analytics Engine - Case Study Run
============================================

Demonstrates: bond duration / convexity for the two case-study bonds,
yield solving from quoted prices, allocation returns, and the Monte Carlo
comparison of the balanced fund against the diversified portfolio.

Run from project root:
    python main.py [--trials N] [--years N] [--seed N] [--workers N]

Author  : Investment Analytics Engine contributors
Project : Investment Analytics Engine
"""

import argparse

from src.bond import (compute_bond_metrics, current_yield, dv01, price_change,
                      reprice, yield_to_maturity, bond_summary)
from src.config import CONFIG
from src.monte_carlo import run_simulation, compare_results
from src.portfolio import (weighted_return, real_return, future_value,
                           portfolio_volatility)
from src.utils import configure_logging, format_millions


def header(t):
    print(f"\n{'='*70}\n  {t}\n{'='*70}")


def parse_args(argv=None):
    sim = CONFIG.simulation
    p = argparse.ArgumentParser(description="Investment analytics case study")
    p.add_argument("--trials",  type=int, default=sim.trials)
    p.add_argument("--years",   type=int, default=sim.years)
    p.add_argument("--seed",    type=int, default=sim.seed)
    p.add_argument("--workers", type=int, default=sim.n_workers)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(CONFIG.log_level, CONFIG.log_dir)
    cs   = CONFIG.case_study

    # --- 1. BONDS ---
    header("1. BOND ANALYTICS (per 100 face)")
    bonds = {"Government 10Y": cs.government_bond,
             "Corporate 7Y":   cs.corporate_bond}
    print(bond_summary(bonds).round(4).to_string())

    for label, inst, quoted in [
            ("Government 10Y", cs.government_bond, cs.government_bond_price),
            ("Corporate 7Y",   cs.corporate_bond,  cs.corporate_bond_price)]:
        ytm = yield_to_maturity(inst.coupon_rate, inst.maturity_years, quoted,
                                inst.payments_per_year)
        print(f"\n  {label}: quoted {quoted:.2f} -> YTM {ytm:.4%}, "
              f"current yield {current_yield(inst.coupon_rate, quoted):.2%}")

        m = compute_bond_metrics(inst)
        print(f"    DV01: {dv01(m.price, m.modified_duration):.4f}")
        for shock in (-0.02, -0.01, 0.01, 0.02):
            approx = price_change(m.price, m.modified_duration, m.convexity, shock)
            exact  = reprice(inst, shock) - m.price
            print(f"    Δy={shock:+.2%}: approx ΔP={approx:+.4f}  exact ΔP={exact:+.4f}")

    # --- 2. ALLOCATION ---
    header("2. ALLOCATION RETURNS")
    nominal = weighted_return(cs.allocation, cs.nominal_returns)
    real    = real_return(nominal, cs.inflation)
    initial = CONFIG.simulation.initial_value
    print(f"  Weighted nominal return: {nominal:.2%}")
    print(f"  Real return (π={cs.inflation:.1%}): {real:.2%}")
    print(f"  Volatility (uncorrelated): "
          f"{portfolio_volatility(cs.allocation, cs.asset_std_devs):.2%}")
    for name, r in cs.nominal_returns.items():
        fv = future_value(initial, r, args.years)
        print(f"  FV {name:<16} {format_millions(fv)}")

    # --- 3. MONTE CARLO ---
    header("3. MONTE CARLO SIMULATION")
    cfg = CONFIG.simulation.to_simulation_config(
        trials=args.trials, years=args.years, seed=args.seed,
        n_workers=args.workers)
    print(f"\n  trials={cfg.trials:,}, years={cfg.years}, "
          f"initial={format_millions(cfg.initial_value)}")
    results = run_simulation([cs.fund_distribution, cs.portfolio_distribution], cfg)
    print(compare_results(results).round(0).to_string())

    for r in results:
        print(f"\n  {r.name}: P(loss) = {r.probability_below(cfg.initial_value):.2%}")
        for q, v in r.percentiles.items():
            print(f"    P{q*100:g}: {format_millions(v)}")

    header("ANALYSIS COMPLETE")
    return results


if __name__ == "__main__":
    main()
