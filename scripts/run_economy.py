"""Run the toy economy and print the per-tick state.

Usage:
    python -m scripts.run_economy
    python -m scripts.run_economy --ticks 20 --pop 250 --beta 0.01
    python -m scripts.run_economy --ticks 5 --with-inverse-check
"""

from __future__ import annotations

import argparse
import logging
import sys

from src.config.settings import get_settings
from src.economy.economy import Economy, TickReport, labor_system
from src.economy.industry import GOODS, LABORS
from src.engine.errors import SingularMatrix
from src.engine.flow_inverse import compare_inverses
from src.engine.gauss_newton import GaussNewtonSolver


def _print_header(pop: float, ticks: int, beta: float) -> None:
    w = 60
    print("=" * w)
    print("  Labor Allocation Simulation")
    print("=" * w)
    print(f"  Population: {pop:g}")
    print(f"  Ticks:      {ticks}")
    print(f"  Damping:    {beta:g}")


def _print_tick(report: TickReport) -> None:
    print()
    print(f"--- Tick {report.tick} ---")
    print(
        f"  {'Labor':<12} {'Laborers':>10} {'Productivity':>13} {'Limited by':>11}"
    )
    print(
        f"  {'------------':<12} {'----------':>10} {'-------------':>13} {'-----------':>11}"
    )
    for labor in LABORS:
        productivity, limiting = report.productivity.get(labor, (0.0, None))
        print(
            f"  {labor.value:<12} {report.laborers[labor]:>10.3f}"
            f" {productivity:>13.3f} {(limiting.value if limiting else '-'):>11}"
        )
    print(f"  Idle: {report.idle_pct:.1f}% of pop {report.pop:g}")

    print()
    print(
        f"  {'Good':<6} {'Available':>10} {'Labor val':>10} {'Price':>10}"
        f" {'Demand':>10} {'Output':>10}"
    )
    print(
        f"  {'------':<6} {'----------':>10} {'----------':>10} {'----------':>10}"
        f" {'----------':>10} {'----------':>10}"
    )
    for good in GOODS:
        print(
            f"  {good.value:<6} {report.available[good]:>10.3f}"
            f" {report.labor_value[good]:>10.3f} {report.price[good]:>10.3f}"
            f" {report.demand[good]:>10.3f} {report.output[good]:>10.3f}"
        )

    for step in report.solver_steps:
        status = f"alpha={step.alpha:g}" if step.accepted else "no progress"
        print(
            f"  Solver: error {step.error_before:.6g} -> {step.error_after:.6g} ({status})"
        )


def _print_inverse_check(economy: Economy, depth: int, beta: float) -> None:
    a, _, _ = labor_system(economy)
    comparison = compare_inverses(a, depth=depth, beta=beta)
    print(
        f"  Flow inverse (depth {depth}): max deviation {comparison.max_abs_deviation:.6g},"
        f" |A·X - I|² {comparison.residual_norm_squared:.6g}"
    )


def main(argv: list[str] | None = None) -> int:
    """Run the simulation; returns the process exit code."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the labor allocation simulation")
    parser.add_argument("--ticks", type=int, default=100, help="Number of ticks to run")
    parser.add_argument("--pop", type=float, default=settings.POPULATION, help="Population")
    parser.add_argument(
        "--beta", type=float, default=settings.DAMPING_BETA,
        help="Damping added to the normal equations (0 = Gauss-Newton)",
    )
    parser.add_argument(
        "--with-inverse-check", action="store_true",
        help="Compare the flow-based inverse with the exact one each tick",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL.value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.ticks < 0:
        parser.error("--ticks must be non-negative")
    if args.beta < 0:
        parser.error("--beta must be non-negative")

    economy = Economy.create(
        pop=args.pop,
        settings=settings,
        solver=GaussNewtonSolver(args.beta),
    )

    _print_header(economy.pop, args.ticks, args.beta)
    for _ in range(args.ticks):
        try:
            report = economy.tick()
        except SingularMatrix as exc:
            print()
            print(f"  ERROR at tick {economy.ticks}: {exc}")
            print("  Increase --beta to regularize the normal equations.")
            return 1
        _print_tick(report)
        if args.with_inverse_check:
            try:
                _print_inverse_check(economy, settings.APPROX_INVERSE_DEPTH, args.beta)
            except SingularMatrix as exc:
                print(f"  Flow inverse check skipped: {exc}")

    print()
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
