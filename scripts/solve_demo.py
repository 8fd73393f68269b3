"""Two-equation Gauss-Newton demo.

Solves A·x = b for A = [[2, 1], [3, 0]], b = [3, 3] (solution x = [1, 1])
from x0 = [10.4, 0.4], printing x and the squared residual after each step.

Usage:
    python -m scripts.solve_demo
    python -m scripts.solve_demo --steps 10 --beta 0.1
"""

from __future__ import annotations

import argparse
import logging
import sys

from src.config.settings import get_settings
from src.engine.errors import SingularMatrix
from src.engine.gauss_newton import GaussNewtonSolver
from src.engine.matrix import Matrix, Vector
from src.engine.residual import LinearResidualModel

DEMO_A = [[2.0, 1.0], [3.0, 0.0]]
DEMO_B = [3.0, 3.0]
DEMO_X0 = [10.4, 0.4]


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the 2×2 Gauss-Newton demo")
    parser.add_argument("--steps", type=int, default=5, help="Number of solver steps")
    parser.add_argument(
        "--beta", type=float, default=0.0,
        help="Damping added to the normal equations (0 = Gauss-Newton)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL.value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.beta < 0:
        parser.error("--beta must be non-negative")

    model = LinearResidualModel(
        Matrix(DEMO_A), Vector(DEMO_B), jacobian_scale=settings.JACOBIAN_SCALE,
    )
    solver = GaussNewtonSolver(args.beta)

    try:
        results = solver.iterate(model=model, x0=Vector(DEMO_X0), steps=args.steps)
    except SingularMatrix as exc:
        print(f"ERROR: {exc}")
        return 1

    for result in results:
        x0, x1 = result.x
        print(f"[{x0} {x1}] {result.error_after}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
