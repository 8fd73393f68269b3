"""Approximate flow-based inverse of a sign-structured coefficient matrix.

Heuristic, not an exact method. Positive entries of a row are read as the
direct contribution weights of that row; negative entries elsewhere in a
column are read as feedback that consumes what the column produced. A unit
of "flow" enters each row, is split evenly over the row's positive entries
(share = flow / Σ positive entries) and accumulated into the result, then
the flow absorbed by each negative entry in those columns is pushed back
through the row that holds it. Truncating at a fixed depth gives a
Neumann-style series Σ(feedback)^k, k ≤ depth.

The approximation is only meaningful for the economy's coefficient
structure. It is used as a diagnostic cross-check against the exact
generalized inverse and never feeds the solver step.

Accumulation is strictly sequential and depth-first so the float32
summation order, and therefore the output, is reproducible.
"""

import logging
from dataclasses import dataclass

import numpy as np

from src.engine.inverse import generalized_inverse
from src.engine.matrix import DTYPE, Matrix

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 5


@dataclass(frozen=True)
class InverseComparison:
    """Approximate vs exact generalized inverse of the same matrix."""

    approximate: Matrix
    exact: Matrix
    max_abs_deviation: float        # max |approx - exact| over all entries
    residual_norm_squared: float    # ‖A·approx − I‖²
    depth: int
    beta: float


def invert_approx(a: Matrix, depth: int = DEFAULT_DEPTH) -> Matrix:
    """Approximate an N×M generalized inverse of an M×N matrix.

    Never fails: rows without positive entries simply contribute nothing.

    Args:
        a: M×N coefficient matrix.
        depth: Number of feedback levels to follow (0 = direct shares only).

    Returns:
        N×M approximate inverse.

    Raises:
        ValueError: If depth is negative.
    """
    if depth < 0:
        msg = f"depth must be non-negative, got {depth}."
        raise ValueError(msg)

    m, n = a.shape
    values = a.to_numpy()
    acc = np.zeros((n, m), dtype=DTYPE)

    def flow(row: int, destrow: int, factor: DTYPE, remaining: int) -> None:
        positive_sum = DTYPE(0.0)
        for value in values[row]:
            if value > 0:
                positive_sum += value
        if positive_sum <= 0:
            return

        share = DTYPE(factor / positive_sum)
        for col in range(n):
            if values[row, col] <= 0:
                continue
            acc[col, destrow] += share
            if remaining > 0:
                for r in range(m):
                    entry = values[r, col]
                    if entry < 0:
                        flow(r, destrow, DTYPE(-entry * share), remaining - 1)

    for seed in range(m):
        flow(seed, seed, DTYPE(1.0), depth)

    return Matrix(acc)


def compare_inverses(
    a: Matrix,
    *,
    depth: int = DEFAULT_DEPTH,
    beta: float = 0.0,
) -> InverseComparison:
    """Measure how far the flow approximation is from the exact inverse.

    Raises:
        SingularMatrix: If AᵗA + βI cannot be inverted.
    """
    approximate = invert_approx(a, depth)
    exact = generalized_inverse(a, beta)

    deviation = (approximate - exact).to_numpy()
    max_abs_deviation = float(np.max(np.abs(deviation))) if deviation.size else 0.0
    residual = a @ approximate - Matrix.identity(a.nrows)

    comparison = InverseComparison(
        approximate=approximate,
        exact=exact,
        max_abs_deviation=max_abs_deviation,
        residual_norm_squared=residual.norm_squared(),
        depth=depth,
        beta=beta,
    )
    logger.debug(
        "flow inverse depth=%d: max deviation %.6g, ‖A·X − I‖² %.6g",
        depth,
        comparison.max_abs_deviation,
        comparison.residual_norm_squared,
    )
    return comparison
