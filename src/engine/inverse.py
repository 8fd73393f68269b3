"""Exact inverses for the least-squares solver.

The normal-equations matrix D = JᵗJ + βI is inverted by solving D·X = I
with scipy's LU solver rather than forming an explicit adjugate. β = 0 gives
plain Gauss-Newton; β > 0 Tikhonov-regularizes the system so rank-deficient
Jacobians still produce an inverse.
"""

import logging
import warnings

import numpy as np
from scipy import linalg as scipy_linalg

from src.engine.errors import DimensionMismatch, SingularMatrix
from src.engine.matrix import DTYPE, Matrix

logger = logging.getLogger(__name__)


def invert_exact(d: Matrix) -> Matrix:
    """Invert a square matrix.

    Rows and then columns are scaled by powers of two so their largest
    entry lies in [1, 2) before solving. A badly scaled but well-determined
    system is then not mistaken for a singular one. The scaled system counts
    as singular when LAPACK reports a zero pivot or warns that it is
    ill-conditioned (reciprocal condition number below float32 epsilon).

    Args:
        d: N×N matrix, typically the normal-equations matrix.

    Returns:
        N×N inverse, float32.

    Raises:
        DimensionMismatch: If ``d`` is not square.
        SingularMatrix: If ``d`` has an all-zero row or column, the scaled
            system is singular to working precision, or the inverse is not
            finite.
    """
    n, cols = d.shape
    if n != cols:
        msg = f"dimension mismatch: only square matrices can be inverted, got {n}×{cols}."
        raise DimensionMismatch(msg)

    scaled = d.to_numpy()

    # Step 1: Row scaling
    row_max = np.max(np.abs(scaled), axis=1)
    if np.any(row_max == 0):
        msg = f"{n}×{n} matrix is singular: row {int(np.argmin(row_max))} is zero."
        raise SingularMatrix(msg)
    row_factors = np.exp2(-np.floor(np.log2(row_max))).astype(DTYPE)
    scaled = scaled * row_factors[:, np.newaxis]

    # Step 2: Column scaling
    col_max = np.max(np.abs(scaled), axis=0)
    if np.any(col_max == 0):
        msg = f"{n}×{n} matrix is singular: column {int(np.argmin(col_max))} is zero."
        raise SingularMatrix(msg)
    col_factors = np.exp2(-np.floor(np.log2(col_max))).astype(DTYPE)
    scaled = scaled * col_factors[np.newaxis, :]

    # D⁻¹ = C·(R·D·C)⁻¹·R
    with warnings.catch_warnings():
        warnings.simplefilter("error", scipy_linalg.LinAlgWarning)
        try:
            scaled_inverse = scipy_linalg.solve(scaled, np.eye(n, dtype=DTYPE))
        except scipy_linalg.LinAlgError as exc:
            msg = f"{n}×{n} matrix is singular: {exc}"
            raise SingularMatrix(msg) from exc
        except scipy_linalg.LinAlgWarning as exc:
            msg = f"{n}×{n} matrix is singular to working precision: {exc}"
            raise SingularMatrix(msg) from exc

    inverse = col_factors[:, np.newaxis] * np.asarray(scaled_inverse, dtype=DTYPE)
    inverse = inverse * row_factors[np.newaxis, :]
    if not np.all(np.isfinite(inverse)):
        msg = f"{n}×{n} matrix is singular: inverse has non-finite entries."
        raise SingularMatrix(msg)

    return Matrix(inverse)


def normal_matrix(j: Matrix, beta: float) -> Matrix:
    """Damped normal-equations matrix D = JᵗJ + βI."""
    if beta < 0:
        msg = f"damping beta must be non-negative, got {beta}."
        raise ValueError(msg)
    jt = j.transpose()
    return jt @ j + beta * Matrix.identity(j.ncols)


def generalized_inverse(a: Matrix, beta: float = 0.0) -> Matrix:
    """Regularized left generalized inverse (AᵗA + βI)⁻¹Aᵗ, shape N×M.

    This is the exact least-squares solution operator that the flow-based
    approximation is measured against.
    """
    d = normal_matrix(a, beta)
    logger.debug("generalized inverse of %d×%d matrix, beta=%g", a.nrows, a.ncols, beta)
    return invert_exact(d) @ a.transpose()
