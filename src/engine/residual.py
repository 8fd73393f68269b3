"""Residual models consumed by the least-squares solver.

The solver only sees ``residual(x)`` and ``jacobian(x)``; everything
model-specific lives behind this interface.
"""

import math
from abc import ABC, abstractmethod

from src.engine.errors import DimensionMismatch
from src.engine.matrix import Matrix, Vector

SQRT2 = math.sqrt(2.0)


class ResidualModel(ABC):
    """f: R^N -> R^M together with its Jacobian."""

    @property
    @abstractmethod
    def n_equations(self) -> int:
        """M, the length of the residual vector."""

    @property
    @abstractmethod
    def n_parameters(self) -> int:
        """N, the length of the parameter vector."""

    @abstractmethod
    def residual(self, x: Vector) -> Vector:
        """Residual vector f(x), length M."""

    @abstractmethod
    def jacobian(self, x: Vector) -> Matrix:
        """∂f_r/∂x_c at x, shape M×N."""

    def error(self, x: Vector) -> float:
        """Squared residual norm, the quantity the solver minimizes."""
        return self.residual(x).norm_squared()


class LinearResidualModel(ResidualModel):
    """f(x) = A·x − b with the constant Jacobian J = k·A."""

    def __init__(
        self,
        a: Matrix,
        b: Vector,
        *,
        jacobian_scale: float = SQRT2,
    ) -> None:
        if b.nrows != a.nrows:
            msg = (
                f"dimension mismatch: A has {a.nrows} equations but b has "
                f"{b.nrows} elements."
            )
            raise DimensionMismatch(msg)
        self._a = a.copy()
        self._b = b.copy()
        self._jacobian = jacobian(self._a, jacobian_scale)

    @property
    def a(self) -> Matrix:
        return self._a.copy()

    @property
    def b(self) -> Vector:
        return self._b.copy()

    @property
    def n_equations(self) -> int:
        return self._a.nrows

    @property
    def n_parameters(self) -> int:
        return self._a.ncols

    def residual(self, x: Vector) -> Vector:
        return residual(self._a, self._b, x)

    def jacobian(self, x: Vector) -> Matrix:  # noqa: ARG002
        # Linear model: independent of x.
        return self._jacobian.copy()


def residual(a: Matrix, b: Vector, x: Vector) -> Vector:
    """A·x − b."""
    return a @ x - b


def jacobian(a: Matrix, scale: float = SQRT2) -> Matrix:
    """k·A."""
    return scale * a
