"""Damped Gauss-Newton / Levenberg-Marquardt least-squares step.

One call performs exactly one linearized step:

    D = JᵗJ + βI
    d = −D⁻¹·Jᵗ·f(x0)
    x1 = x0 + α·d, α = 1, 1/2, 1/4, ... until ‖f(x1)‖² < ‖f(x0)‖²

β is fixed per solver (not adapted trust-region style); β = 0 is plain
Gauss-Newton. If α drops below the floor without a strict decrease the
step is abandoned and x0 is returned unchanged. Callers run their own outer
loop to bound the cost per call.

Based on https://en.wikipedia.org/wiki/Gauss%E2%80%93Newton_algorithm
and https://en.wikipedia.org/wiki/Levenberg%E2%80%93Marquardt_algorithm
"""

import logging
from dataclasses import dataclass

from src.config.settings import get_settings
from src.engine.errors import DimensionMismatch
from src.engine.inverse import invert_exact, normal_matrix
from src.engine.matrix import Matrix, Vector
from src.engine.residual import LinearResidualModel, ResidualModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single damped step."""

    x: Vector
    error_before: float         # ‖f(x0)‖²
    error_after: float          # ‖f(x)‖², equals error_before when not accepted
    alpha: float | None         # accepted step scale, None on no progress
    line_search_trials: int
    accepted: bool


class GaussNewtonSolver:
    """Single-step damped least-squares solver with backtracking line search.

    Model-agnostic: the residual and Jacobian come from a ResidualModel.
    Unset parameters fall back to the configured settings.
    """

    def __init__(
        self,
        beta: float | None = None,
        *,
        initial_alpha: float | None = None,
        shrink: float | None = None,
        alpha_floor: float | None = None,
    ) -> None:
        settings = get_settings()
        self._beta = settings.DAMPING_BETA if beta is None else beta
        self._initial_alpha = (
            settings.LINE_SEARCH_INITIAL_ALPHA if initial_alpha is None else initial_alpha
        )
        self._shrink = settings.LINE_SEARCH_SHRINK if shrink is None else shrink
        self._alpha_floor = (
            settings.LINE_SEARCH_ALPHA_FLOOR if alpha_floor is None else alpha_floor
        )

        if self._beta < 0:
            msg = f"damping beta must be non-negative, got {self._beta}."
            raise ValueError(msg)
        if not 0.0 < self._shrink < 1.0:
            msg = f"shrink must be in (0, 1), got {self._shrink}."
            raise ValueError(msg)
        if not 0.0 < self._alpha_floor < self._initial_alpha:
            msg = (
                f"alpha_floor ({self._alpha_floor}) must be positive and below "
                f"initial_alpha ({self._initial_alpha})."
            )
            raise ValueError(msg)

    @property
    def beta(self) -> float:
        return self._beta

    def descent_direction(self, *, model: ResidualModel, x0: Vector) -> Vector:
        """d = −(JᵗJ + βI)⁻¹·Jᵗ·f(x0).

        Raises:
            SingularMatrix: If the damped normal matrix has no inverse.
        """
        j = model.jacobian(x0)
        d_inv = invert_exact(normal_matrix(j, self._beta))
        return -(d_inv @ (j.transpose() @ model.residual(x0)))

    def step(self, *, model: ResidualModel, x0: Vector) -> StepResult:
        """Take one damped step from x0.

        Returns:
            StepResult; ``x`` equals ``x0`` exactly when no trial step
            reduced the error.

        Raises:
            DimensionMismatch: If x0 does not have N elements.
            SingularMatrix: If the damped normal matrix has no inverse.
        """
        n = model.n_parameters
        if x0.shape != (n, 1):
            msg = f"dimension mismatch: model has {n} parameters but x0 has shape {x0.shape}."
            raise DimensionMismatch(msg)

        error0 = model.error(x0)
        direction = self.descent_direction(model=model, x0=x0)

        alpha = self._initial_alpha
        trials = 0
        while alpha >= self._alpha_floor:
            trials += 1
            x1 = x0 + alpha * direction
            error1 = model.error(x1)
            if error1 < error0:
                logger.debug(
                    "step accepted: alpha=%g trials=%d error %.6g -> %.6g",
                    alpha, trials, error0, error1,
                )
                return StepResult(
                    x=x1,
                    error_before=error0,
                    error_after=error1,
                    alpha=alpha,
                    line_search_trials=trials,
                    accepted=True,
                )
            alpha *= self._shrink

        if error0 == 0.0:
            logger.debug("residual already zero; keeping x0")
        else:
            logger.warning(
                "line search exhausted after %d trials at error %.6g; keeping x0",
                trials, error0,
            )
        return StepResult(
            x=x0.copy(),
            error_before=error0,
            error_after=error0,
            alpha=None,
            line_search_trials=trials,
            accepted=False,
        )

    def iterate(
        self,
        *,
        model: ResidualModel,
        x0: Vector,
        steps: int,
    ) -> list[StepResult]:
        """Run ``steps`` successive single steps, feeding each x forward."""
        if steps < 0:
            msg = f"steps must be non-negative, got {steps}."
            raise ValueError(msg)

        results: list[StepResult] = []
        x = x0
        for _ in range(steps):
            result = self.step(model=model, x0=x)
            results.append(result)
            x = result.x
        return results


def solve_step(
    a: Matrix,
    b: Vector,
    x0: Vector,
    beta: float,
    *,
    jacobian_scale: float | None = None,
) -> Vector:
    """One damped Gauss-Newton step for f(x) = A·x − b, J = k·A.

    Raises:
        DimensionMismatch: If A, b and x0 shapes disagree.
        SingularMatrix: If AᵗA·k² + βI has no inverse.
    """
    if jacobian_scale is None:
        jacobian_scale = get_settings().JACOBIAN_SCALE
    model = LinearResidualModel(a, b, jacobian_scale=jacobian_scale)
    return GaussNewtonSolver(beta).step(model=model, x0=x0).x
