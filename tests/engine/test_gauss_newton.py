"""Tests for the damped Gauss-Newton / Levenberg-Marquardt step.

Covers: the 2×2 convergence case, descent guarantee, line-search
exhaustion, singular normal equations, damping, configuration defaults.
"""

import logging

import numpy as np
import pytest

from src.engine.errors import DimensionMismatch, SingularMatrix
from src.engine.gauss_newton import GaussNewtonSolver, StepResult, solve_step
from src.engine.matrix import Matrix, Vector
from src.engine.residual import LinearResidualModel


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _demo_a() -> Matrix:
    return Matrix([[2.0, 1.0], [3.0, 0.0]])


def _demo_b() -> Vector:
    return Vector([3.0, 3.0])


def _demo_x0() -> Vector:
    return Vector([10.4, 0.4])


def _demo_model() -> LinearResidualModel:
    return LinearResidualModel(_demo_a(), _demo_b())


class _AscentModel(LinearResidualModel):
    """Reports the Jacobian with the wrong sign, so d points uphill."""

    def jacobian(self, x: Vector) -> Matrix:
        return -super().jacobian(x)


# ===================================================================
# Concrete 2×2 case: A·x = b has the unique solution [1, 1]
# ===================================================================


class TestConvergence:

    def test_five_steps_strictly_decrease_and_converge(self) -> None:
        solver = GaussNewtonSolver(0.0)
        results = solver.iterate(model=_demo_model(), x0=_demo_x0(), steps=5)

        errors = [results[0].error_before] + [r.error_after for r in results]
        assert all(later < earlier for earlier, later in zip(errors, errors[1:]))
        assert errors[-1] < 1e-2
        np.testing.assert_allclose(results[-1].x.to_numpy(), [1.0, 1.0], atol=0.05)

    def test_initial_error(self) -> None:
        # f(x0) = [18.2, 28.2]
        result = GaussNewtonSolver(0.0).step(model=_demo_model(), x0=_demo_x0())
        assert result.error_before == pytest.approx(18.2**2 + 28.2**2, rel=1e-5)

    def test_full_step_accepted(self) -> None:
        result = GaussNewtonSolver(0.0).step(model=_demo_model(), x0=_demo_x0())
        assert result.accepted
        assert result.alpha == 1.0
        assert result.line_search_trials == 1

    def test_first_step_moves_by_one_over_sqrt2(self) -> None:
        # J = √2·A, so the undamped step covers 1/√2 of the way to [1, 1].
        result = GaussNewtonSolver(0.0).step(model=_demo_model(), x0=_demo_x0())
        expected = np.array([10.4, 0.4]) - (np.array([9.4, -0.6]) / np.sqrt(2.0))
        np.testing.assert_allclose(result.x.to_numpy(), expected, rtol=1e-4)

    def test_solve_step_matches_solver(self) -> None:
        x1 = solve_step(_demo_a(), _demo_b(), _demo_x0(), 0.0)
        result = GaussNewtonSolver(0.0).step(model=_demo_model(), x0=_demo_x0())
        assert isinstance(x1, Vector)
        assert x1 == result.x

    def test_damping_shortens_step(self) -> None:
        undamped = solve_step(_demo_a(), _demo_b(), _demo_x0(), 0.0)
        damped = solve_step(_demo_a(), _demo_b(), _demo_x0(), 10.0)
        model = _demo_model()
        assert model.error(damped) > model.error(undamped)
        assert model.error(damped) < model.error(_demo_x0())


# ===================================================================
# Descent guarantee and line-search exhaustion
# ===================================================================


class TestLineSearch:

    def test_descent_guarantee_random_problems(self) -> None:
        rng = np.random.default_rng(42)
        solver = GaussNewtonSolver(0.01)
        for _ in range(25):
            a = Matrix(rng.normal(size=(3, 2)))
            model = LinearResidualModel(a, Vector(rng.normal(size=3)))
            x0 = Vector(rng.normal(size=2) * 5.0)
            result = solver.step(model=model, x0=x0)
            if result.accepted:
                assert result.error_after < result.error_before
                assert model.error(result.x) < model.error(x0)
            else:
                assert result.x == x0

    def test_exhausted_returns_input_unchanged(self, caplog: pytest.LogCaptureFixture) -> None:
        model = _AscentModel(_demo_a(), _demo_b())
        x0 = _demo_x0()
        with caplog.at_level(logging.WARNING, logger="src.engine.gauss_newton"):
            result = GaussNewtonSolver(0.0).step(model=model, x0=x0)

        assert not result.accepted
        assert result.alpha is None
        assert result.x == x0
        assert result.x is not x0
        assert result.error_after == result.error_before
        # α = 1, 1/2, ..., 1/512; 1/1024 is below the 1e-3 floor.
        assert result.line_search_trials == 10
        assert "line search exhausted" in caplog.text

    def test_zero_residual_keeps_x_without_warning(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        x0 = Vector([1.0, 1.0])
        with caplog.at_level(logging.WARNING, logger="src.engine.gauss_newton"):
            result = GaussNewtonSolver(0.0).step(model=_demo_model(), x0=x0)
        assert not result.accepted
        assert result.x == x0
        assert result.error_before == 0.0
        assert caplog.text == ""

    def test_custom_floor_limits_trials(self) -> None:
        model = _AscentModel(_demo_a(), _demo_b())
        solver = GaussNewtonSolver(0.0, alpha_floor=0.2)
        result = solver.step(model=model, x0=_demo_x0())
        # α = 1, 0.5, 0.25
        assert result.line_search_trials == 3

    def test_accepted_step_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="src.engine.gauss_newton"):
            GaussNewtonSolver(0.0).step(model=_demo_model(), x0=_demo_x0())
        assert "step accepted" in caplog.text


# ===================================================================
# Singular normal equations
# ===================================================================


class TestSingular:
    """A = [[1, 1], [2, 2]] is rank-deficient."""

    def _a(self) -> Matrix:
        return Matrix([[1.0, 1.0], [2.0, 2.0]])

    def test_undamped_raises(self) -> None:
        with pytest.raises(SingularMatrix):
            solve_step(self._a(), _demo_b(), Vector([0.0, 0.0]), 0.0)

    def test_undamped_near_singular_raises(self) -> None:
        a = Matrix([[0.1, 0.3], [0.2, 0.6]])
        with pytest.raises(SingularMatrix):
            solve_step(a, _demo_b(), Vector([0.0, 0.0]), 0.0)

    def test_damped_succeeds(self) -> None:
        x1 = solve_step(self._a(), _demo_b(), Vector([0.0, 0.0]), 0.1)
        assert x1.is_finite()
        assert x1 != Vector([0.0, 0.0])

    def test_damped_step_reduces_error(self) -> None:
        model = LinearResidualModel(self._a(), _demo_b())
        result = GaussNewtonSolver(0.1).step(model=model, x0=Vector([0.0, 0.0]))
        assert result.accepted
        assert result.error_after < result.error_before


# ===================================================================
# Validation and configuration
# ===================================================================


class TestSolverConfiguration:

    def test_x0_dimension_mismatch_raises(self) -> None:
        with pytest.raises(DimensionMismatch, match="parameters"):
            GaussNewtonSolver(0.0).step(model=_demo_model(), x0=Vector([1.0, 2.0, 3.0]))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"beta": -0.1},
            {"shrink": 1.5},
            {"shrink": 0.0},
            {"alpha_floor": 2.0},
            {"alpha_floor": 0.0},
        ],
    )
    def test_invalid_parameters_raise(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            GaussNewtonSolver(**kwargs)

    def test_beta_defaults_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DAMPING_BETA", "0.25")
        assert GaussNewtonSolver().beta == 0.25

    def test_default_beta(self) -> None:
        assert GaussNewtonSolver().beta == 0.001

    def test_iterate_zero_steps(self) -> None:
        assert GaussNewtonSolver(0.0).iterate(model=_demo_model(), x0=_demo_x0(), steps=0) == []

    def test_iterate_negative_steps_raises(self) -> None:
        with pytest.raises(ValueError):
            GaussNewtonSolver(0.0).iterate(model=_demo_model(), x0=_demo_x0(), steps=-1)

    def test_step_result_is_frozen(self) -> None:
        result = GaussNewtonSolver(0.0).step(model=_demo_model(), x0=_demo_x0())
        assert isinstance(result, StepResult)
        with pytest.raises(AttributeError):
            result.accepted = False  # type: ignore[misc]
