"""Tests for residual models (f(x) = A·x − b, J = k·A)."""

import math

import pytest

from src.engine.errors import DimensionMismatch
from src.engine.matrix import Matrix, Vector
from src.engine.residual import LinearResidualModel, ResidualModel, jacobian, residual


def _model(scale: float = math.sqrt(2.0)) -> LinearResidualModel:
    return LinearResidualModel(
        Matrix([[2.0, 1.0], [3.0, 0.0]]), Vector([3.0, 3.0]), jacobian_scale=scale,
    )


class TestFunctions:

    def test_residual(self) -> None:
        a = Matrix([[2.0, 1.0], [3.0, 0.0]])
        assert residual(a, Vector([3.0, 3.0]), Vector([1.0, 1.0])) == [0.0, 0.0]
        assert residual(a, Vector([3.0, 3.0]), Vector([2.0, 0.0])) == [1.0, 3.0]

    def test_jacobian_scales_coefficients(self) -> None:
        a = Matrix([[2.0, 1.0], [3.0, 0.0]])
        assert jacobian(a, 2.0) == [[4.0, 2.0], [6.0, 0.0]]

    def test_default_scale_is_sqrt2(self) -> None:
        a = Matrix([[1.0]])
        assert jacobian(a)[0, 0] == pytest.approx(math.sqrt(2.0), rel=1e-6)

    def test_residual_shape_mismatch(self) -> None:
        a = Matrix([[2.0, 1.0], [3.0, 0.0]])
        with pytest.raises(DimensionMismatch):
            residual(a, Vector([3.0, 3.0]), Vector([1.0, 1.0, 1.0]))


class TestLinearResidualModel:

    def test_is_residual_model(self) -> None:
        assert isinstance(_model(), ResidualModel)

    def test_dimensions(self) -> None:
        model = LinearResidualModel(Matrix.zeros(4, 5), Vector.zeros(4))
        assert model.n_equations == 4
        assert model.n_parameters == 5

    def test_error_is_squared_norm(self) -> None:
        # f([2, 0]) = [1, 3]
        assert _model().error(Vector([2.0, 0.0])) == 10.0

    def test_jacobian_independent_of_x(self) -> None:
        model = _model(scale=1.0)
        assert model.jacobian(Vector([0.0, 0.0])) == model.jacobian(Vector([5.0, -2.0]))
        assert model.jacobian(Vector([0.0, 0.0])) == model.a

    def test_inputs_are_copied(self) -> None:
        a = Matrix([[1.0]])
        model = LinearResidualModel(a, Vector([1.0]))
        a[0, 0] = 7.0
        assert model.a == [[1.0]]

    def test_bias_length_mismatch_raises(self) -> None:
        with pytest.raises(DimensionMismatch, match="equations"):
            LinearResidualModel(Matrix.zeros(2, 2), Vector.zeros(3))
