"""Fixed-dimension matrix/vector kernel.

Matrices are float32 value objects whose shape is fixed when they are built.
Every operation checks operand shapes before computing and returns a new
matrix; nothing is resized, padded or truncated. Shape errors surface as
DimensionMismatch instead of numpy broadcasting.

Row and column views hold a reference to their source matrix and read it
lazily on each iteration.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from numbers import Real
from typing import Any

import numpy as np

from src.engine.errors import DimensionMismatch

DTYPE = np.float32


def _shape_str(shape: tuple[int, ...]) -> str:
    return "×".join(str(dim) for dim in shape)


def _check_dims(rows: int, cols: int) -> None:
    if rows < 0 or cols < 0:
        msg = f"dimension mismatch: negative shape {rows}×{cols}."
        raise DimensionMismatch(msg)


def _pair(index: object) -> tuple[int, int]:
    if not isinstance(index, tuple) or len(index) != 2:
        msg = f"matrix index must be a (row, column) pair, got {index!r}; use row(r) for a whole row."
        raise TypeError(msg)
    return index


class Matrix:
    """Dense R×C float32 matrix with a fixed shape.

    Products use ``@``; ``*`` is reserved for scalar scaling, which
    commutes (``k * A == A * k``).
    """

    __slots__ = ("_data",)

    # Keep numpy scalars from broadcasting over us; defer to __rmul__ etc.
    __array_ufunc__ = None

    def __init__(self, data: Any, *, shape: tuple[int, int] | None = None) -> None:
        array = self._coerce(data)
        if shape is not None and array.shape != tuple(shape):
            msg = (
                f"dimension mismatch: expected {_shape_str(tuple(shape))}, "
                f"got {_shape_str(array.shape)}."
            )
            raise DimensionMismatch(msg)
        self._data = array

    @staticmethod
    def _coerce(data: Any) -> np.ndarray:
        try:
            array = np.array(data, dtype=DTYPE)
        except ValueError as exc:
            msg = "dimension mismatch: rows must all have the same length."
            raise DimensionMismatch(msg) from exc
        if array.ndim != 2:
            msg = f"dimension mismatch: a matrix needs a 2-D buffer, got {array.ndim}-D."
            raise DimensionMismatch(msg)
        return array

    @classmethod
    def _from_array(cls, array: np.ndarray) -> Matrix:
        """Wrap an already-owned float32 array without copying."""
        obj = cls.__new__(cls)
        obj._data = array
        return obj

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def zeros(cls, rows: int, cols: int) -> Matrix:
        _check_dims(rows, cols)
        return Matrix._from_array(np.zeros((rows, cols), dtype=DTYPE))

    @classmethod
    def identity(cls, n: int) -> Matrix:
        _check_dims(n, n)
        return Matrix._from_array(np.eye(n, dtype=DTYPE))

    @classmethod
    def from_generator(
        cls, rows: int, cols: int, f: Callable[[int, int], float]
    ) -> Matrix:
        """Build a matrix with entry (r, c) = f(r, c).

        ``f`` is called exactly rows × cols times, in row-major order.
        """
        result = Matrix.zeros(rows, cols)
        for r in range(rows):
            for c in range(cols):
                result._data[r, c] = f(r, c)
        return result

    def copy(self) -> Matrix:
        return type(self)._from_array(self._data.copy())

    # ------------------------------------------------------------------
    # Shape and access
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, int]:
        return self._data.shape

    @property
    def nrows(self) -> int:
        return self._data.shape[0]

    @property
    def ncols(self) -> int:
        return self._data.shape[1]

    def __getitem__(self, index: tuple[int, int]) -> float:
        r, c = _pair(index)
        return float(self._data[r, c])

    def __setitem__(self, index: tuple[int, int], value: float) -> None:
        r, c = _pair(index)
        self._data[r, c] = value

    def row(self, r: int) -> RowView:
        if not 0 <= r < self.nrows:
            msg = f"row {r} out of range for {_shape_str(self.shape)} matrix."
            raise IndexError(msg)
        return RowView(self, r)

    def column(self, c: int) -> ColumnView:
        if not 0 <= c < self.ncols:
            msg = f"column {c} out of range for {_shape_str(self.shape)} matrix."
            raise IndexError(msg)
        return ColumnView(self, c)

    def __iter__(self) -> Iterator[Any]:
        """Iterate over rows."""
        for r in range(self.nrows):
            yield RowView(self, r)

    def __len__(self) -> int:
        return self.nrows

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()

    def tolist(self) -> list[Any]:
        return self._data.tolist()

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _check_same_shape(self, other: Matrix, op: str) -> None:
        if self.shape != other.shape:
            msg = (
                f"dimension mismatch: cannot {op} {_shape_str(self.shape)} "
                f"and {_shape_str(other.shape)}."
            )
            raise DimensionMismatch(msg)

    def __add__(self, other: object) -> Matrix:
        if not isinstance(other, Matrix):
            return NotImplemented
        self._check_same_shape(other, "add")
        return type(self)._from_array(self._data + other._data)

    def __sub__(self, other: object) -> Matrix:
        if not isinstance(other, Matrix):
            return NotImplemented
        self._check_same_shape(other, "subtract")
        return type(self)._from_array(self._data - other._data)

    def __neg__(self) -> Matrix:
        return type(self)._from_array(-self._data)

    def __mul__(self, other: object) -> Matrix:
        if not isinstance(other, Real):
            return NotImplemented
        return type(self)._from_array(self._data * DTYPE(other))

    __rmul__ = __mul__

    def __matmul__(self, other: object) -> Matrix:
        if not isinstance(other, Matrix):
            return NotImplemented
        if self.ncols != other.nrows:
            msg = (
                f"dimension mismatch: cannot multiply {_shape_str(self.shape)} "
                f"by {_shape_str(other.shape)}."
            )
            raise DimensionMismatch(msg)
        product = self._data @ other._data
        if isinstance(other, Vector):
            return Vector._from_array(product)
        return Matrix._from_array(product)

    def transpose(self) -> Matrix:
        return Matrix._from_array(self._data.T.copy())

    @property
    def T(self) -> Matrix:  # noqa: N802
        return self.transpose()

    def norm_squared(self) -> float:
        """Sum of squared entries."""
        return float(np.sum(self._data * self._data, dtype=DTYPE))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._data)))

    # ------------------------------------------------------------------
    # Comparison / display
    # ------------------------------------------------------------------

    def _comparable(self, other: object) -> np.ndarray | None:
        if isinstance(other, Matrix):
            return other._data
        try:
            return np.asarray(other, dtype=DTYPE)
        except (TypeError, ValueError):
            return None

    def __eq__(self, other: object) -> bool:
        """Exact element-wise equality; shapes must match."""
        other_data = self._comparable(other)
        if other_data is None:
            return NotImplemented
        return self.shape == other_data.shape and bool(
            np.array_equal(self._data, other_data)
        )

    __hash__ = None  # mutable via __setitem__

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.tolist()!r})"


class Vector(Matrix):
    """An R×1 matrix; accepts flat sequences and single-index access."""

    __slots__ = ()

    def __init__(self, data: Any, *, length: int | None = None) -> None:
        array = self._coerce_column(data)
        if length is not None and array.shape[0] != length:
            msg = (
                f"dimension mismatch: expected a vector of {length} elements, "
                f"got {array.shape[0]}."
            )
            raise DimensionMismatch(msg)
        self._data = array

    @staticmethod
    def _coerce_column(data: Any) -> np.ndarray:
        try:
            array = np.array(data, dtype=DTYPE)
        except ValueError as exc:
            msg = "dimension mismatch: a vector needs a flat sequence of numbers."
            raise DimensionMismatch(msg) from exc
        if array.ndim == 1:
            return array.reshape(-1, 1)
        if array.ndim == 2 and array.shape[1] == 1:
            return array
        msg = f"dimension mismatch: a vector needs R×1 data, got {_shape_str(array.shape)}."
        raise DimensionMismatch(msg)

    @classmethod
    def zeros(cls, length: int) -> Vector:  # type: ignore[override]
        _check_dims(length, 1)
        return Vector._from_array(np.zeros((length, 1), dtype=DTYPE))

    @classmethod
    def from_generator(  # type: ignore[override]
        cls, length: int, f: Callable[[int, int], float]
    ) -> Vector:
        """Build a vector with element r = f(r, 0)."""
        result = Vector.zeros(length)
        for r in range(length):
            result._data[r, 0] = f(r, 0)
        return result

    def __getitem__(self, index: int | tuple[int, int]) -> float:
        if isinstance(index, tuple):
            return super().__getitem__(index)
        return float(self._data[index, 0])

    def __setitem__(self, index: int | tuple[int, int], value: float) -> None:
        if isinstance(index, tuple):
            super().__setitem__(index, value)
        else:
            self._data[index, 0] = value

    def __iter__(self) -> Iterator[float]:
        for value in self._data[:, 0]:
            yield float(value)

    def __len__(self) -> int:
        return self._data.shape[0]

    def _comparable(self, other: object) -> np.ndarray | None:
        other_data = super()._comparable(other)
        if other_data is not None and other_data.ndim == 1:
            return other_data.reshape(-1, 1)
        return other_data

    def zip_map(self, other: Vector, f: Callable[[float, float], float]) -> Vector:
        self._check_same_shape(other, "zip")
        return Vector.from_generator(len(self), lambda r, _: f(self[r], other[r]))

    def component_mul(self, other: Vector) -> Vector:
        self._check_same_shape(other, "multiply element-wise")
        return Vector._from_array(self._data * other._data)

    def to_numpy(self) -> np.ndarray:
        return self._data[:, 0].copy()

    def tolist(self) -> list[float]:
        return self._data[:, 0].tolist()


class _LineView(Sequence):
    """Read-only, lazily evaluated line of a matrix."""

    __slots__ = ("_matrix", "_index")

    def __init__(self, matrix: Matrix, index: int) -> None:
        self._matrix = matrix
        self._index = index

    @property
    def matrix(self) -> Matrix:
        return self._matrix

    @property
    def index(self) -> int:
        return self._index

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


class RowView(_LineView):
    """Row ``index`` of a matrix, read on demand."""

    __slots__ = ()

    def __len__(self) -> int:
        return self._matrix.ncols

    def __getitem__(self, c: int) -> float:  # type: ignore[override]
        if not 0 <= c < len(self):
            raise IndexError(c)
        return self._matrix[self._index, c]

    def __iter__(self) -> Iterator[float]:
        for c in range(len(self)):
            yield self._matrix[self._index, c]


class ColumnView(_LineView):
    """Column ``index`` of a matrix, read on demand."""

    __slots__ = ()

    def __len__(self) -> int:
        return self._matrix.nrows

    def __getitem__(self, r: int) -> float:  # type: ignore[override]
        if not 0 <= r < len(self):
            raise IndexError(r)
        return self._matrix[r, self._index]

    def __iter__(self) -> Iterator[float]:
        for r in range(len(self)):
            yield self._matrix[r, self._index]
