"""Engine error taxonomy.

All engine errors are ValueError subclasses so callers that already guard
numeric inputs with ``except ValueError`` keep working.
"""


class EngineError(ValueError):
    """Base class for kernel and solver failures."""


class DimensionMismatch(EngineError):
    """Operands have incompatible shapes; nothing was computed."""


class SingularMatrix(EngineError):
    """A matrix that must be inverted has no inverse."""
