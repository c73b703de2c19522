"""
Exception types for the carbon leakage engine.

Only malformed input and numerical breakdown are exceptions. Insufficient
data is reported through ``feasible=False`` results, never raised.
"""


class LeakageError(Exception):
    """Base class for all engine errors."""


class InputShapeError(LeakageError, ValueError):
    """Raised for mismatched array lengths or non-numeric observations."""


class DimensionMismatchError(InputShapeError):
    """Raised when matrix operands have incompatible shapes."""

    def __init__(self, message: str, left_shape: tuple, right_shape: tuple):
        self.left_shape = left_shape
        self.right_shape = right_shape
        super().__init__(f"{message}: {left_shape} vs {right_shape}")


class SingularMatrixError(LeakageError, ArithmeticError):
    """Raised when a linear system has a (numerically) zero pivot."""

    def __init__(self, pivot_index: int, pivot_value: float):
        self.pivot_index = pivot_index
        self.pivot_value = pivot_value
        super().__init__(
            f"Singular system: pivot {pivot_index} is {pivot_value:.3e}"
        )
