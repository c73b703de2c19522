"""
Dense linear algebra for small normal-equation systems.

The regressions fitted here have at most ~15 parameters, so the normal
equations are solved directly by Gaussian elimination with partial pivoting
instead of a QR or SVD least-squares routine.

Standard errors come in two flavours:
- legacy: sqrt(mse * |XtX[i, i]|). This ignores the inverse and all
  covariance terms. It is NOT an inferential-grade standard error and is
  kept only so reported figures stay comparable with historical reports.
- exact: sqrt(mse * diag(inv(XtX))).
"""

from __future__ import annotations

import numpy as np

from leakage.errors import DimensionMismatchError, SingularMatrixError

# Pivot tolerance on the row- and column-equilibrated system
PIVOT_TOLERANCE = 1e-12


def _as_matrix(m) -> np.ndarray:
    arr = np.array(m, dtype=float)
    if arr.ndim != 2:
        raise DimensionMismatchError("Expected a 2-D matrix", arr.shape, ("?", "?"))
    return arr


def transpose(m) -> np.ndarray:
    """Return M^T as a new array."""
    return _as_matrix(m).T.copy()


def mat_mul(a, b) -> np.ndarray:
    """Matrix product A @ B."""
    a = _as_matrix(a)
    b = _as_matrix(b)
    if a.shape[1] != b.shape[0]:
        raise DimensionMismatchError("Inner dimensions disagree", a.shape, b.shape)
    return a @ b


def mat_vec_mul(m, v) -> np.ndarray:
    """Row-wise dot product of M with v."""
    m = _as_matrix(m)
    v = np.array(v, dtype=float)
    if v.ndim != 1 or m.shape[1] != v.shape[0]:
        raise DimensionMismatchError("Vector length disagrees with matrix", m.shape, v.shape)
    return m @ v


def _equilibrate(a: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Row then column factors bringing every row and column max of |A| to 1."""
    row = np.max(np.abs(a), axis=1)
    row = 1.0 / np.where(row > 0, row, 1.0)
    col = np.max(np.abs(a * row[:, None]), axis=0)
    col = 1.0 / np.where(col > 0, col, 1.0)
    return row, col


def solve_linear_system(a, b) -> np.ndarray:
    """
    Solve A x = b by Gaussian elimination with partial pivoting.

    Rows and columns are first scaled so that their largest entries are 1;
    regressors on very different scales (EUR values next to 0/1 dummies)
    then do not trip the singularity check. At each step the row with the
    largest absolute entry in the pivot column is swapped into the pivot
    position before elimination.

    Args:
        a: Square coefficient matrix
        b: Right-hand side vector

    Returns:
        Solution vector x

    Raises:
        SingularMatrixError: if a pivot is numerically zero
        DimensionMismatchError: if A is not square or b does not match
    """
    a = _as_matrix(a)
    b = np.array(b, dtype=float)
    n = a.shape[0]
    if a.shape[1] != n:
        raise DimensionMismatchError("Coefficient matrix must be square", a.shape, a.shape)
    if b.ndim != 1 or b.shape[0] != n:
        raise DimensionMismatchError("Right-hand side length disagrees", a.shape, b.shape)

    if n == 0:
        return np.zeros(0)

    # Solve (R A C) y = R b, then x = C y
    row_scale, col_scale = _equilibrate(a)
    aug = np.column_stack([a * row_scale[:, None] * col_scale[None, :], b * row_scale])

    # Forward elimination
    for i in range(n):
        pivot_row = i + int(np.argmax(np.abs(aug[i:, i])))
        if pivot_row != i:
            aug[[i, pivot_row]] = aug[[pivot_row, i]]

        pivot = aug[i, i]
        if abs(pivot) <= PIVOT_TOLERANCE:
            raise SingularMatrixError(i, float(pivot))

        for k in range(i + 1, n):
            factor = aug[k, i] / pivot
            aug[k, i:] -= factor * aug[i, i:]

    # Back substitution
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (aug[i, n] - aug[i, i + 1:n] @ x[i + 1:]) / aug[i, i]

    return x * col_scale


def invert(a) -> np.ndarray:
    """Invert A column by column with solve_linear_system."""
    a = _as_matrix(a)
    n = a.shape[0]
    identity = np.eye(n)
    return np.column_stack([solve_linear_system(a, identity[:, j]) for j in range(n)])


def standard_errors(xtx, mse: float) -> np.ndarray:
    """Legacy diagonal approximation: sqrt(mse * |XtX[i, i]|)."""
    xtx = _as_matrix(xtx)
    return np.sqrt(mse * np.abs(np.diag(xtx)))


def exact_standard_errors(xtx, mse: float) -> np.ndarray:
    """Inverse-based standard errors: sqrt(mse * diag(inv(XtX)))."""
    inv = invert(xtx)
    return np.sqrt(mse * np.abs(np.diag(inv)))
