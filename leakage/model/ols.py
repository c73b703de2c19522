"""
Ordinary least squares on complete cases.

simple_ols: bivariate y = a + b*x via covariance / variance.
multiple_ols: y = b0 + sum(b_j * x_j) via the normal equations
(X'X) b = X'y, solved with leakage.model.linalg.

Missing values (None / NaN) are dropped pairwise (simple) or row-wise
(multiple). Nothing is imputed.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

import numpy as np
import pandas as pd

from leakage.errors import InputShapeError
from leakage.model import linalg
from leakage.model.inference import PValueMethod, approximate_p_value

SEMethod = Literal["legacy", "exact"]


def as_float_array(values: Iterable, name: str = "values") -> np.ndarray:
    """
    Coerce a sequence of observations to a float array with NaN for missing.

    None, NaN and pd.NA are missing. Anything that is not a real number
    (strings included, even numeric-looking ones) raises InputShapeError.
    """
    if isinstance(values, pd.Series):
        if pd.api.types.is_numeric_dtype(values.dtype) and not pd.api.types.is_bool_dtype(values.dtype):
            return values.to_numpy(dtype=float, na_value=np.nan, copy=True)
        values = values.tolist()
    elif isinstance(values, np.ndarray) and values.dtype.kind in "fiu":
        if values.ndim != 1:
            raise InputShapeError(f"{name} must be one-dimensional, got shape {values.shape}")
        return values.astype(float)

    out = []
    for i, v in enumerate(values):
        if v is None or v is pd.NA:
            out.append(math.nan)
        elif isinstance(v, numbers.Real) and not isinstance(v, bool):
            out.append(float(v))
        else:
            raise InputShapeError(f"{name}[{i}] is not numeric: {v!r}")
    return np.array(out, dtype=float)


@dataclass(frozen=True)
class SimpleOLSResult:
    """Bivariate regression y = intercept + slope * x."""

    intercept: float
    slope: float
    r_squared: float
    standard_error: float  # residual standard error
    slope_se: float
    t_stat: float
    p_value: float
    n: int

    def to_dict(self) -> dict[str, float | int]:
        return {
            "intercept": self.intercept,
            "slope": self.slope,
            "r_squared": self.r_squared,
            "standard_error": self.standard_error,
            "slope_se": self.slope_se,
            "t_stat": self.t_stat,
            "p_value": self.p_value,
            "n": self.n,
        }


@dataclass(frozen=True)
class OLSResult:
    """Multiple regression fit. Index 0 is the intercept."""

    coefficients: tuple[float, ...]
    standard_errors: tuple[float, ...]
    t_stats: tuple[float, ...]
    p_values: tuple[float, ...]
    r_squared: float
    mse: float
    df_resid: int
    n: int
    se_method: str = "legacy"
    p_value_method: str = "legacy"


def simple_ols(
    y: Sequence,
    x: Sequence,
    p_value_method: PValueMethod = "legacy",
) -> SimpleOLSResult | None:
    """
    Bivariate OLS on pairwise-complete observations.

    Args:
        y: Dependent variable
        x: Regressor, same length as y
        p_value_method: "legacy" or "exact"

    Returns:
        SimpleOLSResult, or None with fewer than 2 valid pairs or when x
        has no variance.
    """
    y_arr = as_float_array(y, "y")
    x_arr = as_float_array(x, "x")
    if y_arr.shape != x_arr.shape:
        raise InputShapeError(f"y and x lengths differ: {len(y_arr)} vs {len(x_arr)}")

    mask = ~(np.isnan(y_arr) | np.isnan(x_arr))
    y_v = y_arr[mask]
    x_v = x_arr[mask]
    n = int(mask.sum())
    if n < 2:
        return None

    mean_x = x_v.mean()
    mean_y = y_v.mean()
    sxx = float(np.sum((x_v - mean_x) ** 2))
    if sxx == 0:
        return None

    slope = float(np.sum((x_v - mean_x) * (y_v - mean_y)) / sxx)
    intercept = float(mean_y - slope * mean_x)

    resid = y_v - (intercept + slope * x_v)
    ss_res = float(np.sum(resid ** 2))
    ss_tot = float(np.sum((y_v - mean_y) ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

    df = n - 2
    standard_error = math.sqrt(ss_res / df) if df > 0 else math.nan
    slope_se = standard_error / math.sqrt(sxx)
    t_stat = slope / slope_se if slope_se > 0 else 0.0

    return SimpleOLSResult(
        intercept=intercept,
        slope=slope,
        r_squared=r_squared,
        standard_error=standard_error,
        slope_se=slope_se,
        t_stat=t_stat,
        p_value=approximate_p_value(t_stat, df, p_value_method),
        n=n,
    )


def multiple_ols(
    y: Sequence,
    xs: Sequence[Sequence],
    se_method: SEMethod = "legacy",
    p_value_method: PValueMethod = "legacy",
) -> OLSResult | None:
    """
    Multiple OLS with an intercept on row-wise complete cases.

    Args:
        y: Dependent variable (length n)
        xs: Regressors, one sequence of length n per variable
        se_method: "legacy" diagonal approximation or "exact" inverse-based
        p_value_method: "legacy" or "exact"

    Returns:
        OLSResult, or None when fewer than k+1 complete rows remain.

    Raises:
        InputShapeError: on length mismatch or non-numeric entries
        SingularMatrixError: when X'X cannot be solved (collinear regressors)
    """
    y_arr = as_float_array(y, "y")
    columns = [as_float_array(x, f"xs[{j}]") for j, x in enumerate(xs)]
    for j, col in enumerate(columns):
        if col.shape != y_arr.shape:
            raise InputShapeError(
                f"xs[{j}] length {len(col)} differs from y length {len(y_arr)}"
            )

    k = len(columns)
    if len(y_arr) < k + 1:
        return None

    x_mat = np.column_stack([np.ones(len(y_arr))] + columns)
    mask = ~np.isnan(y_arr) & ~np.isnan(x_mat).any(axis=1)
    n = int(mask.sum())
    if n < k + 1:
        return None

    y_v = y_arr[mask]
    x_v = x_mat[mask]

    xt = linalg.transpose(x_v)
    xtx = linalg.mat_mul(xt, x_v)
    xty = linalg.mat_vec_mul(xt, y_v)
    beta = linalg.solve_linear_system(xtx, xty)

    resid = y_v - linalg.mat_vec_mul(x_v, beta)
    ss_res = float(np.sum(resid ** 2))
    ss_tot = float(np.sum((y_v - y_v.mean()) ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

    df = n - k - 1
    mse = ss_res / df if df > 0 else math.nan

    if se_method == "legacy":
        se = linalg.standard_errors(xtx, mse)
    elif se_method == "exact":
        se = linalg.exact_standard_errors(xtx, mse)
    else:
        raise ValueError(f"Unknown standard error method: {se_method}")

    t_stats = tuple(float(b / s) if s > 0 else 0.0 for b, s in zip(beta, se))
    p_values = tuple(approximate_p_value(t, df, p_value_method) for t in t_stats)

    return OLSResult(
        coefficients=tuple(float(b) for b in beta),
        standard_errors=tuple(float(s) for s in se),
        t_stats=t_stats,
        p_values=p_values,
        r_squared=r_squared,
        mse=mse,
        df_resid=df,
        n=n,
        se_method=se_method,
        p_value_method=p_value_method,
    )
