"""
Descriptive statistics: summary stats, Pearson and rolling correlation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from leakage.data.alignment import MergedPanel
from leakage.errors import InputShapeError
from leakage.model.ols import as_float_array


@dataclass(frozen=True)
class SummaryStats:
    """Summary statistics over non-missing values."""

    variable: str
    mean: float
    median: float
    std_dev: float  # population
    min: float
    max: float
    n: int

    def to_dict(self) -> dict[str, float | int | str]:
        return {
            "variable": self.variable,
            "mean": self.mean,
            "median": self.median,
            "std_dev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "n": self.n,
        }


@dataclass(frozen=True)
class RollingCorrelation:
    """Correlation of the window ending at ``index``."""

    index: int
    correlation: float


def summarize(values: Sequence, variable: str = "") -> SummaryStats | None:
    """Summary statistics after dropping missing entries; None if empty."""
    arr = as_float_array(values, variable or "values")
    arr = arr[~np.isnan(arr)]
    if arr.size == 0:
        return None

    mean = float(arr.mean())
    return SummaryStats(
        variable=variable,
        mean=mean,
        median=float(np.median(arr)),
        std_dev=float(np.sqrt(np.mean((arr - mean) ** 2))),
        min=float(arr.min()),
        max=float(arr.max()),
        n=int(arr.size),
    )


def calculate_summary_stats(panel: MergedPanel, variable: str) -> SummaryStats | None:
    """
    Summary statistics for one panel variable.

    Args:
        panel: Merged panel
        variable: Column name, e.g. "import_quantity" or "log_import"

    Returns:
        SummaryStats, or None when the variable has no observations
    """
    if variable not in panel.columns:
        raise InputShapeError(f"Unknown panel variable: {variable}")
    return summarize(panel.column(variable), variable)


def correlation(x: Sequence, y: Sequence) -> float:
    """Pearson correlation of two equal-length complete arrays (0 if degenerate)."""
    x_arr = as_float_array(x, "x")
    y_arr = as_float_array(y, "y")
    if x_arr.shape != y_arr.shape:
        raise InputShapeError(f"x and y lengths differ: {len(x_arr)} vs {len(y_arr)}")
    if x_arr.size == 0:
        return 0.0

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    return float(np.sum(dx * dy) / denominator) if denominator > 0 else 0.0


def rolling_correlation(
    x: Sequence,
    y: Sequence,
    window: int = 12,
) -> list[RollingCorrelation]:
    """
    Correlation over a sliding window of fixed size.

    Only windows where every x and y entry is present are emitted; windows
    that would extend before the start, or contain a missing value, are
    skipped rather than padded.
    """
    if window < 2:
        raise InputShapeError(f"window must be at least 2, got {window}")

    x_arr = as_float_array(x, "x")
    y_arr = as_float_array(y, "y")
    if x_arr.shape != y_arr.shape:
        raise InputShapeError(f"x and y lengths differ: {len(x_arr)} vs {len(y_arr)}")

    out = []
    for end in range(window - 1, len(x_arr)):
        xw = x_arr[end - window + 1:end + 1]
        yw = y_arr[end - window + 1:end + 1]
        if np.isnan(xw).any() or np.isnan(yw).any():
            continue
        out.append(RollingCorrelation(index=end, correlation=correlation(xw, yw)))
    return out
