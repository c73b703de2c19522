"""
P-value approximation for regression t-statistics.

Two modes:
- legacy: normal tail via the Abramowitz-Stegun 7.1.26 erf approximation
  for df > 30, and a coarse |t| bucket table for df <= 30. Indicative,
  not exact. Kept as the default so output matches historical reports.
- exact: two-tailed Student-t survival function (scipy.stats.t).
"""

from __future__ import annotations

import math
from typing import Literal

from scipy import stats

PValueMethod = Literal["legacy", "exact"]

# Abramowitz & Stegun 7.1.26
_ERF_A1 = 0.254829592
_ERF_A2 = -0.284496736
_ERF_A3 = 1.421413741
_ERF_A4 = -1.453152027
_ERF_A5 = 1.061405429
_ERF_P = 0.3275911

# (upper bound on |t|, p-value) for df <= 30
LEGACY_T_TABLE: tuple[tuple[float, float], ...] = (
    (0.5, 0.6),
    (1.0, 0.3),
    (1.5, 0.15),
    (2.0, 0.05),
    (2.5, 0.02),
    (3.0, 0.01),
)
LEGACY_T_FLOOR = 0.001
NORMAL_DF_THRESHOLD = 30


def erf_approx(x: float) -> float:
    """Error function, max absolute error ~1.5e-7."""
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)
    t = 1.0 / (1.0 + _ERF_P * x)
    poly = ((((_ERF_A5 * t + _ERF_A4) * t) + _ERF_A3) * t + _ERF_A2) * t + _ERF_A1
    y = 1.0 - poly * t * math.exp(-x * x)
    return sign * y


def normal_cdf(z: float) -> float:
    """Standard normal CDF built on erf_approx."""
    return 0.5 * (1.0 + erf_approx(z / math.sqrt(2.0)))


def legacy_p_value(t_stat: float, df: float) -> float:
    """Two-tailed p-value using the legacy normal / lookup-table scheme."""
    abs_t = abs(t_stat)
    if df > NORMAL_DF_THRESHOLD:
        return 2.0 * (1.0 - normal_cdf(abs_t))

    for bound, p in LEGACY_T_TABLE:
        if abs_t < bound:
            return p
    return LEGACY_T_FLOOR


def exact_p_value(t_stat: float, df: float) -> float:
    """Two-tailed p-value from the Student-t distribution."""
    if df <= 0 or math.isnan(t_stat):
        return math.nan
    return float(2.0 * stats.t.sf(abs(t_stat), df))


def approximate_p_value(
    t_stat: float,
    df: float,
    method: PValueMethod = "legacy",
) -> float:
    """
    Two-tailed p-value for a t-statistic.

    Args:
        t_stat: The t-statistic
        df: Residual degrees of freedom
        method: "legacy" (default) or "exact"

    Returns:
        p-value in [0, 1] (nan for exact mode with df <= 0)
    """
    if method == "legacy":
        return legacy_p_value(t_stat, df)
    if method == "exact":
        return exact_p_value(t_stat, df)
    raise ValueError(f"Unknown p-value method: {method}")
