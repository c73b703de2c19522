"""
Numerical core.

Contains:
- linalg.py: Gaussian elimination, matrix products, standard errors
- inference.py: legacy and exact t-test p-values
- ols.py: simple and multiple OLS
- descriptive.py: summary stats, correlation, rolling correlation
  (imported directly, it depends on leakage.data)
"""

from leakage.model.linalg import invert, mat_mul, mat_vec_mul, solve_linear_system, transpose
from leakage.model.inference import approximate_p_value
from leakage.model.ols import OLSResult, SimpleOLSResult, multiple_ols, simple_ols

__all__ = [
    "invert",
    "mat_mul",
    "mat_vec_mul",
    "solve_linear_system",
    "transpose",
    "approximate_p_value",
    "OLSResult",
    "SimpleOLSResult",
    "multiple_ols",
    "simple_ols",
]
