"""
Estimation engine.

Contains:
- estimators.py: baseline, distributed-lag and CBAM interaction models
- analysis.py: end-to-end runner producing an AnalysisReport
"""

from leakage.engine.estimators import (
    ModelResult,
    compare_pre_post,
    estimate_baseline_model,
    estimate_elasticity,
    estimate_interaction_model,
    estimate_lagged_model,
)
from leakage.engine.analysis import AnalysisReport, run_analysis

__all__ = [
    "ModelResult",
    "compare_pre_post",
    "estimate_baseline_model",
    "estimate_elasticity",
    "estimate_interaction_model",
    "estimate_lagged_model",
    "AnalysisReport",
    "run_analysis",
]
