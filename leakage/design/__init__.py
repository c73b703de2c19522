"""
Frequency and feasibility gate.
"""

from leakage.design.feasibility import (
    check_interaction_feasibility,
    check_sample_size,
    detect_overlapping_period,
    determine_feasible_lag_length,
    prepare_dataset,
)

__all__ = [
    "check_interaction_feasibility",
    "check_sample_size",
    "detect_overlapping_period",
    "determine_feasible_lag_length",
    "prepare_dataset",
]
