"""
Data layer: period keys, alignment, import aggregation, quality reports.
"""

from leakage.data.alignment import MergedPanel, aggregate_to_annual, align_series
from leakage.data.imports import PartnerSummary, aggregate_imports, top_partners
from leakage.data.validation import DataQualityReport, build_quality_report

__all__ = [
    "MergedPanel",
    "aggregate_to_annual",
    "align_series",
    "PartnerSummary",
    "aggregate_imports",
    "top_partners",
    "DataQualityReport",
    "build_quality_report",
]
