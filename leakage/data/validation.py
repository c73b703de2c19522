"""
Data quality checks for merged panels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from leakage.data.alignment import BASE_VARIABLES, MergedPanel
from leakage.data.periods import period_label

logger = logging.getLogger(__name__)

HIGH_MISSING_PCT = 5.0


@dataclass
class DataQualityReport:
    """Report on data quality issues."""

    source: str
    total_rows: int
    frequency: str
    period_range: tuple[str, str] | None
    missing_values: dict[str, int]
    non_positive_values: dict[str, int]
    warnings: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return not self.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "total_rows": self.total_rows,
            "frequency": self.frequency,
            "period_range": list(self.period_range) if self.period_range else None,
            "missing_values": dict(self.missing_values),
            "non_positive_values": dict(self.non_positive_values),
            "warnings": list(self.warnings),
            "timestamp": self.timestamp.isoformat(),
        }


def build_quality_report(panel: MergedPanel, source: str = "panel") -> DataQualityReport:
    """
    Generate a data quality report for the base variables of a panel.

    Counts missing entries and zero/negative entries (which have no log)
    per variable, and flags variables that are entirely absent.
    """
    frame = panel.frame
    warnings = []

    missing = {}
    non_positive = {}
    for name in BASE_VARIABLES:
        col = frame[name]
        n_missing = int(col.isna().sum())
        if n_missing:
            missing[name] = n_missing
        n_bad = int((col <= 0).sum())
        if n_bad:
            non_positive[name] = n_bad
        if len(col) and n_missing == len(col):
            warnings.append(f"No observations for {name}")

    if missing:
        warnings.append(f"Missing values in columns: {list(missing.keys())}")
    if non_positive:
        warnings.append(f"Zero or negative values (no log defined) in: {list(non_positive.keys())}")

    total_cells = len(frame) * len(BASE_VARIABLES)
    if total_cells:
        pct_missing = sum(missing.values()) / total_cells * 100
        if pct_missing > HIGH_MISSING_PCT:
            warnings.append(f"High overall missing rate: {pct_missing:.1f}%")

    periods = panel.periods
    period_range = (period_label(periods[0]), period_label(periods[-1])) if periods else None
    if not periods:
        warnings.append("Panel is empty")

    report = DataQualityReport(
        source=source,
        total_rows=len(panel),
        frequency=panel.frequency,
        period_range=period_range,
        missing_values=missing,
        non_positive_values=non_positive,
        warnings=warnings,
    )
    logger.debug(f"Quality report for {source}: {len(warnings)} warnings")
    return report


def format_quality_report(report: DataQualityReport) -> str:
    """Plain-text rendering of a quality report."""
    lines = [
        "=" * 60,
        f"Data Quality Report: {report.source}",
        "=" * 60,
        f"Total rows: {report.total_rows:,} ({report.frequency})",
        f"Period range: {report.period_range[0]} to {report.period_range[1]}"
        if report.period_range else "Period range: none",
    ]

    if report.missing_values:
        lines.append("")
        lines.append("Missing values:")
        for col, count in report.missing_values.items():
            pct = count / report.total_rows * 100
            lines.append(f"  - {col}: {count:,} ({pct:.1f}%)")

    if report.non_positive_values:
        lines.append("")
        lines.append("Zero or negative values:")
        for col, count in report.non_positive_values.items():
            lines.append(f"  - {col}: {count:,}")

    if report.warnings:
        lines.append("")
        lines.append("Warnings:")
        for warning in report.warnings:
            lines.append(f"  ! {warning}")

    return "\n".join(lines)
