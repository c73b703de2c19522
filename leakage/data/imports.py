"""
Partner-level import aggregation.

Turns tidy partner-country import records (one row per period and
partner) into the period totals fed to align_series, and ranks the
largest supplier countries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from leakage.data.periods import to_period
from leakage.errors import InputShapeError

RECORD_COLUMNS = ("period", "partner", "quantity_tons", "value_eur")


@dataclass(frozen=True)
class PartnerSummary:
    """Total imports from one partner country."""

    partner: str
    total_quantity: float
    total_value: float
    avg_unit_value: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "partner": self.partner,
            "total_quantity": self.total_quantity,
            "total_value": self.total_value,
            "avg_unit_value": self.avg_unit_value,
        }


def _check_records(records: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in RECORD_COLUMNS if c not in records.columns]
    if missing:
        raise InputShapeError(f"Import records missing columns: {missing}")

    df = records.loc[:, list(RECORD_COLUMNS)].copy()
    for col in ("quantity_tons", "value_eur"):
        if not pd.api.types.is_numeric_dtype(df[col]):
            try:
                df[col] = pd.to_numeric(df[col], errors="raise")
            except (ValueError, TypeError) as e:
                raise InputShapeError(f"Non-numeric values in '{col}'") from e
    return df


def aggregate_imports(records: pd.DataFrame) -> pd.DataFrame:
    """
    Sum partner records to one row per period.

    Args:
        records: DataFrame with columns period, partner, quantity_tons, value_eur

    Returns:
        Period-indexed DataFrame with import_quantity, import_value,
        unit_value and partner_count. Columns keep NaN where no partner
        reported a value for the period.
    """
    df = _check_records(records)
    df["period"] = [to_period(p) for p in df["period"]]

    grouped = df.groupby("period", sort=True)
    totals = pd.DataFrame({
        "import_quantity": grouped["quantity_tons"].sum(min_count=1),
        "import_value": grouped["value_eur"].sum(min_count=1),
        "partner_count": grouped["partner"].nunique(),
    })
    qty = totals["import_quantity"]
    totals["unit_value"] = totals["import_value"] / qty.where(qty > 0)
    totals.index = pd.PeriodIndex(totals.index, name="period")
    return totals


def top_partners(records: pd.DataFrame, limit: int = 10) -> list[PartnerSummary]:
    """
    Rank partner countries by total import quantity.

    Args:
        records: DataFrame with columns period, partner, quantity_tons, value_eur
        limit: Number of partners to return

    Returns:
        PartnerSummary list, largest first
    """
    df = _check_records(records)
    totals = (
        df.groupby("partner")[["quantity_tons", "value_eur"]]
        .sum()
        .sort_values(["quantity_tons", "value_eur"], ascending=False, kind="mergesort")
        .head(limit)
    )

    out = []
    for partner, row in totals.iterrows():
        qty = float(row["quantity_tons"])
        value = float(row["value_eur"])
        out.append(PartnerSummary(
            partner=str(partner),
            total_quantity=qty,
            total_value=value,
            avg_unit_value=value / qty if qty > 0 and not np.isnan(value) else None,
        ))
    return out
