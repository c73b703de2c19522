"""
Dataset Alignment Engine.

Merges independently keyed period series (imports, carbon price,
industrial activity) into one panel and derives the indicators used by
the estimators:

- log transforms (defined only for v > 0)
- period-on-period and year-on-year growth (%)
- 3- and 12-row trailing moving averages
- CBAM intervention dummy

The row set is the union of all input periods (sparse union, not
intersection). Missing stays missing: NaN in the frame, None in records.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from leakage.data.periods import FREQ_CODES, Frequency, frequency_of, in_window, period_label, to_period
from leakage.errors import InputShapeError
from leakage.model.ols import as_float_array

logger = logging.getLogger(__name__)


DEFAULT_CBAM_WINDOW: tuple[int, int] = (2023, 2025)

# Canonical input variables
FLOW_VARIABLES = ("import_quantity", "import_value")
LEVEL_VARIABLES = ("carbon_price", "activity_index")
BASE_VARIABLES = ("import_quantity", "import_value", "unit_value", "carbon_price", "activity_index")

# (output column, source column)
LOG_COLUMNS = (
    ("log_import", "import_quantity"),
    ("log_carbon_price", "carbon_price"),
    ("log_activity", "activity_index"),
)
GROWTH_COLUMNS = (
    ("import_growth", "import_quantity"),
    ("value_growth", "import_value"),
    ("carbon_price_growth", "carbon_price"),
)
MOVING_AVERAGE_COLUMNS = (
    ("carbon_price_ma3", "carbon_price", 3),
    ("carbon_price_ma12", "carbon_price", 12),
    ("import_ma3", "import_quantity", 3),
    ("import_ma12", "import_quantity", 12),
)

# Year-on-year lookback in periods
YOY_LOOKBACK: dict[str, int] = {"monthly": 12, "annual": 1}


class MergedPanel:
    """
    Immutable period-indexed panel.

    Rows are strictly increasing by period with no duplicates. The
    underlying frame is never handed out directly: ``frame`` returns a copy.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        frequency: Frequency,
        cbam_window: tuple[int, int] = DEFAULT_CBAM_WINDOW,
    ):
        if not frame.index.is_monotonic_increasing or frame.index.has_duplicates:
            raise InputShapeError("Panel periods must be strictly increasing")
        self._frame = frame
        self._frequency = frequency
        self._cbam_window = cbam_window

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def frequency(self) -> Frequency:
        return self._frequency

    @property
    def cbam_window(self) -> tuple[int, int]:
        return self._cbam_window

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._frame.columns)

    @property
    def periods(self) -> list[pd.Period]:
        return list(self._frame.index)

    @property
    def years(self) -> np.ndarray:
        return np.asarray(self._frame.index.year, dtype=int)

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        if len(self) == 0:
            return f"MergedPanel({self._frequency}, empty)"
        first = period_label(self._frame.index[0])
        last = period_label(self._frame.index[-1])
        return f"MergedPanel({self._frequency}, {first}..{last}, n={len(self)})"

    def column(self, name: str) -> np.ndarray:
        """Copy of one column as float array (NaN = missing)."""
        if name not in self._frame.columns:
            raise InputShapeError(f"Unknown panel variable: {name}")
        return self._frame[name].to_numpy(dtype=float, copy=True)

    def with_window(self, cbam_window: tuple[int, int]) -> MergedPanel:
        """Same rows with the CBAM dummy re-derived for another window."""
        window = _validate_window(cbam_window)
        if window == self._cbam_window:
            return self
        frame = self._frame.copy()
        frame["cbam_dummy"] = in_window(frame["year"].to_numpy(dtype=int), window).astype(int)
        return MergedPanel(frame, self._frequency, window)

    def lagged(self, name: str, lag: int) -> np.ndarray:
        """
        Values of ``name`` at period t - lag for each row t.

        Lags are calendar lags: if period t - lag is not a panel row the
        entry is NaN.
        """
        s = self._frame[name]
        return s.reindex(s.index - lag).to_numpy(dtype=float, copy=True)

    def complete_cases(self, columns: Iterable[str]) -> np.ndarray:
        """Boolean mask of rows where every listed column is present."""
        cols = list(columns)
        missing = [c for c in cols if c not in self._frame.columns]
        if missing:
            raise InputShapeError(f"Unknown panel variables: {missing}")
        return self._frame[cols].notna().all(axis=1).to_numpy(dtype=bool, copy=True)

    def subset(self, mask: np.ndarray) -> MergedPanel:
        """Rows selected by a boolean mask; derived columns are kept as computed."""
        return MergedPanel(self._frame.loc[np.asarray(mask, dtype=bool)].copy(),
                           self._frequency, self._cbam_window)

    def to_records(self) -> list[dict[str, Any]]:
        """Plain dict rows with None for missing values."""
        labels = [period_label(p) for p in self._frame.index]
        cols = {}
        for name in self._frame.columns:
            values = self._frame[name]
            cols[name] = [None if pd.isna(v) else v for v in values.tolist()]
        return [
            {"period": label, **{name: cols[name][i] for name in cols}}
            for i, label in enumerate(labels)
        ]


def _coerce_series(
    name: str,
    data: pd.Series | Mapping[Any, Any],
    freq: Frequency | None,
) -> pd.Series:
    """Turn one input series into a float Series on a PeriodIndex."""
    if isinstance(data, pd.Series):
        keys = list(data.index)
        raw_values = data.tolist()
    elif isinstance(data, Mapping):
        keys = list(data.keys())
        raw_values = list(data.values())
    else:
        raise InputShapeError(
            f"Series '{name}' must be a pandas Series or a mapping, got {type(data).__name__}"
        )

    periods = [to_period(k, freq) for k in keys]
    index = pd.PeriodIndex(periods, name="period") if periods else pd.PeriodIndex(
        [], freq=FREQ_CODES[freq or "monthly"], name="period"
    )
    if index.has_duplicates:
        dupes = sorted({period_label(p) for p in index[index.duplicated()]})
        raise InputShapeError(f"Series '{name}' has duplicate periods: {dupes}")

    values = as_float_array(raw_values, name)
    return pd.Series(values, index=index, name=name, dtype=float)


def _infer_frequency(series: Mapping[str, Any]) -> Frequency | None:
    for data in series.values():
        keys = data.index if isinstance(data, pd.Series) else list(data.keys())
        for key in keys:
            return frequency_of(to_period(key))
    return None


def _growth(s: pd.Series, lookback: int) -> pd.Series:
    """Percent change versus period t - lookback; NaN if either side missing or base is 0."""
    prev = pd.Series(s.reindex(s.index - lookback).to_numpy(dtype=float), index=s.index)
    return (s - prev) / prev.where(prev != 0) * 100


def _safe_log(s: pd.Series) -> pd.Series:
    """Natural log for v > 0, NaN otherwise."""
    return np.log(s.where(s > 0))


def derive_indicators(
    base: pd.DataFrame,
    frequency: Frequency,
    cbam_window: tuple[int, int],
) -> pd.DataFrame:
    """
    Add derived columns to a frame holding the base variables.

    Args:
        base: Period-indexed frame with BASE_VARIABLES columns
        frequency: "monthly" or "annual"
        cbam_window: Inclusive (start_year, end_year)

    Returns:
        New frame with base + derived columns
    """
    out = base.copy()

    qty = out["import_quantity"]
    if out["unit_value"].isna().all():
        out["unit_value"] = out["import_value"] / qty.where(qty > 0)

    for col, src in LOG_COLUMNS:
        out[col] = _safe_log(out[src])

    for col, src in GROWTH_COLUMNS:
        out[col] = _growth(out[src], 1)
    out["import_growth_yoy"] = _growth(qty, YOY_LOOKBACK[frequency])

    for col, src, window in MOVING_AVERAGE_COLUMNS:
        out[col] = out[src].rolling(window=window, min_periods=1).mean()

    years = np.asarray(out.index.year, dtype=int)
    out["year"] = years
    out["cbam_dummy"] = in_window(years, cbam_window).astype(int)

    return out


def _validate_window(cbam_window: tuple[int, int]) -> tuple[int, int]:
    start, end = (int(v) for v in cbam_window)
    if start > end:
        raise InputShapeError(f"CBAM window start {start} is after end {end}")
    return start, end


def align_series(
    series: Mapping[str, pd.Series | Mapping[Any, Any]],
    cbam_window: tuple[int, int] = DEFAULT_CBAM_WINDOW,
    frequency: Frequency | None = None,
) -> MergedPanel:
    """
    Merge period-keyed series into a single panel.

    Args:
        series: Variable name -> Series (period index) or mapping of
            period -> value. Names must be among BASE_VARIABLES.
        cbam_window: Inclusive intervention window in calendar years
        frequency: Expected key frequency; inferred from the first key if None

    Returns:
        MergedPanel over the sorted union of all periods

    Raises:
        InputShapeError: unknown variable, duplicate or mixed-frequency keys,
            non-numeric values
    """
    if not series:
        raise InputShapeError("No series to align")

    unknown = [name for name in series if name not in BASE_VARIABLES]
    if unknown:
        raise InputShapeError(f"Unknown series names: {unknown}; expected {list(BASE_VARIABLES)}")

    window = _validate_window(cbam_window)
    freq = frequency or _infer_frequency(series) or "monthly"

    coerced = {name: _coerce_series(name, data, freq) for name, data in series.items()}

    # Indexed outer join; rows exist where any series has a key
    index = pd.PeriodIndex([], freq=FREQ_CODES[freq], name="period")
    for s in coerced.values():
        index = index.union(s.index)
    index = index.sort_values()

    base = pd.DataFrame(index=index)
    for name in BASE_VARIABLES:
        if name in coerced:
            base[name] = coerced[name].reindex(index)
        else:
            base[name] = np.nan

    frame = derive_indicators(base, freq, window)
    logger.debug(f"Aligned {len(coerced)} series into {len(frame)} {freq} periods")

    return MergedPanel(frame, freq, window)


def aggregate_to_annual(panel: MergedPanel) -> MergedPanel:
    """
    Aggregate a monthly panel to calendar years.

    Flow variables (import quantity, import value) are summed; level
    variables (carbon price, activity index) are averaged. Only present
    values contribute; a year with no values for a variable stays missing.
    Derived columns are recomputed at annual frequency.
    """
    if panel.frequency == "annual":
        return panel

    frame = panel.frame
    grouped = frame[list(BASE_VARIABLES)].groupby(frame.index.year)

    annual = pd.DataFrame(index=grouped.size().index)
    for name in FLOW_VARIABLES:
        annual[name] = grouped[name].sum(min_count=1)
    annual["unit_value"] = np.nan
    for name in LEVEL_VARIABLES:
        annual[name] = grouped[name].mean()

    annual.index = pd.PeriodIndex(
        [pd.Period(year=int(y), freq=FREQ_CODES["annual"]) for y in annual.index],
        freq=FREQ_CODES["annual"],
        name="period",
    )
    annual = annual[list(BASE_VARIABLES)]

    return MergedPanel(
        derive_indicators(annual, "annual", panel.cbam_window),
        "annual",
        panel.cbam_window,
    )
