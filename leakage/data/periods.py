"""
Period keys for monthly and annual series.

Keys are pandas Periods so that ordering, year extraction and calendar
lags (period - k) come from pandas rather than from string arithmetic.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from numbers import Integral
from typing import Any, Literal

import pandas as pd

from leakage.errors import InputShapeError

Frequency = Literal["monthly", "annual"]

FREQ_CODES: dict[str, str] = {
    "monthly": "M",
    "annual": "Y",
}

_ANNUAL_RE = re.compile(r"^\s*(\d{4})\s*$")
_MONTHLY_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")


def frequency_of(period: pd.Period) -> Frequency:
    """Return 'monthly' or 'annual' for a Period."""
    code = period.freqstr.upper()
    if code.startswith("M"):
        return "monthly"
    if code.startswith("Y") or code.startswith("A"):
        return "annual"
    raise InputShapeError(f"Unsupported period frequency: {period.freqstr}")


def _check_freq(period: pd.Period, freq: Frequency | None, raw: Any) -> pd.Period:
    if freq is not None and frequency_of(period) != freq:
        raise InputShapeError(f"Period key {raw!r} is not {freq}")
    return period


def _monthly(year: int, month: int, raw: Any) -> pd.Period:
    if not 1 <= month <= 12:
        raise InputShapeError(f"Invalid month in period key {raw!r}")
    return pd.Period(year=year, month=month, freq=FREQ_CODES["monthly"])


def to_period(value: Any, freq: Frequency | None = None) -> pd.Period:
    """
    Coerce a period-like value to a pandas Period.

    Accepted forms:
    - pd.Period with monthly or annual frequency
    - "2021-03" (monthly) or "2021" (annual)
    - (year, month) tuple (monthly)
    - int year (annual)
    - date / datetime / Timestamp (monthly unless freq="annual")

    Args:
        value: The raw key
        freq: Expected frequency; a mismatch raises

    Returns:
        pd.Period

    Raises:
        InputShapeError: for unparseable keys or frequency mismatch
    """
    if isinstance(value, pd.Period):
        frequency_of(value)
        return _check_freq(value, freq, value)

    if isinstance(value, (pd.Timestamp, datetime, date)):
        code = FREQ_CODES[freq or "monthly"]
        return pd.Period(pd.Timestamp(value), freq=code)

    if isinstance(value, tuple):
        if len(value) != 2:
            raise InputShapeError(f"Period tuple must be (year, month): {value!r}")
        year, month = value
        return _check_freq(_monthly(int(year), int(month), value), freq, value)

    if isinstance(value, Integral) and not isinstance(value, bool):
        return _check_freq(pd.Period(year=int(value), freq=FREQ_CODES["annual"]), freq, value)

    if isinstance(value, str):
        m = _MONTHLY_RE.match(value)
        if m:
            return _check_freq(_monthly(int(m.group(1)), int(m.group(2)), value), freq, value)
        m = _ANNUAL_RE.match(value)
        if m:
            return _check_freq(
                pd.Period(year=int(m.group(1)), freq=FREQ_CODES["annual"]), freq, value
            )
        try:
            ts = pd.Timestamp(value)
        except (ValueError, TypeError) as e:
            raise InputShapeError(f"Unparseable period key {value!r}") from e
        return pd.Period(ts, freq=FREQ_CODES[freq or "monthly"])

    raise InputShapeError(f"Unsupported period key type: {type(value).__name__}")


def period_label(period: pd.Period) -> str:
    """'2021-03' for monthly, '2021' for annual."""
    if frequency_of(period) == "monthly":
        return f"{period.year}-{period.month:02d}"
    return str(period.year)


def in_window(year, window: tuple[int, int]):
    """Inclusive calendar-year window test; works on an int or an array of years."""
    start, end = window
    return (year >= start) & (year <= end)
