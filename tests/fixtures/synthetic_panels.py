"""
Synthetic data generating processes for carbon leakage tests.

Deterministic series with fixed seeds. Each generator returns the
``series`` mapping accepted by align_series.
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def _monthly_index(start: str, n: int) -> pd.PeriodIndex:
    return pd.period_range(start=start, periods=n, freq="M", name="period")


def make_monthly_series(
    n: int = 120,
    start: str = "2015-01",
    beta_price: float = -0.004,
    beta_activity: float = 0.8,
    seed: int = 42,
) -> dict[str, pd.Series]:
    """Monthly imports driven by carbon price and activity.

    P_t  = 5 + trend(0..80) + N(0, 3), floored at 1
    A_t  = 100 * exp(0.002 t + N(0, 0.05))
    ln M_t = 8 + beta_price * P_t + beta_activity * ln A_t + N(0, 0.05)

    Default start and length give 96 pre-CBAM and 24 in-window months.
    """
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    price = np.maximum(5 + np.linspace(0, 80, n) + rng.normal(0, 3, n), 1.0)
    activity = 100 * np.exp(0.002 * t + rng.normal(0, 0.05, n))
    log_import = 8 + beta_price * price + beta_activity * np.log(activity) + rng.normal(0, 0.05, n)
    quantity = np.exp(log_import)
    value = quantity * rng.uniform(400, 600, n)

    index = _monthly_index(start, n)
    return {
        "import_quantity": pd.Series(quantity, index=index),
        "import_value": pd.Series(value, index=index),
        "carbon_price": pd.Series(price, index=index),
        "activity_index": pd.Series(activity, index=index),
    }


def make_sparse_monthly_series(
    n_overlap: int = 15,
    start: str = "2021-01",
    seed: int = 7,
) -> dict[str, pd.Series]:
    """Monthly series whose full overlap is shorter than the monthly threshold.

    Imports and activity cover 36 months from ``start``; the carbon price
    covers only the first ``n_overlap`` of them.
    """
    rng = np.random.default_rng(seed)
    n = 36
    index = _monthly_index(start, n)
    quantity = rng.uniform(800, 1200, n)
    return {
        "import_quantity": pd.Series(quantity, index=index),
        "import_value": pd.Series(quantity * 500, index=index),
        "carbon_price": pd.Series(rng.uniform(60, 90, n_overlap), index=index[:n_overlap]),
        "activity_index": pd.Series(rng.uniform(90, 110, n), index=index),
    }


def make_annual_series(
    start_year: int = 2015,
    end_year: int = 2025,
    seed: int = 3,
) -> dict[str, dict[int, float]]:
    """Annual mappings keyed by integer year.

    The default 2015..2025 span has 8 years before the CBAM window and 3
    inside it.
    """
    rng = np.random.default_rng(seed)
    years = list(range(start_year, end_year + 1))
    n = len(years)
    quantity = rng.uniform(9_000, 14_000, n)
    price = np.maximum(np.linspace(8, 85, n) + rng.normal(0, 2, n), 1.0)
    activity = rng.uniform(95, 105, n)
    return {
        "import_quantity": dict(zip(years, quantity.tolist())),
        "import_value": dict(zip(years, (quantity * 480).tolist())),
        "carbon_price": dict(zip(years, price.tolist())),
        "activity_index": dict(zip(years, activity.tolist())),
    }


def make_import_records(seed: int = 11) -> pd.DataFrame:
    """Partner-level import records for three months and four partners."""
    rng = np.random.default_rng(seed)
    rows = []
    partners = {"CN": 500.0, "IN": 300.0, "TR": 150.0, "UA": 50.0}
    for period in ("2022-01", "2022-02", "2022-03"):
        for partner, base in partners.items():
            qty = base + rng.uniform(-10, 10)
            rows.append({
                "period": period,
                "partner": partner,
                "quantity_tons": qty,
                "value_eur": qty * 450,
            })
    return pd.DataFrame(rows)


def write_panel_csv(path, series: dict[str, pd.Series]) -> None:
    """Write monthly series as the tidy CSV read by the CLI."""
    frame = pd.DataFrame(series)
    frame.index = [f"{p.year}-{p.month:02d}" for p in frame.index]
    frame.index.name = "period"
    frame.to_csv(path)
