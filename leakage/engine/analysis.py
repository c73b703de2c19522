"""
Analysis Runner.

Runs the full carbon leakage workflow on a merged panel:

1. Frequency selection (monthly, or annual aggregation when sparse)
2. Baseline, short and long distributed-lag, and CBAM interaction models
3. Descriptive pre/post fallback when the interaction model is infeasible
4. Summary statistics, log-log elasticities, scatter fit, rolling correlation
5. Methodological notes collected from every verdict

Estimators stay silent. Progress is reported through the module logger
and an optional ``on_event(name, payload)`` callback supplied by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from config.settings import Settings, get_settings
from leakage.data.alignment import MergedPanel
from leakage.design.feasibility import (
    LagFeasibility,
    PreparedDataset,
    determine_feasible_lag_length,
    prepare_dataset,
)
from leakage.engine.estimators import (
    ElasticityEstimate,
    ModelResult,
    PrePostComparison,
    compare_pre_post,
    estimate_baseline_model,
    estimate_elasticity,
    estimate_interaction_model,
    estimate_lagged_model,
)
from leakage.model.descriptive import (
    RollingCorrelation,
    SummaryStats,
    calculate_summary_stats,
    rolling_correlation,
)
from leakage.model.ols import SimpleOLSResult, simple_ols

logger = logging.getLogger(__name__)

EventHook = Callable[[str, dict[str, Any]], None]

SUMMARY_VARIABLES = (
    "import_quantity",
    "log_import",
    "carbon_price",
    "activity_index",
    "log_activity",
)
SCATTER_MIN_POINTS = 10
ELASTICITY_MAX_LAG = 3


@dataclass
class AnalysisReport:
    """Everything produced by one run_analysis call."""

    prepared: PreparedDataset
    lag_feasibility: LagFeasibility
    baseline: ModelResult
    lagged_short: ModelResult
    lagged_long: ModelResult
    interaction: ModelResult
    pre_post: PrePostComparison | None = None
    summary_stats: dict[str, SummaryStats | None] = field(default_factory=dict)
    elasticities: list[ElasticityEstimate] = field(default_factory=list)
    scatter: SimpleOLSResult | None = None
    rolling: list[RollingCorrelation] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def frequency(self) -> str:
        return self.prepared.frequency

    @property
    def models(self) -> list[ModelResult]:
        return [self.baseline, self.lagged_short, self.lagged_long, self.interaction]

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset": self.prepared.to_dict(),
            "lag_feasibility": self.lag_feasibility.to_dict(),
            "models": {
                "baseline": self.baseline.to_dict(),
                "lagged_short": self.lagged_short.to_dict(),
                "lagged_long": self.lagged_long.to_dict(),
                "interaction": self.interaction.to_dict(),
            },
            "pre_post": self.pre_post.to_dict() if self.pre_post else None,
            "summary_stats": {
                name: stats.to_dict() if stats else None
                for name, stats in self.summary_stats.items()
            },
            "elasticities": [e.to_dict() for e in self.elasticities],
            "scatter": self.scatter.to_dict() if self.scatter else None,
            "rolling_correlation": [
                {"index": r.index, "correlation": r.correlation} for r in self.rolling
            ],
            "notes": list(self.notes),
        }


def _emit(on_event: EventHook | None, name: str, payload: dict[str, Any]) -> None:
    logger.debug(f"{name}: {payload}")
    if on_event is not None:
        on_event(name, payload)


def _fit_lagged_models(
    data: MergedPanel,
    frequency: str,
    lag_info: LagFeasibility,
    settings: Settings,
    notes: list[str],
) -> tuple[ModelResult, ModelResult]:
    """Short model at min(short cap, gate K); long model only for monthly data with K >= long lag."""
    methods = {"se_method": settings.se_method, "p_value_method": settings.p_value_method}

    if not (lag_info.feasible and lag_info.max_lag >= 1):
        short = ModelResult.infeasible(
            f"Lagged (K={settings.short_lag_cap})", lag_info.reason, frequency, n=len(data)
        )
        long = ModelResult.infeasible(
            f"Lagged (K={settings.long_lag})", lag_info.reason, frequency, n=len(data)
        )
        return short, long

    k_short = min(settings.short_lag_cap, lag_info.max_lag)
    short = estimate_lagged_model(
        data, k_short, frequency, min_obs=settings.min_regression_obs, **methods
    )
    if not short.feasible:
        notes.append(f"Lagged model (K={k_short}): {short.reason}")

    if lag_info.max_lag >= settings.long_lag and frequency == "monthly":
        long = estimate_lagged_model(
            data, settings.long_lag, frequency, min_obs=settings.min_regression_obs, **methods
        )
        if not long.feasible:
            notes.append(f"Lagged model (K={settings.long_lag}): {long.reason}")
    else:
        long = ModelResult.infeasible(
            f"Lagged (K={settings.long_lag})",
            (
                f"Long lag structures are statistically infeasible with {len(data)} "
                f"{frequency} observations. Maximum feasible lag: K={lag_info.max_lag}"
            ),
            frequency,
            n=len(data),
        )
    return short, long


def run_analysis(
    panel: MergedPanel,
    settings: Settings | None = None,
    on_event: EventHook | None = None,
) -> AnalysisReport:
    """
    Run the full analysis on a merged panel.

    Args:
        panel: Output of align_series
        settings: Thresholds and inference methods; defaults to get_settings()
        on_event: Optional callback receiving (event name, payload dict)

    Returns:
        AnalysisReport. Infeasible models are reported, not raised.
    """
    settings = settings or get_settings()
    methods = {"se_method": settings.se_method, "p_value_method": settings.p_value_method}
    window = settings.cbam_window
    panel = panel.with_window(window)

    prepared = prepare_dataset(panel, settings.monthly_overlap_threshold)
    data = prepared.data
    frequency = prepared.frequency
    notes = [prepared.message]
    _emit(on_event, "dataset_prepared", prepared.to_dict())

    if frequency == "annual":
        notes.append(
            "Models estimated using annual data. Coefficients should be interpreted as annual effects."
        )
    logger.info(f"Estimating on {len(data)} {frequency} observations")

    elasticities = estimate_elasticity(
        data, use_lags=True, max_lags=ELASTICITY_MAX_LAG, **methods
    )

    baseline = estimate_baseline_model(
        data, frequency, cbam_window=window, min_obs=settings.min_regression_obs, **methods
    )
    if not baseline.feasible:
        notes.append(f"Baseline model: {baseline.reason}")
    _emit(on_event, "model_estimated", baseline.to_dict())

    lag_info = determine_feasible_lag_length(
        len(data), frequency, min_obs=settings.min_regression_obs
    )
    notes.append(f"Lagged models: {lag_info.reason}")
    _emit(on_event, "lag_feasibility", lag_info.to_dict())

    lagged_short, lagged_long = _fit_lagged_models(data, frequency, lag_info, settings, notes)
    _emit(on_event, "model_estimated", lagged_short.to_dict())
    _emit(on_event, "model_estimated", lagged_long.to_dict())

    interaction = estimate_interaction_model(
        data,
        frequency,
        cbam_window=window,
        min_obs=settings.min_regression_obs,
        min_pre=settings.interaction_min_pre,
        min_post=settings.interaction_min_post,
        **methods,
    )
    pre_post = None
    if not interaction.feasible:
        notes.append(f"CBAM interaction model: {interaction.reason}")
        pre_post = compare_pre_post(data, window)
    _emit(on_event, "model_estimated", interaction.to_dict())

    summary_stats = {
        name: calculate_summary_stats(data, name) for name in SUMMARY_VARIABLES
    }

    scatter = None
    imports = data.column("import_quantity")
    prices = data.column("carbon_price")
    if len(data) >= SCATTER_MIN_POINTS:
        scatter = simple_ols(imports, prices, p_value_method=settings.p_value_method)

    rolling = []
    if len(data) >= settings.rolling_window:
        rolling = rolling_correlation(prices, imports, settings.rolling_window)

    report = AnalysisReport(
        prepared=prepared,
        lag_feasibility=lag_info,
        baseline=baseline,
        lagged_short=lagged_short,
        lagged_long=lagged_long,
        interaction=interaction,
        pre_post=pre_post,
        summary_stats=summary_stats,
        elasticities=elasticities,
        scatter=scatter,
        rolling=rolling,
        notes=notes,
    )
    feasible = sum(m.feasible for m in report.models)
    logger.info(f"Analysis complete: {feasible}/{len(report.models)} models feasible")
    _emit(on_event, "analysis_complete", {"frequency": frequency, "feasible_models": feasible})
    return report
