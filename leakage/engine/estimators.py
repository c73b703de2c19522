"""
Model Estimators for carbon leakage regressions.

Specifications (all OLS with intercept, dependent variable log imports):

    Baseline:     ln M_t = a + b1 P_t + b2 ln A_t + b3 CBAM_t + e_t
    Lagged:       ln M_t = a + sum_{k=0..K} b_k P_{t-k} + g ln A_t + e_t
    Interaction:  ln M_t = a + b1 P_t + b2 (P_t x CBAM_t) + b3 ln A_t + e_t

where M is import volume, P the carbon price (levels), A the activity
index and CBAM the intervention dummy.

Every estimator returns a ModelResult. Small samples and singular designs
come back as ``feasible=False`` with a reason; they are never raised.
Rows are complete cases only, so the reported ``n`` is the effective
sample after filtering.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from leakage.data.alignment import MergedPanel
from leakage.data.periods import in_window
from leakage.design.feasibility import (
    MIN_OBS_BASE,
    MIN_REGRESSION_OBS,
    INTERACTION_MIN_POST,
    INTERACTION_MIN_PRE,
    check_interaction_feasibility,
    check_sample_size,
    determine_feasible_lag_length,
)
from leakage.errors import InputShapeError, SingularMatrixError
from leakage.model.inference import PValueMethod
from leakage.model.ols import OLSResult, SEMethod, multiple_ols

ELASTICITY_MIN_OBS = 10


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CoefficientEstimate:
    """One regression coefficient with its inference."""

    term: str
    estimate: float
    std_error: float
    t_stat: float
    p_value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "estimate": self.estimate,
            "std_error": self.std_error,
            "t_stat": self.t_stat,
            "p_value": self.p_value,
        }


@dataclass(frozen=True)
class ModelResult:
    """
    Fitted (or infeasible) regression.

    Feasible results carry one entry per term in every coefficient tuple;
    infeasible results carry a non-empty reason and no coefficients.
    """

    model: str
    feasible: bool
    reason: str = ""
    frequency: str = "monthly"
    terms: tuple[str, ...] = ()
    coefficients: tuple[float, ...] = ()
    standard_errors: tuple[float, ...] = ()
    t_stats: tuple[float, ...] = ()
    p_values: tuple[float, ...] = ()
    r_squared: float | None = None
    n: int = 0
    max_lag: int | None = None
    pre_count: int | None = None
    post_count: int | None = None

    def __post_init__(self):
        arrays = (self.terms, self.coefficients, self.standard_errors, self.t_stats, self.p_values)
        if self.feasible:
            lengths = {len(a) for a in arrays}
            if len(lengths) != 1 or 0 in lengths:
                raise ValueError(f"{self.model}: feasible result needs equal, non-empty coefficient arrays")
        else:
            if not self.reason:
                raise ValueError(f"{self.model}: infeasible result needs a reason")
            if any(arrays) or self.r_squared is not None:
                raise ValueError(f"{self.model}: infeasible result must not carry estimates")

    @classmethod
    def infeasible(
        cls,
        model: str,
        reason: str,
        frequency: str,
        n: int = 0,
        **extra: Any,
    ) -> ModelResult:
        return cls(model=model, feasible=False, reason=reason, frequency=frequency, n=n, **extra)

    @classmethod
    def from_ols(
        cls,
        model: str,
        terms: Sequence[str],
        ols: OLSResult,
        frequency: str,
        **extra: Any,
    ) -> ModelResult:
        return cls(
            model=model,
            feasible=True,
            frequency=frequency,
            terms=tuple(terms),
            coefficients=ols.coefficients,
            standard_errors=ols.standard_errors,
            t_stats=ols.t_stats,
            p_values=ols.p_values,
            r_squared=ols.r_squared,
            n=ols.n,
            **extra,
        )

    def coefficient(self, term: str) -> CoefficientEstimate:
        """Look up one coefficient by term name."""
        if term not in self.terms:
            raise KeyError(f"{self.model} has no term '{term}' (terms: {list(self.terms)})")
        i = self.terms.index(term)
        return CoefficientEstimate(
            term=term,
            estimate=self.coefficients[i],
            std_error=self.standard_errors[i],
            t_stat=self.t_stats[i],
            p_value=self.p_values[i],
        )

    @property
    def estimates(self) -> list[CoefficientEstimate]:
        return [self.coefficient(t) for t in self.terms]

    @property
    def lag_coefficients(self) -> list[CoefficientEstimate]:
        """Carbon-price coefficients of a lagged model, ordered by lag."""
        return [self.coefficient(t) for t in self.terms if t.startswith("carbon_price_lag")]

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "feasible": self.feasible,
            "reason": self.reason,
            "frequency": self.frequency,
            "coefficients": [e.to_dict() for e in self.estimates],
            "r_squared": self.r_squared,
            "n": self.n,
            "max_lag": self.max_lag,
            "pre_count": self.pre_count,
            "post_count": self.post_count,
        }

    def summary(self) -> str:
        """Plain-text coefficient table."""
        if not self.feasible:
            return f"{self.model}: NOT FEASIBLE - {self.reason}"

        lines = [
            f"{self.model} ({self.frequency}, N={self.n}, R2={self.r_squared:.4f})",
            f"  {'term':<22}{'coef':>12}{'se':>12}{'t':>9}{'p':>9}",
        ]
        for e in self.estimates:
            lines.append(
                f"  {e.term:<22}{e.estimate:>12.5f}{e.std_error:>12.5f}"
                f"{e.t_stat:>9.3f}{e.p_value:>9.4f}"
            )
        return "\n".join(lines)


@dataclass(frozen=True)
class PeriodStats:
    """Descriptive stats for one side of the intervention window."""

    n: int
    avg_imports: float
    avg_price: float
    median_imports: float
    median_price: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "n": self.n,
            "avg_imports": self.avg_imports,
            "avg_price": self.avg_price,
            "median_imports": self.median_imports,
            "median_price": self.median_price,
        }


@dataclass(frozen=True)
class PrePostComparison:
    """Descriptive before/after comparison used when the interaction model is infeasible."""

    pre: PeriodStats
    post: PeriodStats
    import_change_pct: float | None
    price_change_pct: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pre": self.pre.to_dict(),
            "post": self.post.to_dict(),
            "import_change_pct": self.import_change_pct,
            "price_change_pct": self.price_change_pct,
        }


@dataclass(frozen=True)
class ElasticityEstimate:
    """Log-log elasticity of imports to carbon price at one lag."""

    lag: int
    elasticity: float
    se: float
    t_stat: float
    p_value: float
    r_squared: float
    activity_coeff: float
    intercept: float
    n: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "lag": self.lag,
            "elasticity": self.elasticity,
            "se": self.se,
            "t_stat": self.t_stat,
            "p_value": self.p_value,
            "r_squared": self.r_squared,
            "activity_coeff": self.activity_coeff,
            "intercept": self.intercept,
            "n": self.n,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _window(panel: MergedPanel, cbam_window: tuple[int, int] | None) -> tuple[int, int]:
    return cbam_window or panel.cbam_window


def _cbam_dummy(panel: MergedPanel, cbam_window: tuple[int, int]) -> np.ndarray:
    """Intervention dummy as a pure function of each row's year."""
    return in_window(panel.years, cbam_window).astype(float)


def _contemporaneous_mask(panel: MergedPanel) -> np.ndarray:
    """Rows with log imports, a positive carbon price and log activity."""
    price = panel.column("carbon_price")
    return (
        panel.complete_cases(("log_import", "carbon_price", "log_activity"))
        & (np.nan_to_num(price, nan=0.0) > 0)
    )


def _fit(
    model: str,
    terms: Sequence[str],
    y: np.ndarray,
    xs: list[np.ndarray],
    frequency: str,
    se_method: SEMethod,
    p_value_method: PValueMethod,
    **extra: Any,
) -> ModelResult:
    """Run multiple_ols and wrap failures as infeasible results."""
    try:
        ols = multiple_ols(y, xs, se_method=se_method, p_value_method=p_value_method)
    except SingularMatrixError as e:
        return ModelResult.infeasible(
            model, f"Regression estimation failed: {e}", frequency, n=len(y), **extra
        )
    if ols is None:
        return ModelResult.infeasible(
            model, "Regression estimation failed", frequency, n=len(y), **extra
        )
    return ModelResult.from_ols(model, terms, ols, frequency, **extra)


# ---------------------------------------------------------------------------
# Estimators
# ---------------------------------------------------------------------------

def estimate_baseline_model(
    panel: MergedPanel,
    frequency: str | None = None,
    cbam_window: tuple[int, int] | None = None,
    min_obs: int = MIN_REGRESSION_OBS,
    se_method: SEMethod = "legacy",
    p_value_method: PValueMethod = "legacy",
) -> ModelResult:
    """
    Baseline: log imports on carbon price, log activity and the CBAM dummy.

    Args:
        panel: Prepared panel
        frequency: Label for the result; defaults to the panel frequency
        cbam_window: Intervention window; defaults to the panel's
        min_obs: Minimum complete observations
        se_method: "legacy" or "exact" standard errors
        p_value_method: "legacy" or "exact" p-values

    Returns:
        ModelResult with terms intercept, carbon_price, log_activity, cbam_dummy
    """
    frequency = frequency or panel.frequency
    model = "Baseline"

    mask = _contemporaneous_mask(panel)
    n = int(mask.sum())
    verdict = check_sample_size(n, min_obs)
    if not verdict.feasible:
        return ModelResult.infeasible(model, verdict.reason, frequency, n=n)

    dummy = _cbam_dummy(panel, _window(panel, cbam_window))
    return _fit(
        model,
        ("intercept", "carbon_price", "log_activity", "cbam_dummy"),
        panel.column("log_import")[mask],
        [
            panel.column("carbon_price")[mask],
            panel.column("log_activity")[mask],
            dummy[mask],
        ],
        frequency,
        se_method,
        p_value_method,
    )


def estimate_lagged_model(
    panel: MergedPanel,
    max_lags: int = 6,
    frequency: str | None = None,
    min_obs: int = MIN_REGRESSION_OBS,
    se_method: SEMethod = "legacy",
    p_value_method: PValueMethod = "legacy",
) -> ModelResult:
    """
    Distributed-lag model: log imports on carbon price at lags 0..K and log activity.

    K is the requested lag length capped by the feasibility gate (and at
    1 for annual data). A row enters only when the carbon price is present
    and positive at every lag t, t-1, ..., t-K (calendar lags), so the
    effective N shrinks with K.

    Args:
        panel: Prepared panel
        max_lags: Requested K
        frequency: Label for the result; defaults to the panel frequency
        min_obs: Minimum sample for the lag gate
        se_method: "legacy" or "exact" standard errors
        p_value_method: "legacy" or "exact" p-values

    Returns:
        ModelResult with terms intercept, carbon_price_lag0..K, log_activity
    """
    if max_lags < 0:
        raise InputShapeError(f"max_lags must be non-negative, got {max_lags}")

    frequency = frequency or panel.frequency

    n_available = int(panel.complete_cases(("log_import", "carbon_price", "log_activity")).sum())
    gate = determine_feasible_lag_length(n_available, frequency, min_obs=min_obs)

    requested = min(max_lags, 1) if frequency == "annual" else max_lags
    if not gate.feasible:
        return ModelResult.infeasible(
            f"Lagged (K={requested})", gate.reason, frequency, n=n_available, max_lag=requested
        )

    k_max = min(requested, gate.max_lag)
    model = f"Lagged (K={k_max})"
    min_required = MIN_OBS_BASE + k_max + 2

    if n_available < min_required:
        return ModelResult.infeasible(
            model,
            f"Insufficient observations (N={n_available} < {min_required} required "
            f"for K={k_max} lagged model)",
            frequency,
            n=n_available,
            max_lag=k_max,
        )

    lags = [panel.lagged("carbon_price", k) for k in range(k_max + 1)]
    mask = panel.complete_cases(("log_import", "log_activity"))
    for lagged in lags:
        mask = mask & (np.nan_to_num(lagged, nan=0.0) > 0)

    n = int(mask.sum())
    if n < min_required:
        return ModelResult.infeasible(
            model,
            f"Insufficient aligned observations (N={n} < {min_required})",
            frequency,
            n=n,
            max_lag=k_max,
        )

    terms = ["intercept"] + [f"carbon_price_lag{k}" for k in range(k_max + 1)] + ["log_activity"]
    return _fit(
        model,
        terms,
        panel.column("log_import")[mask],
        [lagged[mask] for lagged in lags] + [panel.column("log_activity")[mask]],
        frequency,
        se_method,
        p_value_method,
        max_lag=k_max,
    )


def estimate_interaction_model(
    panel: MergedPanel,
    frequency: str | None = None,
    cbam_window: tuple[int, int] | None = None,
    min_obs: int = MIN_REGRESSION_OBS,
    min_pre: int = INTERACTION_MIN_PRE,
    min_post: int = INTERACTION_MIN_POST,
    se_method: SEMethod = "legacy",
    p_value_method: PValueMethod = "legacy",
) -> ModelResult:
    """
    CBAM interaction: log imports on carbon price, carbon price x CBAM and log activity.

    The interaction coefficient measures whether the price-import
    relationship shifted inside the window. Only estimated when the window
    has enough coverage on both sides; otherwise use compare_pre_post.

    Returns:
        ModelResult with terms intercept, carbon_price, carbon_price_x_cbam, log_activity
    """
    frequency = frequency or panel.frequency
    window = _window(panel, cbam_window)
    model = "CBAM Interaction"

    gate = check_interaction_feasibility(panel, window, min_pre=min_pre, min_post=min_post)
    extra = {"pre_count": gate.pre_count, "post_count": gate.post_count}
    if not gate.feasible:
        return ModelResult.infeasible(model, gate.reason, frequency, **extra)

    mask = _contemporaneous_mask(panel)
    n = int(mask.sum())
    verdict = check_sample_size(n, min_obs)
    if not verdict.feasible:
        return ModelResult.infeasible(model, verdict.reason, frequency, n=n, **extra)

    price = panel.column("carbon_price")[mask]
    dummy = _cbam_dummy(panel, window)[mask]
    return _fit(
        model,
        ("intercept", "carbon_price", "carbon_price_x_cbam", "log_activity"),
        panel.column("log_import")[mask],
        [price, price * dummy, panel.column("log_activity")[mask]],
        frequency,
        se_method,
        p_value_method,
        **extra,
    )


def _period_stats(imports: np.ndarray, prices: np.ndarray) -> PeriodStats:
    return PeriodStats(
        n=int(imports.size),
        avg_imports=float(imports.mean()),
        avg_price=float(prices.mean()),
        median_imports=float(np.median(imports)),
        median_price=float(np.median(prices)),
    )


def _pct_change(before: float, after: float) -> float | None:
    if before == 0 or math.isnan(before):
        return None
    return (after - before) / before * 100


def compare_pre_post(
    panel: MergedPanel,
    cbam_window: tuple[int, int] | None = None,
) -> PrePostComparison | None:
    """
    Descriptive before/inside-window comparison of imports and carbon price.

    Rows need both import quantity and carbon price. Returns None when
    either side is empty.
    """
    window = _window(panel, cbam_window)
    years = panel.years
    imports = panel.column("import_quantity")
    prices = panel.column("carbon_price")
    present = ~np.isnan(imports) & ~np.isnan(prices)

    pre = present & (years < window[0])
    post = present & in_window(years, window)
    if not pre.any() or not post.any():
        return None

    pre_stats = _period_stats(imports[pre], prices[pre])
    post_stats = _period_stats(imports[post], prices[post])
    return PrePostComparison(
        pre=pre_stats,
        post=post_stats,
        import_change_pct=_pct_change(pre_stats.avg_imports, post_stats.avg_imports),
        price_change_pct=_pct_change(pre_stats.avg_price, post_stats.avg_price),
    )


def estimate_elasticity(
    panel: MergedPanel,
    use_lags: bool = False,
    max_lags: int = 3,
    se_method: SEMethod = "legacy",
    p_value_method: PValueMethod = "legacy",
) -> list[ElasticityEstimate]:
    """
    Log-log elasticity of imports to carbon price, controlling for log activity.

    Estimates ln M_t = a + e ln P_{t-l} + g ln A_{t-l} for l = 0 and, with
    ``use_lags``, l = 1..max_lags. A lag is reported only when more than
    ten complete rows remain and the design is not singular.
    """
    y = panel.column("log_import")
    lags = range(0, max_lags + 1) if use_lags else range(0, 1)

    results = []
    for lag in lags:
        x1 = panel.lagged("log_carbon_price", lag)
        x2 = panel.lagged("log_activity", lag)
        mask = ~(np.isnan(y) | np.isnan(x1) | np.isnan(x2))
        if int(mask.sum()) <= ELASTICITY_MIN_OBS:
            continue
        try:
            ols = multiple_ols(
                y[mask], [x1[mask], x2[mask]],
                se_method=se_method, p_value_method=p_value_method,
            )
        except SingularMatrixError:
            continue
        if ols is None:
            continue
        results.append(ElasticityEstimate(
            lag=lag,
            elasticity=ols.coefficients[1],
            se=ols.standard_errors[1],
            t_stat=ols.t_stats[1],
            p_value=ols.p_values[1],
            r_squared=ols.r_squared,
            activity_coeff=ols.coefficients[2],
            intercept=ols.coefficients[0],
            n=ols.n,
        ))
    return results
