"""
Frequency & Feasibility Gate.

Decides, from sample counts and calendar years only:
- whether monthly data suffice or must be aggregated to annual
- whether a regression has the minimum sample
- the maximum defensible distributed-lag length
- whether a pre/post CBAM interaction model is estimable

Every check returns a verdict object. Insufficient data is a business
outcome, not an error, so nothing here raises for small samples.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from leakage.data.alignment import MergedPanel, aggregate_to_annual
from leakage.data.periods import in_window, period_label

logger = logging.getLogger(__name__)

DatasetFrequency = Literal["monthly", "annual", "none"]

MIN_REGRESSION_OBS = 20
MONTHLY_OVERLAP_THRESHOLD = 20
MIN_OBS_BASE = 10  # observations required on top of the parameter count
MAX_MONTHLY_LAG = 12
INTERACTION_MIN_PRE = 10
INTERACTION_MIN_POST = 5

# Variables that must all be present for a row to count as overlapping
OVERLAP_VARIABLES = (
    "import_quantity",
    "carbon_price",
    "activity_index",
    "log_import",
    "log_carbon_price",
    "log_activity",
)


@dataclass(frozen=True)
class FeasibilityVerdict:
    """Generic pass/fail verdict for a sample-size requirement."""

    feasible: bool
    reason: str
    n: int
    required: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "feasible": self.feasible,
            "reason": self.reason,
            "n": self.n,
            "required": self.required,
        }

    def summary(self) -> str:
        status = "FEASIBLE" if self.feasible else "NOT FEASIBLE"
        return f"{status}: {self.reason} (n={self.n}, required={self.required})"


@dataclass(frozen=True)
class LagFeasibility:
    """Maximum distributed-lag length supported by the sample."""

    feasible: bool
    max_lag: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"feasible": self.feasible, "max_lag": self.max_lag, "reason": self.reason}

    def summary(self) -> str:
        status = "FEASIBLE" if self.feasible else "NOT FEASIBLE"
        return f"{status}: K={self.max_lag}. {self.reason}"


@dataclass(frozen=True)
class InteractionFeasibility:
    """Pre/post intervention coverage for the interaction model."""

    feasible: bool
    pre_count: int
    post_count: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "feasible": self.feasible,
            "pre_count": self.pre_count,
            "post_count": self.post_count,
            "reason": self.reason,
        }

    def summary(self) -> str:
        status = "FEASIBLE" if self.feasible else "NOT FEASIBLE"
        return f"{status}: {self.reason}"


@dataclass(frozen=True)
class OverlapInfo:
    """Span and count of fully overlapping observations."""

    start: str
    end: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "count": self.count}


@dataclass(frozen=True)
class PreparedDataset:
    """Panel selected for estimation and the frequency it is at."""

    data: MergedPanel
    frequency: DatasetFrequency
    overlap: OverlapInfo | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency,
            "n": len(self.data),
            "overlap": self.overlap.to_dict() if self.overlap else None,
            "message": self.message,
        }


def _overlap_mask(panel: MergedPanel):
    return panel.complete_cases(OVERLAP_VARIABLES)


def detect_overlapping_period(panel: MergedPanel) -> OverlapInfo | None:
    """
    Find the rows where every required variable is present.

    Returns:
        OverlapInfo (first/last overlapping period and count), or None
    """
    mask = _overlap_mask(panel)
    if not mask.any():
        return None

    periods = [p for p, keep in zip(panel.periods, mask) if keep]
    return OverlapInfo(
        start=period_label(periods[0]),
        end=period_label(periods[-1]),
        count=int(mask.sum()),
    )


def prepare_dataset(
    panel: MergedPanel,
    monthly_threshold: int = MONTHLY_OVERLAP_THRESHOLD,
) -> PreparedDataset:
    """
    Choose the estimation frequency and restrict to overlapping rows.

    With fewer than ``monthly_threshold`` overlapping monthly rows, the
    overlapping rows are aggregated to annual frequency and the overlap is
    recomputed on the annual panel.

    Args:
        panel: Merged panel
        monthly_threshold: Minimum monthly overlap to stay monthly

    Returns:
        PreparedDataset with frequency "monthly", "annual" or "none"
    """
    overlap = detect_overlapping_period(panel)
    if overlap is None:
        return PreparedDataset(
            data=panel.subset(_overlap_mask(panel)),
            frequency="none",
            overlap=None,
            message="No overlapping observations found across all required variables.",
        )

    overlapping = panel.subset(_overlap_mask(panel))

    if panel.frequency == "annual":
        return PreparedDataset(
            data=overlapping,
            frequency="annual",
            overlap=overlap,
            message=f"Using annual frequency with {overlap.count} overlapping observations.",
        )

    if overlap.count < monthly_threshold:
        annual = aggregate_to_annual(overlapping)
        annual_overlap = detect_overlapping_period(annual)
        logger.info(
            f"Monthly overlap {overlap.count} < {monthly_threshold}; aggregated to {len(annual)} years"
        )
        return PreparedDataset(
            data=annual,
            frequency="annual",
            overlap=annual_overlap,
            message=(
                f"Monthly data insufficient ({overlap.count} observations). "
                f"Aggregated to annual frequency ({len(annual)} observations)."
            ),
        )

    return PreparedDataset(
        data=overlapping,
        frequency="monthly",
        overlap=overlap,
        message=f"Using monthly frequency with {overlap.count} overlapping observations.",
    )


def check_sample_size(n: int, minimum: int = MIN_REGRESSION_OBS) -> FeasibilityVerdict:
    """Minimum-sample gate for any regression."""
    if n < minimum:
        return FeasibilityVerdict(
            feasible=False,
            reason=f"Insufficient observations (N={n} < {minimum} required for OLS)",
            n=n,
            required=minimum,
        )
    return FeasibilityVerdict(
        feasible=True,
        reason=f"Sample size N={n} meets the minimum of {minimum}",
        n=n,
        required=minimum,
    )


def determine_feasible_lag_length(
    n: int,
    frequency: str,
    min_params: int = 3,
    min_obs: int = MIN_REGRESSION_OBS,
) -> LagFeasibility:
    """
    Largest distributed-lag length K the sample supports.

    Rules:
    - n < min_obs: infeasible
    - annual: K is at most 1 and needs n >= 10 + min_params + 1
    - monthly: largest k (<= 12) with n >= 10 + (k + 1) + 1, then capped
      at 3 when n < 50 and at 6 when n < 100

    Args:
        n: Number of complete observations
        frequency: "monthly" or "annual"
        min_params: Parameter count of the smallest lagged model
        min_obs: Minimum sample for any regression

    Returns:
        LagFeasibility
    """
    min_n_for_lags = MIN_OBS_BASE + min_params

    if n < min_obs:
        return LagFeasibility(
            feasible=False,
            max_lag=0,
            reason="Insufficient observations for regression analysis",
        )

    if frequency == "annual":
        max_lag = 1 if n >= min_n_for_lags + 1 else 0
        return LagFeasibility(
            feasible=max_lag > 0,
            max_lag=max_lag,
            reason=(
                "Insufficient annual observations for lagged models"
                if max_lag == 0
                else "Annual data: maximum lag length K=1"
            ),
        )

    if n < min_n_for_lags + 3:
        return LagFeasibility(
            feasible=False,
            max_lag=0,
            reason="Insufficient observations for lagged models",
        )

    max_lag = 0
    for k in range(1, MAX_MONTHLY_LAG + 1):
        # k lags + current + activity + intercept
        required = MIN_OBS_BASE + (k + 1) + 1
        if n >= required:
            max_lag = k
        else:
            break

    if n < 50:
        max_lag = min(max_lag, 3)
    elif n < 100:
        max_lag = min(max_lag, 6)

    return LagFeasibility(
        feasible=max_lag > 0,
        max_lag=max_lag,
        reason=(
            "Insufficient observations for lagged models"
            if max_lag == 0
            else f"Monthly data: maximum feasible lag length K={max_lag}"
        ),
    )


def count_pre_post(
    panel: MergedPanel,
    cbam_window: tuple[int, int] | None = None,
) -> tuple[int, int]:
    """Rows before the window start, and rows inside the window."""
    window = cbam_window or panel.cbam_window
    years = panel.years
    pre = int((years < window[0]).sum())
    post = int(in_window(years, window).sum())
    return pre, post


def check_interaction_feasibility(
    panel: MergedPanel,
    cbam_window: tuple[int, int] | None = None,
    min_pre: int = INTERACTION_MIN_PRE,
    min_post: int = INTERACTION_MIN_POST,
) -> InteractionFeasibility:
    """
    Check coverage on both sides of the intervention window.

    Needs ``min_pre`` rows before the window and ``min_post`` rows inside it.
    """
    if len(panel) == 0:
        return InteractionFeasibility(
            feasible=False,
            pre_count=0,
            post_count=0,
            reason="No data available",
        )

    pre, post = count_pre_post(panel, cbam_window)
    feasible = pre >= min_pre and post >= min_post

    if feasible:
        reason = f"Sufficient observations: {pre} pre-CBAM, {post} post-CBAM"
    else:
        reason = (
            f"Insufficient CBAM period coverage: {pre} pre-CBAM observations "
            f"(>={min_pre} required), {post} post-CBAM observations (>={min_post} required)"
        )

    return InteractionFeasibility(
        feasible=feasible,
        pre_count=pre,
        post_count=post,
        reason=reason,
    )
