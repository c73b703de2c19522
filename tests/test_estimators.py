"""
Tests for the baseline, lagged and interaction estimators.
"""

import numpy as np
import pytest
import statsmodels.api as sm

from leakage.data.alignment import align_series
from leakage.engine.estimators import (
    ModelResult,
    compare_pre_post,
    estimate_baseline_model,
    estimate_elasticity,
    estimate_interaction_model,
    estimate_lagged_model,
)
from leakage.errors import InputShapeError
from tests.fixtures.synthetic_panels import make_annual_series, make_monthly_series


@pytest.fixture
def monthly_panel():
    return align_series(make_monthly_series(n=120))


@pytest.fixture
def short_annual_panel():
    return align_series(make_annual_series(2015, 2025))


class TestModelResult:
    """Result invariants."""

    def test_feasible_needs_equal_lengths(self):
        with pytest.raises(ValueError):
            ModelResult(
                model="x", feasible=True, terms=("a", "b"), coefficients=(1.0,),
                standard_errors=(1.0,), t_stats=(1.0,), p_values=(0.5,), r_squared=0.1,
            )

    def test_feasible_needs_coefficients(self):
        with pytest.raises(ValueError):
            ModelResult(model="x", feasible=True)

    def test_infeasible_needs_reason(self):
        with pytest.raises(ValueError):
            ModelResult(model="x", feasible=False)

    def test_infeasible_carries_no_estimates(self):
        with pytest.raises(ValueError):
            ModelResult(model="x", feasible=False, reason="r", coefficients=(1.0,))

    def test_infeasible_constructor(self):
        result = ModelResult.infeasible("Baseline", "too small", "monthly", n=3)
        assert not result.feasible
        assert result.coefficients == ()
        assert result.r_squared is None
        assert "NOT FEASIBLE" in result.summary()


class TestBaselineModel:
    """ln M = a + b1 P + b2 ln A + b3 CBAM."""

    def test_feasible_on_dense_monthly(self, monthly_panel):
        result = estimate_baseline_model(monthly_panel)
        assert result.feasible
        assert result.terms == ("intercept", "carbon_price", "log_activity", "cbam_dummy")
        assert result.n == 120
        assert result.frequency == "monthly"
        assert 0.0 <= result.r_squared <= 1.0

    def test_matches_statsmodels(self, monthly_panel):
        result = estimate_baseline_model(monthly_panel, se_method="exact", p_value_method="exact")
        frame = monthly_panel.frame
        x = sm.add_constant(frame[["carbon_price", "log_activity", "cbam_dummy"]].to_numpy(dtype=float))
        fit = sm.OLS(frame["log_import"].to_numpy(), x).fit()
        np.testing.assert_allclose(result.coefficients, fit.params, rtol=1e-6)
        np.testing.assert_allclose(result.standard_errors, fit.bse, rtol=1e-6)

    def test_recovers_price_effect(self, monthly_panel):
        price = estimate_baseline_model(monthly_panel).coefficient("carbon_price")
        assert price.estimate == pytest.approx(-0.004, abs=0.003)

    def test_deterministic(self, monthly_panel):
        assert estimate_baseline_model(monthly_panel) == estimate_baseline_model(monthly_panel)

    def test_small_sample_infeasible(self):
        panel = align_series(make_monthly_series(n=19))
        result = estimate_baseline_model(panel)
        assert not result.feasible
        assert "N=19" in result.reason
        assert result.n == 19

    def test_rows_without_positive_price_excluded(self):
        series = make_monthly_series(n=30, start="2022-01")
        series["carbon_price"].iloc[0] = 0.0
        series["carbon_price"].iloc[1] = np.nan
        result = estimate_baseline_model(align_series(series))
        assert result.n == 28

    def test_singular_design_is_infeasible(self):
        # all rows before the window: the CBAM dummy is constant zero
        panel = align_series(make_monthly_series(n=60, start="2015-01"))
        result = estimate_baseline_model(panel)
        assert not result.feasible
        assert "Regression estimation failed" in result.reason

    def test_unknown_term_raises(self, monthly_panel):
        with pytest.raises(KeyError):
            estimate_baseline_model(monthly_panel).coefficient("carbon_price_lag1")


class TestLaggedModel:
    """Distributed lags of the carbon price."""

    def test_lag_terms_and_sample(self, monthly_panel):
        result = estimate_lagged_model(monthly_panel, max_lags=6)
        assert result.feasible
        assert result.max_lag == 6
        assert result.terms[0] == "intercept"
        assert result.terms[-1] == "log_activity"
        assert [c.term for c in result.lag_coefficients] == [f"carbon_price_lag{k}" for k in range(7)]
        assert result.n == 114

    def test_lag_capped_by_gate(self):
        panel = align_series(make_monthly_series(n=60))
        result = estimate_lagged_model(panel, max_lags=12)
        assert result.max_lag == 6
        assert result.model == "Lagged (K=6)"

    def test_annual_caps_at_one(self):
        panel = align_series(make_annual_series(1995, 2025))
        result = estimate_lagged_model(panel, max_lags=3)
        assert result.feasible
        assert result.max_lag == 1
        assert result.n == 30

    def test_small_sample_infeasible(self, short_annual_panel):
        result = estimate_lagged_model(short_annual_panel, max_lags=3)
        assert not result.feasible
        assert result.reason

    def test_gap_drops_rows(self):
        series = make_monthly_series(n=120)
        series["carbon_price"].iloc[50] = np.nan
        result = estimate_lagged_model(align_series(series), max_lags=2)
        # row 50 and the two rows that need it as a lag
        assert result.n == 120 - 2 - 3

    def test_negative_lags_rejected(self, monthly_panel):
        with pytest.raises(InputShapeError):
            estimate_lagged_model(monthly_panel, max_lags=-1)


class TestInteractionModel:
    """Price x CBAM interaction and its descriptive fallback."""

    def test_feasible_on_dense_monthly(self, monthly_panel):
        result = estimate_interaction_model(monthly_panel)
        assert result.feasible
        assert result.terms == ("intercept", "carbon_price", "carbon_price_x_cbam", "log_activity")
        assert (result.pre_count, result.post_count) == (96, 24)

    def test_short_history_falls_back(self, short_annual_panel):
        result = estimate_interaction_model(short_annual_panel)
        assert not result.feasible
        assert (result.pre_count, result.post_count) == (8, 3)

        comparison = compare_pre_post(short_annual_panel)
        assert comparison.pre.n == 8
        assert comparison.post.n == 3
        assert comparison.post.avg_price > comparison.pre.avg_price
        assert comparison.price_change_pct > 0

    def test_pre_post_none_without_post_rows(self):
        panel = align_series(make_annual_series(2010, 2020))
        assert compare_pre_post(panel) is None

    def test_to_dict(self, monthly_panel):
        data = estimate_interaction_model(monthly_panel).to_dict()
        assert data["feasible"]
        assert [c["term"] for c in data["coefficients"]][2] == "carbon_price_x_cbam"


class TestElasticity:
    """Log-log elasticities by lag."""

    def test_lags_reported(self, monthly_panel):
        estimates = estimate_elasticity(monthly_panel, use_lags=True, max_lags=3)
        assert [e.lag for e in estimates] == [0, 1, 2, 3]
        assert [e.n for e in estimates] == [120, 119, 118, 117]

    def test_contemporaneous_only(self, monthly_panel):
        assert len(estimate_elasticity(monthly_panel)) == 1

    def test_needs_more_than_ten_rows(self):
        panel = align_series(make_monthly_series(n=10))
        assert estimate_elasticity(panel) == []
