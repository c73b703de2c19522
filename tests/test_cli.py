"""
Tests for the leakage CLI.
"""

import json

import pytest
from typer.testing import CliRunner

from leakage.cli import app, load_panel
from leakage.errors import LeakageError
from tests.fixtures.synthetic_panels import make_monthly_series, write_panel_csv

runner = CliRunner()


@pytest.fixture
def panel_csv(tmp_path):
    path = tmp_path / "panel.csv"
    write_panel_csv(path, make_monthly_series(n=120))
    return path


class TestLoadPanel:
    """Tidy file reading."""

    def test_reads_csv(self, panel_csv):
        panel = load_panel(panel_csv, (2023, 2025))
        assert len(panel) == 120
        assert panel.frequency == "monthly"

    def test_missing_period_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("date,carbon_price\n2021-01,80\n")
        with pytest.raises(LeakageError):
            load_panel(path, (2023, 2025))

    def test_no_known_variables(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("period,gdp\n2021-01,80\n")
        with pytest.raises(LeakageError):
            load_panel(path, (2023, 2025))


class TestCommands:
    """Command exit codes and output."""

    def test_analyze_writes_json(self, panel_csv, tmp_path):
        out = tmp_path / "out" / "report.json"
        result = runner.invoke(app, ["analyze", str(panel_csv), "--json-out", str(out)])
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["dataset"]["frequency"] == "monthly"
        assert data["models"]["interaction"]["feasible"]

    def test_analyze_exact_methods(self, panel_csv):
        result = runner.invoke(
            app, ["analyze", str(panel_csv), "--se-method", "exact", "--p-value-method", "exact"]
        )
        assert result.exit_code == 0, result.output

    def test_analyze_bad_method(self, panel_csv):
        result = runner.invoke(app, ["analyze", str(panel_csv), "--se-method", "robust"])
        assert result.exit_code == 1

    def test_analyze_missing_file(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.csv")])
        assert result.exit_code == 1

    def test_quality(self, panel_csv):
        result = runner.invoke(app, ["quality", str(panel_csv)])
        assert result.exit_code == 0, result.output
        assert "Data Quality Report" in result.output

    def test_lags(self):
        result = runner.invoke(app, ["lags", "60"])
        assert result.exit_code == 0
        assert "K=6" in result.output

    def test_lags_annual(self):
        result = runner.invoke(app, ["lags", "25", "--frequency", "annual"])
        assert result.exit_code == 0
        assert "K=1" in result.output

    def test_lags_unknown_frequency(self):
        result = runner.invoke(app, ["lags", "60", "--frequency", "weekly"])
        assert result.exit_code == 1
