"""
CLI for the carbon leakage alignment and estimation engine.
"""

import json
import logging
import math
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from leakage.data.alignment import BASE_VARIABLES, MergedPanel, align_series
from leakage.errors import LeakageError

app = typer.Typer(
    name="leakage",
    help="Carbon leakage time-series alignment and estimation engine",
)
console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging with rich output."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _fmt(value: Optional[float], digits: int = 4) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "-"
    return f"{value:.{digits}f}"


def load_panel(path: Path, cbam_window: tuple[int, int]) -> MergedPanel:
    """
    Read a tidy CSV or parquet file into a merged panel.

    The file needs a ``period`` column ("2021-03" or "2021") and any of
    the canonical variable columns. Other columns are ignored.
    """
    if path.suffix.lower() == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path, dtype={"period": str})

    if "period" not in df.columns:
        raise LeakageError(f"{path} has no 'period' column")

    present = [c for c in BASE_VARIABLES if c in df.columns]
    if not present:
        raise LeakageError(f"{path} has none of the variables {list(BASE_VARIABLES)}")

    series = {
        name: dict(zip(df["period"].tolist(), df[name].tolist()))
        for name in present
    }
    return align_series(series, cbam_window=cbam_window)


def _read_or_exit(path: Path, cbam_window: tuple[int, int]) -> MergedPanel:
    try:
        return load_panel(path, cbam_window)
    except (OSError, LeakageError, ValueError) as e:
        console.print(f"[red]Could not read {escape(str(path))}: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _model_table(result) -> Table:
    table = Table(title=f"{result.model} ({result.frequency}, N={result.n}, R2={_fmt(result.r_squared)})")
    table.add_column("Term", style="cyan")
    table.add_column("Coef", style="white")
    table.add_column("SE", style="white")
    table.add_column("t", style="white")
    table.add_column("p", style="yellow")
    for e in result.estimates:
        table.add_row(e.term, _fmt(e.estimate, 5), _fmt(e.std_error, 5), _fmt(e.t_stat, 3), _fmt(e.p_value))
    return table


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="Tidy CSV or parquet panel"),
    json_out: Optional[Path] = typer.Option(None, help="Write the full report as JSON (relative to output_dir)"),
    se_method: Optional[str] = typer.Option(None, help="Standard errors: legacy | exact"),
    p_value_method: Optional[str] = typer.Option(None, help="P-values: legacy | exact"),
):
    """Run the full carbon leakage analysis on a panel file."""
    from config.settings import Settings, get_settings
    from leakage.engine.analysis import run_analysis

    settings = get_settings()
    setup_logging(settings.log_level)

    overrides = {}
    if se_method:
        overrides["se_method"] = se_method
    if p_value_method:
        overrides["p_value_method"] = p_value_method
    if overrides:
        try:
            settings = Settings(**{**settings.model_dump(), **overrides})
        except ValueError as e:
            console.print(f"[red]Invalid option: {escape(str(e))}[/red]")
            raise typer.Exit(1)

    panel = _read_or_exit(path, settings.cbam_window)
    console.print(f"[bold]Analyzing {panel!r}...[/bold]")

    report = run_analysis(panel, settings)

    console.print(f"Frequency: [bold]{report.frequency}[/bold]")
    for result in report.models:
        if result.feasible:
            console.print(_model_table(result))
        else:
            console.print(f"[yellow]{result.model}: NOT FEASIBLE[/yellow] - {escape(result.reason)}")

    if report.pre_post:
        pp = report.pre_post
        console.print("\n[bold]Pre/post CBAM comparison (descriptive)[/bold]")
        console.print(f"  Pre:  n={pp.pre.n}, avg imports={_fmt(pp.pre.avg_imports, 1)}, avg price={_fmt(pp.pre.avg_price, 2)}")
        console.print(f"  Post: n={pp.post.n}, avg imports={_fmt(pp.post.avg_imports, 1)}, avg price={_fmt(pp.post.avg_price, 2)}")
        console.print(f"  Import change: {_fmt(pp.import_change_pct, 1)}%")

    if report.elasticities:
        table = Table(title="Log-log elasticities")
        table.add_column("Lag", style="cyan")
        table.add_column("Elasticity", style="white")
        table.add_column("p", style="yellow")
        table.add_column("N", style="white")
        for e in report.elasticities:
            table.add_row(str(e.lag), _fmt(e.elasticity), _fmt(e.p_value), str(e.n))
        console.print(table)

    console.print("\n[bold]Methodological notes[/bold]")
    for note in report.notes:
        console.print(f"  - {escape(note)}")

    if json_out:
        if not json_out.is_absolute():
            json_out = settings.output_dir / json_out
        json_out.parent.mkdir(parents=True, exist_ok=True)
        with open(json_out, "w") as f:
            json.dump(report.to_dict(), f, indent=2, default=str)
        console.print(f"\nSaved report to {json_out}")


@app.command()
def quality(
    path: Path = typer.Argument(..., help="Tidy CSV or parquet panel"),
):
    """Print the data quality report for a panel file."""
    from config.settings import get_settings
    from leakage.data.validation import build_quality_report, format_quality_report

    settings = get_settings()
    setup_logging(settings.log_level)

    panel = _read_or_exit(path, settings.cbam_window)
    report = build_quality_report(panel, source=path.name)
    console.print(format_quality_report(report), markup=False)


@app.command()
def lags(
    n: int = typer.Argument(..., help="Number of complete observations"),
    frequency: str = typer.Option("monthly", help="monthly | annual"),
):
    """Show the maximum feasible distributed-lag length for a sample size."""
    from leakage.design.feasibility import determine_feasible_lag_length

    if frequency not in ("monthly", "annual"):
        console.print(f"[red]Unknown frequency: {frequency}[/red]")
        raise typer.Exit(1)

    verdict = determine_feasible_lag_length(n, frequency)
    style = "green" if verdict.feasible else "red"
    console.print(f"[{style}]{verdict.summary()}[/{style}]")


if __name__ == "__main__":
    app()
