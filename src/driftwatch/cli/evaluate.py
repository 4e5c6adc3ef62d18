"""Evaluate a single value against a baseline from the command line."""

from __future__ import annotations

from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console

from driftwatch.errors import NonFiniteValueError
from driftwatch.evaluator import evaluate
from driftwatch.models import DEFAULT_MIN_SAMPLE_SIZE, ThresholdConfig, ViolationType

console = Console()


def evaluate_command(
    value: Annotated[float, typer.Argument(help="Newly recorded value")],
    baseline: Annotated[
        list[float] | None, typer.Argument(help="Prior values of the same series")
    ] = None,
    upper: Annotated[
        float | None, typer.Option("--upper", "-u", help="Upper boundary, percent")
    ] = None,
    lower: Annotated[
        float | None, typer.Option("--lower", "-l", help="Lower boundary, percent")
    ] = None,
    min_samples: Annotated[
        int, typer.Option("--min-samples", "-n", help="Baseline samples required")
    ] = DEFAULT_MIN_SAMPLE_SIZE,
) -> None:
    """Check VALUE against the mean of BASELINE.

    Exits 1 when a boundary is crossed, 2 on invalid input.
    """
    baseline_values = baseline or []
    try:
        config = ThresholdConfig(
            upper_boundary=upper,
            lower_boundary=lower,
            min_sample_size=min_samples,
        )
        violation = evaluate(config, value, baseline_values)
    except (ValidationError, NonFiniteValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2) from None

    if not config.has_boundary:
        console.print("[yellow]No boundary set; nothing to check.[/yellow]")
    elif len(baseline_values) < config.min_sample_size:
        console.print(
            f"[yellow]Skipped:[/yellow] {len(baseline_values)} baseline samples, "
            f"{config.min_sample_size} required"
        )

    if violation is None:
        console.print("[green]✓[/green] Within thresholds")
        return

    arrow = "▲" if violation.type == ViolationType.UPPER else "▼"
    console.print(
        f"[red]{arrow} {violation.type.value} boundary crossed:[/red] "
        f"{violation.percent_change:+.1f}% change (baseline: {violation.baseline_value:.4g})"
    )
    raise typer.Exit(1)
