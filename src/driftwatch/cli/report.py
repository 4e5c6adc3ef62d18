"""Report submission CLI commands.

Results are read from a JSON file holding a list of metrics:

    [{"benchmark": "parse/small", "value": 1520.3, "lower_value": 1490.0}]

``measure`` defaults to ``latency``. ``report run -- <command>`` runs a
Criterion benchmark command instead and parses its output. Either way the
report is posted to the API's /reports endpoint and any alerts it raised
are printed.
"""

from __future__ import annotations

import os
import platform
import subprocess
from pathlib import Path
from typing import Annotated

import httpx
import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel

from driftwatch.criterion import parse_criterion_output
from driftwatch.models import CreateReportRequest, DriftwatchConfig, MetricInput, ReportResult

app = typer.Typer(no_args_is_help=True)
console = Console()

_metrics_adapter = TypeAdapter(list[MetricInput])


def parse_pr_from_github_ref(github_ref: str) -> int | None:
    """PR number from a GITHUB_REF such as ``refs/pull/123/merge``."""
    prefix = "refs/pull/"
    if not github_ref.startswith(prefix):
        return None
    number = github_ref[len(prefix) :].split("/", 1)[0]
    if not number.isdigit():
        return None
    pr = int(number)
    return pr if pr > 0 else None


def detect_pr_number() -> int | None:
    """PR number from GITHUB_REF, falling back to GITHUB_PR_NUMBER."""
    pr = parse_pr_from_github_ref(os.environ.get("GITHUB_REF", ""))
    if pr is not None:
        return pr
    raw = os.environ.get("GITHUB_PR_NUMBER", "").strip()
    if raw.isdigit() and int(raw) > 0:
        return int(raw)
    return None


def detect_git_hash() -> str | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return result.stdout.strip() or None


def load_metrics(path: Path) -> list[MetricInput]:
    return _metrics_adapter.validate_json(path.read_text())


def submit_report(api_url: str, request: CreateReportRequest) -> ReportResult:
    response = httpx.post(
        f"{api_url.rstrip('/')}/reports",
        json=request.model_dump(mode="json"),
        timeout=30.0,
    )
    response.raise_for_status()
    return ReportResult.model_validate(response.json())


def run_benchmark_command(command: list[str]) -> subprocess.CompletedProcess[str]:
    """Run a benchmark command through the shell, capturing its output."""
    return subprocess.run(
        " ".join(command),
        shell=True,
        capture_output=True,
        text=True,
    )


def _submit_metrics(
    metrics: list[MetricInput],
    *,
    project: str,
    branch: str,
    testbed: str | None,
    git_hash: str | None,
    pr: int | None,
    api_url: str | None,
    dry_run: bool,
) -> None:
    testbed = testbed or platform.system().lower()
    git_hash = git_hash or detect_git_hash()
    pr = pr or detect_pr_number()

    console.print(f"  Project: [cyan]{project}[/cyan]")
    console.print(f"  Branch:  [cyan]{branch}[/cyan]")
    console.print(f"  Testbed: [cyan]{testbed}[/cyan]")
    if git_hash:
        console.print(f"  Commit:  [cyan]{git_hash}[/cyan]")
    if pr:
        console.print(f"  PR:      [cyan]#{pr}[/cyan]")
    console.print()

    console.print(f"Found {len(metrics)} benchmark results:")
    for metric in metrics:
        console.print(f"  [cyan]{metric.benchmark}[/cyan] ({metric.measure}): {metric.value:.2f}")
    console.print()

    if dry_run:
        console.print("[yellow]Dry run - not submitting results.[/yellow]")
        return

    request = CreateReportRequest(
        project_slug=project,
        branch=branch,
        testbed=testbed,
        git_hash=git_hash,
        pr_number=pr,
        metrics=metrics,
    )
    url = api_url or DriftwatchConfig().api_url

    with console.status("[bold green]Submitting results..."):
        try:
            result = submit_report(url, request)
        except httpx.HTTPError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None

    console.print(f"[green]✓[/green] Report submitted: {result.report.id}")

    if result.alerts:
        console.print(f"\n[red]{len(result.alerts)} alerts generated:[/red]")
        for alert in result.alerts:
            console.print(
                f"  - {alert.percent_change:+.1f}% change (baseline: {alert.baseline_value:.2f})"
            )


ProjectOption = Annotated[str, typer.Option("--project", "-p", help="Project slug")]
BranchOption = Annotated[str, typer.Option("--branch", "-b", help="Branch name")]
TestbedOption = Annotated[
    str | None, typer.Option("--testbed", "-t", help="Testbed name (default: OS name)")
]
HashOption = Annotated[
    str | None, typer.Option("--hash", help="Commit hash (default: git rev-parse HEAD)")
]
PrOption = Annotated[
    int | None, typer.Option("--pr", min=1, help="PR number (default: from GITHUB_REF)")
]
ApiUrlOption = Annotated[str | None, typer.Option("--api-url", help="Driftwatch API base URL")]
DryRunOption = Annotated[bool, typer.Option("--dry-run", help="Print, do not submit")]


@app.command()
def submit(
    file: Annotated[Path, typer.Argument(help="JSON file with benchmark metrics")],
    project: ProjectOption,
    branch: BranchOption = "main",
    testbed: TestbedOption = None,
    git_hash: HashOption = None,
    pr: PrOption = None,
    api_url: ApiUrlOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Submit benchmark results and report any threshold alerts."""
    console.print(Panel.fit("Submitting Benchmark Report", style="bold blue"))

    if not file.exists():
        console.print(f"[red]Error:[/red] Results file not found: {file}")
        raise typer.Exit(1)

    try:
        metrics = load_metrics(file)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid results file: {e}")
        raise typer.Exit(1) from None

    if not metrics:
        console.print("[yellow]No metrics found in results file.[/yellow]")
        return

    _submit_metrics(
        metrics,
        project=project,
        branch=branch,
        testbed=testbed,
        git_hash=git_hash,
        pr=pr,
        api_url=api_url,
        dry_run=dry_run,
    )


@app.command()
def run(
    command: Annotated[
        list[str], typer.Argument(help="Benchmark command, e.g. -- cargo bench")
    ],
    project: ProjectOption,
    branch: BranchOption = "main",
    testbed: TestbedOption = None,
    git_hash: HashOption = None,
    pr: PrOption = None,
    api_url: ApiUrlOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Run Criterion benchmarks and submit their results."""
    console.print(Panel.fit("Running Benchmarks", style="bold blue"))
    console.print(f"  Command: [cyan]{' '.join(command)}[/cyan]")
    console.print()

    with console.status("[bold green]Running benchmarks..."):
        try:
            completed = run_benchmark_command(command)
        except OSError as e:
            console.print(f"[red]Error:[/red] Failed to run command: {e}")
            raise typer.Exit(1) from None

    if completed.returncode != 0:
        console.print(
            f"[yellow]Warning:[/yellow] Command exited with code {completed.returncode}"
        )

    metrics = parse_criterion_output(completed.stdout + "\n" + completed.stderr)
    if not metrics:
        console.print("[yellow]No benchmark results found in output.[/yellow]")
        console.print("Make sure you're running Criterion benchmarks.")
        if completed.stdout:
            console.print(f"\nStdout:\n{completed.stdout}", markup=False)
        if completed.stderr:
            console.print(f"\nStderr:\n{completed.stderr}", markup=False)
        raise typer.Exit(1 if completed.returncode != 0 else 0)

    _submit_metrics(
        metrics,
        project=project,
        branch=branch,
        testbed=testbed,
        git_hash=git_hash,
        pr=pr,
        api_url=api_url,
        dry_run=dry_run,
    )
