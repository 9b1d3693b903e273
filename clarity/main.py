"""Clarity CLI.

Commands:
    clarity validate        — Check an InsightData JSON file
    clarity research run    — Run one research job against captured findings
    clarity export          — Render a version history as json / csv / document
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clarity.utils import setup_logging

# Initialize logging on import
setup_logging()

app = typer.Typer(
    name="clarity",
    help="Clarity — research jobs, insight data and history exports",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
research_app = typer.Typer(help="Run research jobs", no_args_is_help=True)
app.add_typer(research_app, name="research")

console = Console()


def _read_json(path: Path):
    if not path.exists():
        console.print(f"[red]File not found: {path}[/]")
        raise typer.Exit(2)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON in {path}: {exc}[/]")
        raise typer.Exit(2)


# ── clarity validate ──────────────────────────────────────────


@app.command()
def validate(
    path: Path = typer.Argument(..., help="InsightData JSON file"),
):
    """Validate an InsightData file: unique ids, citation references, value ranges."""
    from clarity.errors import InsightValidationError
    from clarity.research.normalize import normalize_findings
    from clarity.research.validation import find_violations

    raw = _read_json(path)
    try:
        insight, _ = normalize_findings(raw)
        violations = find_violations(insight)
    except InsightValidationError as exc:
        violations = exc.violations

    if not violations:
        counts = ", ".join(f"{n} {k.replace('_', ' ')}" for k, n in insight.summary().items())
        console.print(f"[green]✅ valid[/] — {counts}")
        return

    table = Table(title=f"{len(violations)} violation(s)", show_lines=False)
    table.add_column("#", style="dim", width=3)
    table.add_column("Problem", style="red")
    for i, v in enumerate(violations, 1):
        table.add_row(str(i), v)
    console.print(table)
    raise typer.Exit(1)


# ── clarity research run ──────────────────────────────────────


@research_app.command("run")
def research_run(
    query: str = typer.Argument(..., help="Research query, e.g. 'dog walking app'"),
    findings: Path = typer.Option(..., "--findings", "-f", help="Captured raw findings JSON"),
    project_id: str = typer.Option("default", "--project", "-p", help="Project ID"),
    user_id: str = typer.Option(None, "--user", "-u", help="User ID (defaults to settings)"),
    out: Path = typer.Option(None, "--out", "-o", help="Write the terminal job here as JSON"),
):
    """Run one research job end-to-end against a findings file."""
    from clarity.config import settings
    from clarity.errors import InvalidInput

    if not findings.exists():
        console.print(f"[red]File not found: {findings}[/]")
        raise typer.Exit(2)
    try:
        job = asyncio.run(_research_run(query, findings, project_id, user_id or settings.default_user_id))
    except InvalidInput as exc:
        console.print(f"[red]✖ {exc.message}[/]")
        raise typer.Exit(2)

    ok = job.error is None
    lines = [
        f"[bold]Job:[/] {job.id}",
        f"[bold]Query:[/] {job.query}",
        f"[bold]Status:[/] {'✅' if ok else '❌'} {job.status.value}",
        f"[bold]Duration:[/] {job.duration_s or 0:.2f}s",
        f"[bold]Steps:[/] {' → '.join(job.progress_steps)}",
    ]
    if ok:
        lines.append(
            "[bold]Insight:[/] "
            + ", ".join(f"{n} {k.replace('_', ' ')}" for k, n in job.insight_data.summary().items())
        )
    else:
        lines.append(f"[bold]Error:[/] [red]{job.error.code}[/] — {job.error.message}")
    console.print(Panel(
        "\n".join(lines),
        title="[bold cyan]🔬 Research Job[/]",
        border_style="cyan" if ok else "red",
    ))

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(job.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[dim]Saved to {out}[/]")

    if not ok:
        raise typer.Exit(1)


async def _research_run(query: str, findings: Path, project_id: str, user_id: str):
    from clarity.research.collector import FileCollector
    from clarity.research.controller import ResearchJobController

    controller = ResearchJobController(FileCollector(findings))
    try:
        job = await controller.submit(user_id, project_id, query)
        return await controller.await_completion(job)
    finally:
        await controller.shutdown()


# ── clarity export ────────────────────────────────────────────


@app.command()
def export(
    history: Path = typer.Argument(..., help="Version history JSON (array of version records)"),
    fmt: str = typer.Option("json", "--format", "-f", help="json | csv | document"),
    out: Path = typer.Option(None, "--out", "-o", help="Output path (default: ./<project>-history.<ext>)"),
):
    """Export a version history as json, csv or a paginated PDF document."""
    from clarity.errors import InvalidInput, UnsupportedFormat
    from clarity.export import export as render

    raw = _read_json(history)
    try:
        artifact = render(raw if isinstance(raw, list) else [raw], fmt)
    except UnsupportedFormat as exc:
        console.print(f"[red]✖ {exc.message}[/]")
        raise typer.Exit(2)
    except InvalidInput as exc:
        console.print(f"[red]✖ {history} is not a valid version history:[/]")
        for violation in exc.details.get("violations", []):
            console.print(f"  • {violation}")
        raise typer.Exit(2)

    path = artifact.save(out)
    extra = ", ".join(f"{k}={v}" for k, v in artifact.metadata.items() if k != "section_titles")
    console.print(
        f"[green]✅ {artifact.format.value}[/] → {path}  "
        f"[dim]({artifact.media_type}, {artifact.size} bytes{', ' + extra if extra else ''})[/]"
    )


if __name__ == "__main__":
    app()
