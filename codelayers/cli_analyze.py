"""Graph analytics commands for the active project."""

from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .cli_common import console, fail, open_orchestrator
from .errors import CodeLayersError

analyze_app = typer.Typer(
    help="🔍 Analysis — centrality, complexity, cycles, paths and impact.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _score_color(score: float) -> str:
    if score >= 0.5:
        return "red"
    elif score >= 0.2:
        return "yellow"
    return "green"


@analyze_app.command("centrality")
def centrality(
    top: int = typer.Option(10, "--top", "-k", min=1, help="Number of nodes to show."),
):
    """Rank files by normalised in-degree."""
    try:
        with open_orchestrator() as orchestrator:
            scores = orchestrator.centrality()
    except CodeLayersError as exc:
        fail(exc)

    if not scores:
        typer.echo("Graph is empty.")
        raise typer.Exit(code=0)

    table = Table(title="Centrality", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("In", justify="right")
    table.add_column("Out", justify="right")
    table.add_column("Score", justify="right")
    for item in scores[:top]:
        color = _score_color(item.score)
        table.add_row(item.node_id, str(item.in_degree), str(item.out_degree), f"[{color}]{item.score:.3f}[/{color}]")
    console.print(table)


@analyze_app.command("complexity")
def complexity(
    top: Optional[int] = typer.Option(None, "--top", "-k", min=1, help="Number of files to list."),
):
    """Estimate per-file complexity from decision points."""
    try:
        with open_orchestrator() as orchestrator:
            report = orchestrator.complexity(top_n=top)
    except CodeLayersError as exc:
        fail(exc)

    summary = report.summary
    typer.echo(f"Files: {summary.total_files} | Average: {summary.average:.1f} | Max: {summary.maximum}")
    if not summary.top:
        return

    table = Table(title="Most complex files", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Language")
    table.add_column("Lines", justify="right")
    table.add_column("Complexity", justify="right")
    for entry in summary.top:
        table.add_row(entry.path, entry.language or "-", str(entry.lines), str(entry.score))
    console.print(table)


@analyze_app.command("cycles")
def cycles():
    """List circular import chains."""
    try:
        with open_orchestrator() as orchestrator:
            found = orchestrator.cycles()
    except CodeLayersError as exc:
        fail(exc)

    if not found:
        typer.echo("No cycles found.")
        return
    typer.echo(f"Cycles: {len(found)}")
    for cycle in found:
        typer.echo("  " + " -> ".join(cycle + [cycle[0]]))


@analyze_app.command("most-used")
def most_used(
    k: Optional[int] = typer.Argument(None, help="How many files to list."),
):
    """List the files imported by the most other files."""
    try:
        with open_orchestrator() as orchestrator:
            nodes = orchestrator.most_used(k)
    except CodeLayersError as exc:
        fail(exc)

    for node in nodes:
        typer.echo(f"{node.id}  imported by {node.in_degree}")


@analyze_app.command("path")
def path(
    source: str = typer.Argument(..., help="File the chain starts at."),
    target: str = typer.Argument(..., help="File the chain ends at."),
):
    """Show the shortest import chain between two files."""
    try:
        with open_orchestrator() as orchestrator:
            chain = orchestrator.shortest_path(source, target)
    except CodeLayersError as exc:
        fail(exc)

    if chain is None:
        typer.echo(f"No import path from {source} to {target}.")
        raise typer.Exit(code=1)
    typer.echo(" -> ".join(chain))
    typer.echo(f"Length: {len(chain)}")


@analyze_app.command("impact")
def impact(
    node_id: str = typer.Argument(..., help="File to analyse."),
):
    """Show what depends on a file and what it depends on."""
    try:
        with open_orchestrator() as orchestrator:
            result = orchestrator.impact(node_id)
    except CodeLayersError as exc:
        fail(exc)

    typer.echo(f"Root: {result.node_id}")
    typer.echo(f"Impact score: {result.score:.3f}")
    typer.echo(f"Dependents ({len(result.forward)}):")
    for item in result.forward:
        typer.echo(f"- {item}")
    typer.echo(f"Dependencies ({len(result.backward)}):")
    for item in result.backward:
        typer.echo(f"- {item}")


@analyze_app.command("insights")
def insights(
    node_id: str = typer.Argument(..., help="File to describe."),
):
    """Summarise one module: imports, importers, externals, cycles."""
    try:
        with open_orchestrator() as orchestrator:
            info = orchestrator.insights(node_id)
    except CodeLayersError as exc:
        fail(exc)

    lines = [
        f"Imports: {', '.join(info.imports) or 'none'}",
        f"Imported by: {', '.join(info.imported_by) or 'none'}",
        f"External: {', '.join(info.external_dependencies) or 'none'}",
        f"Centrality: {info.centrality:.3f}",
        f"Impact score: {info.impact_score:.3f} ({info.dependents} dependents, {info.dependencies} dependencies)",
    ]
    if info.cycles:
        lines.append("Cycles:")
        lines.extend("  " + " -> ".join(cycle + [cycle[0]]) for cycle in info.cycles)
    console.print(Panel(escape("\n".join(lines)), title=f"[bold]{escape(info.node_id)}[/bold]", border_style="cyan"))
