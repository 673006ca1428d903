"""Typer-based CLI for codelayers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .cli_analyze import analyze_app
from .cli_common import fail, open_current_store
from .cli_layers import layers_app
from .errors import CodeLayersError
from .graph_export import export_dot, export_html, export_json
from .orchestrator import AnalysisOrchestrator
from .storage import ProjectManager, SnapshotStore

app = typer.Typer(
    help="🗺️  codelayers — code relationship graphs with semantic layers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(analyze_app, name="analyze")
app.add_typer(layers_app, name="layers")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"codelayers v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress and warnings to stderr."),
):
    """codelayers: map a repository's imports and explore them layer by layer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _project_name_from_path(project_path: Path) -> str:
    return project_path.resolve().name.replace(" ", "_")


@app.command("index")
def index_project(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to source project."),
    project_name: Optional[str] = typer.Option(None, "--name", "-n", help="Explicit memory name for project."),
    churn_file: Optional[Path] = typer.Option(
        None, "--churn", help="JSON object mapping file paths to change frequency.",
    ),
):
    """Scan a project and store its relationship graph."""
    pm = ProjectManager()
    resolved_path = project_path.resolve()
    name = project_name or _project_name_from_path(resolved_path)
    store = SnapshotStore(pm.create_or_get_project(name))
    try:
        stats = AnalysisOrchestrator(store).index(resolved_path, churn_file=churn_file)
    except CodeLayersError as exc:
        fail(exc)
    finally:
        store.close()

    pm.set_current_project(name)
    typer.echo(f"Indexed '{resolved_path}' as project '{name}'.")
    typer.echo(f"Files: {stats['files']} | Edges: {stats['edges']} | External: {stats['external']}")


@app.command("list-projects")
def list_projects():
    """List all persisted projects."""
    pm = ProjectManager()
    projects = pm.list_projects()
    current = pm.get_current_project()

    if not projects:
        typer.echo("No projects indexed yet.")
        raise typer.Exit(code=0)

    for p in projects:
        marker = "*" if p == current else " "
        typer.echo(f"{marker} {p}")


@app.command("load-project")
def load_project(project_name: str = typer.Argument(..., help="Name of project to load.")):
    """Switch the active project."""
    pm = ProjectManager()
    if project_name not in pm.list_projects():
        raise typer.BadParameter(f"Project '{project_name}' not found.")
    pm.set_current_project(project_name)
    typer.echo(f"Loaded project '{project_name}'.")


@app.command("unload-project")
def unload_project():
    """Unload the active project without deleting data."""
    pm = ProjectManager()
    pm.unload_project()
    typer.echo("Unloaded active project.")


@app.command("delete-project")
def delete_project(project_name: str = typer.Argument(..., help="Project to delete.")):
    """Delete a persisted project."""
    pm = ProjectManager()
    if not pm.delete_project(project_name):
        raise typer.BadParameter(f"Project '{project_name}' not found.")
    typer.echo(f"Deleted project '{project_name}'.")


@app.command("current-project")
def current_project():
    """Print the active project name."""
    pm = ProjectManager()
    typer.echo(pm.get_current_project() or "No project loaded")


@app.command("export-graph")
def export_graph(
    fmt: str = typer.Option("html", "--format", "-f", help="Export format: html, dot or json."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
):
    """Export the current layer view to standalone HTML, Graphviz DOT or JSON."""
    fmt = fmt.lower()
    if fmt not in {"html", "dot", "json"}:
        raise typer.BadParameter("Format must be one of: html, dot, json")

    pm = ProjectManager()
    try:
        store = open_current_store(pm)
    except CodeLayersError as exc:
        fail(exc)
    current = pm.get_current_project() or "project"

    if output is None:
        output = Path.cwd() / f"{current}_graph.{fmt}"

    try:
        view = AnalysisOrchestrator(store).render()
    except CodeLayersError as exc:
        fail(exc)
    finally:
        store.close()

    if fmt == "html":
        export_html(view, output)
    elif fmt == "dot":
        export_dot(view, output)
    else:
        export_json(view, output)
    typer.echo(f"Exported layer {view.configuration.number} ({view.configuration.name}) to {output}")


if __name__ == "__main__":
    app()
