"""Semantic layer commands: view the graph one disclosure layer at a time."""

from __future__ import annotations

import json
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from . import semantic_layers
from .cli_common import console, fail, open_orchestrator
from .errors import CodeLayersError
from .models import LayerConfiguration, LayerView, SemanticLayerState

layers_app = typer.Typer(
    help="🗺️  Layers — progressive views from orientation to file detail.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _yes_no(flag: bool) -> str:
    return "[green]yes[/green]" if flag else "[dim]no[/dim]"


def _describe_state(state: SemanticLayerState) -> str:
    config = semantic_layers.get_layer_configuration(state.current_layer)
    lock = " (locked)" if state.is_layer_locked else ""
    focus = f", focus {state.focused_unit}" if state.focused_unit else ""
    return f"Layer {config.number}: {config.name}{lock}{focus}"


def _render_view(view: LayerView) -> None:
    meta = view.metadata
    console.print(
        f"[bold cyan]{escape(view.configuration.name)}[/bold cyan] "
        f"(layer {view.configuration.number}) | {meta['size_category']} repository, "
        f"{meta['total_files']} files, {meta['unit_type']} units, reveal depth {meta['reveal_depth']}"
    )

    table = Table(show_header=True)
    table.add_column("Node", style="cyan")
    table.add_column("Type")
    table.add_column("In", justify="right")
    table.add_column("Out", justify="right")
    if view.configuration.show_centrality:
        table.add_column("Centrality", justify="right")
    if view.configuration.show_complexity:
        table.add_column("Complexity", justify="right")
    if view.configuration.show_risk:
        table.add_column("Risk", justify="right")

    centrality = meta.get("centrality", {})
    for node in view.graph.nodes:
        row = [escape(node.id), node.unit_type, str(node.in_degree), str(node.out_degree)]
        if view.configuration.show_centrality:
            row.append(f"{centrality.get(node.id, 0.0):.3f}")
        if view.configuration.show_complexity:
            row.append("-" if node.complexity is None else str(node.complexity))
        if view.configuration.show_risk:
            if node.risk is None:
                row.append("-")
            else:
                marker = " [red]●[/red]" if node.risk.high_impact else ""
                row.append(f"{node.risk.score:.2f}{marker}")
        table.add_row(*row)
    console.print(table)

    typer.echo(f"Edges: {len(view.graph.edges)}")
    for edge in view.graph.edges:
        typer.echo(f"  {edge.source} -> {edge.target} ({edge.weight})")
    if meta.get("cycles"):
        typer.echo(f"Cycles: {len(meta['cycles'])}")


@layers_app.command("show")
def show(
    as_json: bool = typer.Option(False, "--json", help="Print the rendered layer as JSON."),
):
    """Render the active project at its current layer."""
    try:
        with open_orchestrator() as orchestrator:
            state = orchestrator.layer_state()
            view = orchestrator.render(state)
    except CodeLayersError as exc:
        fail(exc)

    if as_json:
        typer.echo(json.dumps(view.to_dict(), indent=2, sort_keys=True))
        return
    typer.echo(_describe_state(state))
    _render_view(view)


@layers_app.command("config")
def show_config(
    layer: Optional[int] = typer.Argument(None, min=1, max=4, help="Layer number (1-4)."),
):
    """Show what each layer displays."""
    numbers = [layer] if layer is not None else sorted(semantic_layers.LAYER_CONFIGURATIONS)
    table = Table(title="Semantic layers", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Nodes")
    table.add_column("Edges")
    table.add_column("Centrality")
    table.add_column("Complexity")
    table.add_column("Risk")
    table.add_column("Cycles")
    table.add_column("Impact")
    for number in numbers:
        config: LayerConfiguration = semantic_layers.get_layer_configuration(number)
        table.add_row(
            str(config.number),
            escape(config.name),
            config.show_nodes,
            config.show_edges,
            _yes_no(config.show_centrality),
            _yes_no(config.show_complexity),
            _yes_no(config.show_risk),
            _yes_no(config.show_cycles),
            _yes_no(config.show_impact),
        )
    console.print(table)


@layers_app.command("set")
def set_layer(
    layer: int = typer.Argument(..., min=1, max=4, help="Layer number (1-4)."),
):
    """Switch to a layer and lock it against automatic suggestions."""
    try:
        with open_orchestrator() as orchestrator:
            state = orchestrator.transition(lambda current: semantic_layers.set_layer(current, layer))
    except CodeLayersError as exc:
        fail(exc)
    typer.echo(_describe_state(state))


@layers_app.command("unlock")
def unlock():
    """Allow automatic layer suggestions again."""
    try:
        with open_orchestrator() as orchestrator:
            state = orchestrator.transition(semantic_layers.unlock_layer)
    except CodeLayersError as exc:
        fail(exc)
    typer.echo(_describe_state(state))


@layers_app.command("suggest")
def suggest(
    layer: int = typer.Argument(..., min=1, max=4, help="Suggested layer number (1-4)."),
):
    """Apply an automatic layer suggestion; ignored while the layer is locked."""
    try:
        with open_orchestrator() as orchestrator:
            state = orchestrator.transition(lambda current: semantic_layers.suggest_layer(current, layer))
    except CodeLayersError as exc:
        fail(exc)
    if state.is_layer_locked and state.current_layer != layer:
        typer.echo("Layer is locked; suggestion ignored.")
    typer.echo(_describe_state(state))


@layers_app.command("focus")
def focus(
    unit: Optional[str] = typer.Argument(None, help="Unit or file to focus on; omit to clear focus."),
    layer: Optional[int] = typer.Option(None, "--layer", "-l", min=1, max=4, help="Also switch to this layer."),
):
    """Focus the view on one unit, or clear the focus."""
    try:
        with open_orchestrator() as orchestrator:
            graph = orchestrator.semantic_graph()
            state = orchestrator.transition(
                lambda current: semantic_layers.focus_unit(current, unit, layer, semantic_graph=graph)
            )
    except CodeLayersError as exc:
        fail(exc)
    if unit is None:
        typer.echo("Focus cleared.")
    typer.echo(_describe_state(state))


@layers_app.command("expand")
def expand(
    unit: str = typer.Argument(..., help="Folder or cluster unit id, e.g. folder:src."),
):
    """Replace an aggregate unit by its files."""
    try:
        with open_orchestrator() as orchestrator:
            state, graph = semantic_layers.expand_unit(orchestrator.layer_state(), unit, orchestrator.semantic_graph())
            orchestrator.store.save_layer_state(state)
    except CodeLayersError as exc:
        fail(exc)
    typer.echo(f"Expanded {unit}: {len(graph.nodes)} nodes, {len(graph.edges)} edges visible.")


@layers_app.command("collapse")
def collapse(
    unit: str = typer.Argument(..., help="Previously expanded unit id."),
):
    """Fold an expanded unit back into a single node."""
    try:
        with open_orchestrator() as orchestrator:
            state, graph = semantic_layers.collapse_unit(orchestrator.layer_state(), unit, orchestrator.semantic_graph())
            orchestrator.store.save_layer_state(state)
    except CodeLayersError as exc:
        fail(exc)
    typer.echo(f"Collapsed {unit}: {len(graph.nodes)} nodes, {len(graph.edges)} edges visible.")


@layers_app.command("undo")
def undo():
    """Return to the state before the last manual layer change."""
    try:
        with open_orchestrator() as orchestrator:
            state = orchestrator.transition(semantic_layers.undo_layer)
    except CodeLayersError as exc:
        fail(exc)
    typer.echo(_describe_state(state))
