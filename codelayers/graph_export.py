"""Export a rendered layer as Graphviz DOT, JSON or a static HTML report."""

from __future__ import annotations

import json
from html import escape
from pathlib import Path
from typing import List

from .models import LayerView, Node

_KIND_SHAPES = {"file": "box", "folder-unit": "folder", "cluster-unit": "component"}


def export_dot(view: LayerView, output_file: Path) -> None:
    """Write *view* as a left-to-right digraph; high-impact nodes are red."""
    lines = ["digraph CodeLayers {", "  rankdir=LR;"]
    lines.append(f'  label="{_dot_quote(view.configuration.name)}";')

    for node in view.graph.nodes:
        attributes = [f'label="{_dot_quote(node.label)}"', f"shape={_KIND_SHAPES.get(node.kind, 'box')}"]
        if node.risk is not None and node.risk.high_impact:
            attributes.append("color=red")
        lines.append(f'  "{_dot_quote(node.id)}" [{", ".join(attributes)}];')

    for edge in view.graph.edges:
        lines.append(f'  "{_dot_quote(edge.source)}" -> "{_dot_quote(edge.target)}" [label="{edge.weight}"];')

    lines.append("}")
    output_file.write_text("\n".join(lines) + "\n", encoding="utf-8")


def export_json(view: LayerView, output_file: Path) -> None:
    output_file.write_text(json.dumps(view.to_dict(), indent=2, sort_keys=True), encoding="utf-8")


def export_html(view: LayerView, output_file: Path) -> None:
    """Write a self-contained HTML report of the layer: nodes, edges, cycles."""
    output_file.write_text(_render_html(view), encoding="utf-8")


def _node_row(node: Node) -> str:
    risk = "-" if node.risk is None else f"{node.risk.score:.2f}"
    css = ' class="hot"' if node.risk is not None and node.risk.high_impact else ""
    complexity = "-" if node.complexity is None else str(node.complexity)
    return (
        f"<tr{css}><td>{escape(node.id)}</td><td>{node.unit_type}</td>"
        f"<td>{node.in_degree}</td><td>{node.out_degree}</td>"
        f"<td>{complexity}</td><td>{risk}</td></tr>"
    )


def _render_html(view: LayerView) -> str:
    config = view.configuration
    meta = view.metadata
    title = f"codelayers: {config.name}"

    parts: List[str] = [
        "<!doctype html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{escape(title)}</title>",
        "<style>",
        "body { font-family: system-ui, sans-serif; margin: 24px; color: #222; }",
        "table { border-collapse: collapse; margin-bottom: 24px; }",
        "th, td { border-bottom: 1px solid #e0e0e0; padding: 4px 12px; text-align: left; }",
        "tr.hot td:first-child { color: #c62828; font-weight: bold; }",
        "</style>",
        "</head>",
        "<body>",
        f"<h1>Layer {config.number}: {escape(config.name)}</h1>",
        f"<p>{escape(config.description)}. "
        f"{meta.get('visible_nodes', len(view.graph.nodes))} nodes, "
        f"{meta.get('visible_edges', len(view.graph.edges))} edges, "
        f"{escape(str(meta.get('unit_type', 'file')))} units.</p>",
        "<h2>Nodes</h2>",
        "<table>",
        "<tr><th>Node</th><th>Type</th><th>In</th><th>Out</th><th>Complexity</th><th>Risk</th></tr>",
    ]
    parts.extend(_node_row(node) for node in view.graph.nodes)
    parts.append("</table>")

    parts.extend(["<h2>Edges</h2>", "<table>", "<tr><th>From</th><th>To</th><th>Weight</th></tr>"])
    parts.extend(
        f"<tr><td>{escape(edge.source)}</td><td>{escape(edge.target)}</td><td>{edge.weight}</td></tr>"
        for edge in view.graph.edges
    )
    parts.append("</table>")

    cycles = meta.get("cycles") or []
    if cycles:
        parts.append("<h2>Cycles</h2>")
        parts.append("<ul>")
        parts.extend(f"<li>{escape(' -> '.join(cycle + [cycle[0]]))}</li>" for cycle in cycles)
        parts.append("</ul>")

    parts.extend(["</body>", "</html>", ""])
    return "\n".join(parts)


def _dot_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
