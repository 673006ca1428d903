"""codelayers: map a repository into a layered code relationship graph."""

from __future__ import annotations

__version__ = "0.1.0"

from .analytics import (
    analyze_centrality,
    analyze_complexity,
    find_cycles,
    impact,
    module_insights,
    most_used,
    shortest_path,
    strongly_connected_groups,
)
from .builder import build_graph
from .errors import (
    CodeLayersError,
    InvalidInput,
    NodeNotFound,
    NotADirectory,
    NotFound,
    OutOfRange,
)
from .extractor import extract_references
from .models import Edge, Node, SemanticLayerState, Snapshot, SourceFile
from .semantic_layers import (
    calculate_risk_indicators,
    classify_size,
    collapse_unit,
    create_layer_state,
    expand_unit,
    focus_unit,
    get_layer_configuration,
    get_reveal_depth,
    process_for_semantic_layers,
    render_layer,
    select_units,
    set_layer,
    suggest_layer,
    undo_layer,
    unlock_layer,
)

__all__ = [
    "__version__",
    "analyze_centrality",
    "analyze_complexity",
    "build_graph",
    "calculate_risk_indicators",
    "classify_size",
    "collapse_unit",
    "create_layer_state",
    "expand_unit",
    "extract_references",
    "find_cycles",
    "focus_unit",
    "get_layer_configuration",
    "get_reveal_depth",
    "impact",
    "module_insights",
    "most_used",
    "process_for_semantic_layers",
    "render_layer",
    "select_units",
    "set_layer",
    "shortest_path",
    "strongly_connected_groups",
    "suggest_layer",
    "undo_layer",
    "unlock_layer",
    "Edge",
    "Node",
    "SemanticLayerState",
    "Snapshot",
    "SourceFile",
    "CodeLayersError",
    "InvalidInput",
    "NodeNotFound",
    "NotADirectory",
    "NotFound",
    "OutOfRange",
]
