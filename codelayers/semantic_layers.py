"""Semantic layer engine.

Turns a file-level snapshot into size-appropriate units (files, folders or
clusters) and drives the four-layer progressive disclosure state machine.
Layer state is an immutable value: every transition validates its input
first and then returns a new :class:`SemanticLayerState`.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict, deque
from dataclasses import replace
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .analytics import find_cycles, impact
from .builder import make_snapshot
from .config import (
    DEFAULT_CLUSTER_AFFINITY,
    DEFAULT_MAX_CYCLES,
    DEFAULT_RISK_WEIGHTS,
    DEFAULT_TOP_N,
    MEDIUM_REPO_LIMIT,
    SMALL_REPO_LIMIT,
)
from .errors import InvalidInput, NodeNotFound, OutOfRange
from .models import (
    CLUSTER_KIND,
    FOLDER_KIND,
    Edge,
    LayerConfiguration,
    LayerView,
    Node,
    RiskIndicators,
    SemanticGraph,
    SemanticLayerState,
    Snapshot,
    UnitSelection,
)

logger = logging.getLogger(__name__)

SMALL = "small"
MEDIUM = "medium"
LARGE = "large"

REVEAL_DEPTHS: Dict[str, int] = {SMALL: 3, MEDIUM: 2, LARGE: 1}
UNIT_TYPES: Dict[str, str] = {SMALL: "file", MEDIUM: "folder", LARGE: "cluster"}

LAYER_CONFIGURATIONS: Dict[int, LayerConfiguration] = {
    1: LayerConfiguration(
        number=1,
        name="Orientation",
        description="Units and their strongest relationships",
        show_nodes="units",
        show_edges="top",
        show_centrality=False,
        show_complexity=False,
        show_risk=False,
        show_cycles=False,
        show_impact=False,
    ),
    2: LayerConfiguration(
        number=2,
        name="Structural",
        description="Every relationship between units, with centrality",
        show_nodes="units",
        show_edges="all",
        show_centrality=True,
        show_complexity=False,
        show_risk=False,
        show_cycles=False,
        show_impact=False,
    ),
    3: LayerConfiguration(
        number=3,
        name="Impact & Risk",
        description="Risk indicators, cycles and change impact",
        show_nodes="units",
        show_edges="all",
        show_centrality=True,
        show_complexity=True,
        show_risk=True,
        show_cycles=True,
        show_impact=True,
    ),
    4: LayerConfiguration(
        number=4,
        name="Detail",
        description="Full file-level graph with all overlays",
        show_nodes="files",
        show_edges="all",
        show_centrality=True,
        show_complexity=True,
        show_risk=True,
        show_cycles=True,
        show_impact=True,
    ),
}


# ---------------------------------------------------------------------------
# Size classification
# ---------------------------------------------------------------------------

def classify_size(total_files: int) -> str:
    """``small`` below 80 files, ``medium`` below 500, ``large`` otherwise."""
    if isinstance(total_files, bool) or not isinstance(total_files, int):
        raise InvalidInput("Total file count must be an integer")
    if total_files < 0:
        raise InvalidInput("Total file count must not be negative")
    if total_files < SMALL_REPO_LIMIT:
        return SMALL
    if total_files < MEDIUM_REPO_LIMIT:
        return MEDIUM
    return LARGE


def get_reveal_depth(category: str) -> int:
    try:
        return REVEAL_DEPTHS[category]
    except (KeyError, TypeError):
        raise InvalidInput(f"Unknown size category: {category!r}") from None


def get_layer_configuration(number: int) -> LayerConfiguration:
    _check_layer(number)
    return LAYER_CONFIGURATIONS[number]


def _check_layer(number: Any) -> None:
    if isinstance(number, bool) or not isinstance(number, int) or number not in LAYER_CONFIGURATIONS:
        raise OutOfRange(f"Layer must be between 1 and 4, got {number!r}")


# ---------------------------------------------------------------------------
# Unit selection
# ---------------------------------------------------------------------------

def _dir_parts(directory: str) -> List[str]:
    if directory in ("", "."):
        return []
    return directory.split("/")


def _common_parts(directories: Iterable[str]) -> List[str]:
    common: Optional[List[str]] = None
    for directory in directories:
        parts = _dir_parts(directory)
        if common is None:
            common = parts
            continue
        size = 0
        for left, right in zip(common, parts):
            if left != right:
                break
            size += 1
        common = common[:size]
    return common or []


def _folder_groups(nodes: Sequence[Node]) -> Dict[str, str]:
    """Map file id to the first directory level below the common prefix."""
    prefix = _common_parts(node.directory for node in nodes)
    groups: Dict[str, str] = {}
    for node in nodes:
        parts = _dir_parts(node.directory)
        if len(parts) > len(prefix):
            group = parts[: len(prefix) + 1]
        else:
            group = prefix
        groups[node.id] = "/".join(group) or "."
    return groups


class _DisjointSet:
    """Union-find over directory names; the smallest name is the root."""

    def __init__(self, items: Iterable[str]) -> None:
        self.parent = {item: item for item in items}

    def find(self, item: str) -> str:
        root = item
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[item] != root:
            self.parent[item], item = root, self.parent[item]
        return root

    def union(self, left: str, right: str) -> None:
        a, b = self.find(left), self.find(right)
        if a == b:
            return
        if b < a:
            a, b = b, a
        self.parent[b] = a


def _cluster_groups(snapshot: Snapshot, affinity: float) -> Dict[str, str]:
    """Map file id to the name of its cluster.

    Two directories are merged when the weight between them is at least
    *affinity* of each side's external weight. A cluster is named after its
    directory with the most files, ties by the smaller name.
    """
    directory_of = {node.id: node.directory for node in snapshot.nodes}
    pair_weights: Counter = Counter()
    external: Counter = Counter()
    for edge in snapshot.edges:
        src, dst = directory_of[edge.source], directory_of[edge.target]
        if src == dst:
            continue
        pair_weights[tuple(sorted((src, dst)))] += edge.weight
        external[src] += edge.weight
        external[dst] += edge.weight

    clusters = _DisjointSet(sorted(set(directory_of.values())))
    for (left, right), weight in sorted(pair_weights.items()):
        if weight >= affinity * external[left] and weight >= affinity * external[right]:
            logger.debug("Clustering %s with %s (%d/%d, %d/%d)",
                         left, right, weight, external[left], weight, external[right])
            clusters.union(left, right)

    file_counts = Counter(directory_of.values())
    members: Dict[str, List[str]] = defaultdict(list)
    for directory in file_counts:
        members[clusters.find(directory)].append(directory)
    names = {
        root: min(directories, key=lambda d: (-file_counts[d], d))
        for root, directories in members.items()
    }
    return {node_id: names[clusters.find(directory)] for node_id, directory in directory_of.items()}


def _sum_complexity(children: Sequence[Node]) -> Optional[int]:
    values = [child.complexity for child in children if child.complexity is not None]
    return sum(values) if values else None


def _aggregate(snapshot: Snapshot, groups: Mapping[str, str], kind: str) -> Snapshot:
    prefix = "folder" if kind == FOLDER_KIND else "cluster"
    members: Dict[str, List[Node]] = defaultdict(list)
    for node in snapshot.nodes:
        members[groups[node.id]].append(node)

    units = []
    unit_of: Dict[str, str] = {}
    for group, children in members.items():
        unit_id = f"{prefix}:{group}"
        for child in children:
            unit_of[child.id] = unit_id
        if kind == CLUSTER_KIND:
            extra = len({child.directory for child in children}) - 1
            label = group if not extra else f"{group} +{extra}"
        else:
            label = group
        units.append(
            Node(
                id=unit_id,
                label=label,
                directory=group,
                kind=kind,
                complexity=_sum_complexity(children),
                children=tuple(sorted(child.id for child in children)),
            )
        )

    weights: Counter = Counter()
    for edge in snapshot.edges:
        src, dst = unit_of[edge.source], unit_of[edge.target]
        if src != dst:
            weights[(src, dst)] += edge.weight
    return make_snapshot(units, weights)


def select_units(
    snapshot: Snapshot,
    total_files: Optional[int] = None,
    cluster_affinity: float = DEFAULT_CLUSTER_AFFINITY,
) -> UnitSelection:
    """Group file nodes into units appropriate for the repository size.

    Args:
        snapshot: file-level snapshot
        total_files: repository file count used for classification; defaults
            to the number of nodes in *snapshot*
        cluster_affinity: share of each directory's external edge weight
            that the link between two directories must carry for them to
            be clustered

    Returns:
        The units with their aggregated inter-unit edges.
    """
    if total_files is None:
        total_files = len(snapshot.nodes)
    category = classify_size(total_files)
    if not 0 < cluster_affinity <= 1:
        raise InvalidInput("cluster_affinity must be in (0, 1]")

    if category == SMALL or snapshot.is_empty:
        return UnitSelection(size_category=category, units=snapshot.nodes, edges=snapshot.edges)
    if category == MEDIUM:
        units = _aggregate(snapshot, _folder_groups(snapshot.nodes), FOLDER_KIND)
    else:
        units = _aggregate(snapshot, _cluster_groups(snapshot, cluster_affinity), CLUSTER_KIND)
    logger.info("Selected %d %s units from %d files", len(units.nodes), UNIT_TYPES[category], len(snapshot.nodes))
    return UnitSelection(size_category=category, units=units.nodes, edges=units.edges)


def unit_membership(selection: UnitSelection) -> Dict[str, str]:
    """Map every file id to the id of the unit containing it."""
    membership: Dict[str, str] = {}
    for unit in selection.units:
        if unit.children is None:
            membership[unit.id] = unit.id
        else:
            for child in unit.children:
                membership[child] = unit.id
    return membership


# ---------------------------------------------------------------------------
# Risk indicators
# ---------------------------------------------------------------------------

def _validated_weights(weights: Optional[Mapping[str, float]]) -> Dict[str, float]:
    merged = dict(DEFAULT_RISK_WEIGHTS)
    if weights:
        unknown = set(weights) - set(merged)
        if unknown:
            raise InvalidInput(f"Unknown risk weights: {', '.join(sorted(unknown))}")
        merged.update(weights)
    for name, value in merged.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise InvalidInput(f"Risk weight '{name}' must be a non-negative number")
    return merged


def _validated_churn(churn: Optional[Mapping[str, float]]) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for path, value in (churn or {}).items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise InvalidInput(f"Churn for '{path}' must be a number")
        if value < 0:
            raise InvalidInput(f"Churn for '{path}' must not be negative")
        result[path] = float(value)
    return result


def calculate_risk_indicators(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    churn: Optional[Mapping[str, float]] = None,
    cycles: Optional[Iterable[Sequence[str]]] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> List[Node]:
    """Attach :class:`RiskIndicators` to every node.

    Centrality (normalised in-degree), complexity and churn are each divided
    by their maximum over *nodes* and combined as a weighted mean, so raising
    any one input never lowers the score. A node is high-impact when its
    centrality ranks in the top decile or it lies on one of *cycles*.

    Raises:
        InvalidInput: for negative churn or weights.
    """
    churn_values = _validated_churn(churn)
    fusion = _validated_weights(weights)
    total_weight = sum(fusion.values())

    in_degree: Counter = Counter(edge.target for edge in edges)
    count = len(nodes)
    centrality = {
        node.id: in_degree.get(node.id, 0) / (count - 1) if count > 1 else 0.0
        for node in nodes
    }
    on_cycle: Set[str] = {node_id for cycle in (cycles or ()) for node_id in cycle}

    max_centrality = max(centrality.values(), default=0.0)
    max_complexity = max((node.complexity or 0 for node in nodes), default=0)
    max_churn = max((churn_values.get(node.id, 0.0) for node in nodes), default=0.0)

    ranked = sorted(centrality.values(), reverse=True)
    cutoff = ranked[math.ceil(count / 10) - 1] if ranked else 0.0

    result = []
    for node in nodes:
        parts = {
            "centrality": centrality[node.id] / max_centrality if max_centrality else 0.0,
            "complexity": (node.complexity or 0) / max_complexity if max_complexity else 0.0,
            "churn": churn_values.get(node.id, 0.0) / max_churn if max_churn else 0.0,
        }
        score = sum(fusion[name] * value for name, value in parts.items())
        score = score / total_weight if total_weight else 0.0
        in_cycle = node.id in on_cycle
        high_impact = in_cycle or (centrality[node.id] > 0 and centrality[node.id] >= cutoff)
        risk = RiskIndicators(
            centrality=parts["centrality"],
            complexity=parts["complexity"],
            churn=parts["churn"],
            score=score,
            high_impact=high_impact,
            in_cycle=in_cycle,
        )
        result.append(replace(node, risk=risk))
    return result


# ---------------------------------------------------------------------------
# Building the semantic graph
# ---------------------------------------------------------------------------

def process_for_semantic_layers(
    snapshot: Snapshot,
    total_files: Optional[int] = None,
    churn: Optional[Mapping[str, float]] = None,
    complexity: Optional[Mapping[str, int]] = None,
    weights: Optional[Mapping[str, float]] = None,
    cluster_affinity: float = DEFAULT_CLUSTER_AFFINITY,
    max_cycles: Optional[int] = DEFAULT_MAX_CYCLES,
) -> SemanticGraph:
    """Everything the layer engine needs for one analysed repository.

    Complexity scores (if given) are attached to file nodes, risk indicators
    are computed for files and for units, and the selection matching the
    repository size is bundled with cycle information and metadata.
    """
    if total_files is None:
        total_files = len(snapshot.nodes)
    category = classify_size(total_files)

    files = list(snapshot.nodes)
    if complexity:
        files = [
            replace(node, complexity=complexity[node.id]) if node.id in complexity else node
            for node in files
        ]

    file_cycles = find_cycles(snapshot, limit=max_cycles)
    files = calculate_risk_indicators(files, snapshot.edges, churn, file_cycles, weights)
    file_snapshot = Snapshot(nodes=tuple(files), edges=snapshot.edges, external_edges=snapshot.external_edges)

    selection = select_units(file_snapshot, total_files, cluster_affinity)
    if selection.units and selection.units[0].is_aggregate:
        membership = unit_membership(selection)
        unit_churn: Dict[str, float] = defaultdict(float)
        for path, value in _validated_churn(churn).items():
            if path in membership:
                unit_churn[membership[path]] += value
        unit_cycles = [[membership[node_id] for node_id in cycle] for cycle in file_cycles]
        unit_cycles += find_cycles(selection.as_snapshot(), limit=max_cycles)
        units = calculate_risk_indicators(selection.units, selection.edges, unit_churn, unit_cycles, weights)
        selection = replace(selection, units=tuple(units))

    metadata = {
        "size_category": category,
        "total_files": total_files,
        "reveal_depth": get_reveal_depth(category),
        "unit_type": UNIT_TYPES[category],
        "file_count": len(file_snapshot.nodes),
        "unit_count": len(selection.units),
        "edge_count": len(file_snapshot.edges),
        "cycle_count": len(file_cycles),
    }
    return SemanticGraph(file_snapshot=file_snapshot, selection=selection, cycles=file_cycles, metadata=metadata)


def _find_unit(semantic_graph: SemanticGraph, unit_id: str) -> Node:
    for unit in semantic_graph.selection.units:
        if unit.id == unit_id:
            return unit
    raise NodeNotFound(unit_id)


def _aggregate_unit(semantic_graph: SemanticGraph, unit_id: str) -> Node:
    if not isinstance(unit_id, str) or not unit_id:
        raise InvalidInput("A unit id is required")
    if semantic_graph.file_snapshot.has_node(unit_id):
        raise OutOfRange(f"'{unit_id}' is a file unit and cannot be expanded")
    return _find_unit(semantic_graph, unit_id)


def expanded_graph(semantic_graph: SemanticGraph, expanded: Iterable[str] = ()) -> Snapshot:
    """Unit graph with every expanded aggregate replaced by its files.

    Each file is represented by itself when its unit is expanded and by its
    unit otherwise; file edges are then re-aggregated over those
    representatives.
    """
    expanded_ids = set(expanded)
    selection = semantic_graph.selection
    if not expanded_ids:
        return selection.as_snapshot()

    membership = unit_membership(selection)
    representative = {
        file_id: file_id if unit_id in expanded_ids else unit_id
        for file_id, unit_id in membership.items()
    }
    files = semantic_graph.file_snapshot.node_index
    nodes: List[Node] = []
    for unit in selection.units:
        if unit.id in expanded_ids and unit.children:
            nodes.extend(files[child] for child in unit.children)
        else:
            nodes.append(unit)

    weights: Counter = Counter()
    for edge in semantic_graph.file_snapshot.edges:
        src, dst = representative[edge.source], representative[edge.target]
        if src != dst:
            weights[(src, dst)] += edge.weight
    return make_snapshot(nodes, weights)


# ---------------------------------------------------------------------------
# Layer state transitions
# ---------------------------------------------------------------------------

def create_layer_state(size_category: str = SMALL) -> SemanticLayerState:
    return SemanticLayerState(reveal_depth=get_reveal_depth(size_category))


def _remember(state: SemanticLayerState) -> SemanticLayerState:
    return replace(state, previous_state=None)


def set_layer(state: SemanticLayerState, layer: int) -> SemanticLayerState:
    """Manually choose a layer.

    The prior state goes into the one-slot ``previous_state`` and the layer
    is locked against automatic suggestions until :func:`unlock_layer`.
    """
    _check_layer(layer)
    return replace(
        state,
        current_layer=layer,
        is_layer_locked=True,
        previous_state=_remember(state),
        version=state.version + 1,
    )


def unlock_layer(state: SemanticLayerState) -> SemanticLayerState:
    """Clear the lock flag; the current layer is kept."""
    return replace(state, is_layer_locked=False, version=state.version + 1)


def suggest_layer(state: SemanticLayerState, layer: int) -> SemanticLayerState:
    """Apply an automatic layer suggestion unless a manual choice holds the lock."""
    _check_layer(layer)
    if state.is_layer_locked or state.current_layer == layer:
        return state
    return replace(state, current_layer=layer, version=state.version + 1)


def undo_layer(state: SemanticLayerState) -> SemanticLayerState:
    """Return to the state saved by the last :func:`set_layer`."""
    if state.previous_state is None:
        return state
    return replace(state.previous_state, previous_state=None, version=state.version + 1)


def focus_unit(
    state: SemanticLayerState,
    unit: Optional[str],
    layer: Optional[int] = None,
    semantic_graph: Optional[SemanticGraph] = None,
) -> SemanticLayerState:
    """Focus on *unit*, optionally switching layer as :func:`set_layer` does.

    Passing ``None`` clears the focus and returns to layer 1 whether or not
    the layer is locked. When *semantic_graph* is given the unit must be one
    of its units or files.
    """
    if unit is None:
        return replace(state, focused_unit=None, current_layer=1, version=state.version + 1)
    if not isinstance(unit, str) or not unit:
        raise InvalidInput("A unit id is required")
    if layer is not None:
        _check_layer(layer)
    if semantic_graph is not None and not semantic_graph.file_snapshot.has_node(unit):
        _find_unit(semantic_graph, unit)

    if layer is None:
        return replace(state, focused_unit=unit, version=state.version + 1)
    return replace(
        state,
        focused_unit=unit,
        current_layer=layer,
        is_layer_locked=True,
        previous_state=_remember(state),
        version=state.version + 1,
    )


def expand_unit(
    state: SemanticLayerState,
    unit_id: str,
    semantic_graph: SemanticGraph,
) -> Tuple[SemanticLayerState, Snapshot]:
    """Expand an aggregate unit into its files.

    Returns:
        The new state and the unit graph rendered with all expanded units.

    Raises:
        OutOfRange: if *unit_id* is a file unit.
        NodeNotFound: if no such unit exists.
    """
    _aggregate_unit(semantic_graph, unit_id)
    new_state = replace(
        state,
        expanded_units=state.expanded_units | {unit_id},
        version=state.version + 1,
    )
    return new_state, expanded_graph(semantic_graph, new_state.expanded_units)


def collapse_unit(
    state: SemanticLayerState,
    unit_id: str,
    semantic_graph: SemanticGraph,
) -> Tuple[SemanticLayerState, Snapshot]:
    """Undo :func:`expand_unit` for one unit."""
    _aggregate_unit(semantic_graph, unit_id)
    remaining: FrozenSet[str] = state.expanded_units - {unit_id}
    new_state = replace(state, expanded_units=remaining, version=state.version + 1)
    return new_state, expanded_graph(semantic_graph, remaining)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _top_edges(graph: Snapshot) -> Snapshot:
    strongest: Dict[str, Edge] = {}
    for edge in graph.edges:
        current = strongest.get(edge.source)
        if current is None or edge.weight > current.weight:
            strongest[edge.source] = edge
    weights = {(edge.source, edge.target): edge.weight for edge in strongest.values()}
    return make_snapshot(graph.nodes, weights)


def _strip_overlays(graph: Snapshot, configuration: LayerConfiguration) -> Snapshot:
    nodes = tuple(
        replace(
            node,
            complexity=node.complexity if configuration.show_complexity else None,
            risk=node.risk if configuration.show_risk else None,
        )
        for node in graph.nodes
    )
    return Snapshot(nodes=nodes, edges=graph.edges)


def _focus_seeds(semantic_graph: SemanticGraph, graph: Snapshot, focused: str) -> Set[str]:
    if graph.has_node(focused):
        return {focused}
    for unit in semantic_graph.selection.units:
        if unit.id == focused and unit.children:
            return {child for child in unit.children if graph.has_node(child)}
    if semantic_graph.file_snapshot.has_node(focused):
        owner = unit_membership(semantic_graph.selection).get(focused)
        if owner and graph.has_node(owner):
            return {owner}
    raise NodeNotFound(focused)


def _neighbourhood(graph: Snapshot, seeds: Set[str], depth: int) -> Snapshot:
    distance = {seed: 0 for seed in seeds}
    queue = deque(sorted(seeds))
    while queue:
        current = queue.popleft()
        if distance[current] >= depth:
            continue
        for neighbour in graph.successors(current) + graph.predecessors(current):
            if neighbour not in distance:
                distance[neighbour] = distance[current] + 1
                queue.append(neighbour)
    nodes = [node for node in graph.nodes if node.id in distance]
    weights = {
        (edge.source, edge.target): edge.weight
        for edge in graph.edges
        if edge.source in distance and edge.target in distance
    }
    return make_snapshot(nodes, weights)


def _centrality_overlay(graph: Snapshot) -> Dict[str, float]:
    count = len(graph.nodes)
    if count <= 1:
        return {node.id: 0.0 for node in graph.nodes}
    return {node.id: round(node.in_degree / (count - 1), 6) for node in graph.nodes}


def _impact_overlay(graph: Snapshot, limit: int) -> Dict[str, float]:
    ranked = sorted(graph.nodes, key=lambda node: (-node.in_degree, node.id))[:limit]
    return {node.id: round(impact(graph, node.id).score, 6) for node in ranked}


def render_layer(
    semantic_graph: SemanticGraph,
    state: SemanticLayerState,
    impact_limit: int = DEFAULT_TOP_N,
) -> LayerView:
    """Apply *state* to *semantic_graph* and return what presentation shows."""
    configuration = get_layer_configuration(state.current_layer)
    if configuration.show_nodes == "files":
        graph = semantic_graph.file_snapshot
    else:
        graph = expanded_graph(semantic_graph, state.expanded_units)

    if state.focused_unit is not None:
        seeds = _focus_seeds(semantic_graph, graph, state.focused_unit)
        graph = _neighbourhood(graph, seeds, state.reveal_depth)
    if configuration.show_edges == "top":
        graph = _top_edges(graph)
    graph = _strip_overlays(graph, configuration)

    metadata: Dict[str, Any] = dict(semantic_graph.metadata)
    metadata.update(
        layer=configuration.number,
        layer_name=configuration.name,
        focused_unit=state.focused_unit,
        expanded_units=sorted(state.expanded_units),
        reveal_depth=state.reveal_depth,
        is_layer_locked=state.is_layer_locked,
        visible_nodes=len(graph.nodes),
        visible_edges=len(graph.edges),
    )
    if configuration.show_centrality:
        metadata["centrality"] = _centrality_overlay(graph)
    if configuration.show_cycles:
        visible = set(graph.node_ids())
        membership = unit_membership(semantic_graph.selection)
        metadata["cycles"] = [
            cycle for cycle in semantic_graph.cycles
            if all(node_id in visible or membership.get(node_id) in visible for node_id in cycle)
        ]
    if configuration.show_impact:
        metadata["impact"] = _impact_overlay(graph, impact_limit)
    return LayerView(configuration=configuration, graph=graph, metadata=metadata)
