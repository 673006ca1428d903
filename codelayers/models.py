"""Core data models passed between extraction, analytics and the layer engine."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .errors import NodeNotFound

FILE_KIND = "file"
FOLDER_KIND = "folder-unit"
CLUSTER_KIND = "cluster-unit"

INTERNAL = "internal"
EXTERNAL = "external"

_UNIT_TYPES = {FILE_KIND: "file", FOLDER_KIND: "folder", CLUSTER_KIND: "cluster"}


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str
    language: Optional[str] = None


@dataclass(frozen=True)
class RawReference:
    """A module specifier exactly as written in source."""
    specifier: str
    line: int
    kind: str = "import"


@dataclass(frozen=True)
class RiskIndicators:
    centrality: float
    complexity: float
    churn: float
    score: float
    high_impact: bool
    in_cycle: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "centrality": round(self.centrality, 6),
            "complexity": round(self.complexity, 6),
            "churn": round(self.churn, 6),
            "score": round(self.score, 6),
            "high_impact": self.high_impact,
            "in_cycle": self.in_cycle,
        }


@dataclass(frozen=True)
class Node:
    id: str
    label: str
    directory: str
    kind: str = FILE_KIND
    in_degree: int = 0
    out_degree: int = 0
    language: Optional[str] = None
    complexity: Optional[int] = None
    risk: Optional[RiskIndicators] = None
    children: Optional[Tuple[str, ...]] = None

    @property
    def unit_type(self) -> str:
        return _UNIT_TYPES[self.kind]

    @property
    def is_aggregate(self) -> bool:
        return self.kind in (FOLDER_KIND, CLUSTER_KIND)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "directory": self.directory,
            "kind": self.kind,
            "unit_type": self.unit_type,
            "in_degree": self.in_degree,
            "out_degree": self.out_degree,
        }
        if self.language is not None:
            payload["language"] = self.language
        if self.complexity is not None:
            payload["complexity"] = self.complexity
        if self.risk is not None:
            payload["risk"] = self.risk.to_dict()
        if self.children is not None:
            payload["children"] = list(self.children)
        return payload


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    weight: int = 1
    kind: str = INTERNAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "kind": self.kind,
        }


@dataclass(frozen=True)
class Snapshot:
    """One immutable (nodes, edges) pair produced by an analysis run.

    ``edges`` only holds internal edges, which are the ones counted in node
    degrees. References that did not resolve to a scanned file are kept in
    ``external_edges`` with the literal specifier as target.
    """
    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    external_edges: Tuple[Edge, ...] = ()

    @cached_property
    def node_index(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}

    @cached_property
    def _successors(self) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            adjacency[edge.source].append(edge.target)
        return adjacency

    @cached_property
    def _predecessors(self) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            adjacency[edge.target].append(edge.source)
        return adjacency

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def has_node(self, node_id: str) -> bool:
        return node_id in self.node_index

    def node(self, node_id: str) -> Node:
        try:
            return self.node_index[node_id]
        except KeyError:
            raise NodeNotFound(node_id) from None

    def successors(self, node_id: str) -> List[str]:
        """Nodes *node_id* imports."""
        self.node(node_id)
        return list(self._successors[node_id])

    def predecessors(self, node_id: str) -> List[str]:
        """Nodes importing *node_id*."""
        self.node(node_id)
        return list(self._predecessors[node_id])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "external_edges": [edge.to_dict() for edge in self.external_edges],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


# ---------------------------------------------------------------------------
# Analytics results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CentralityScore:
    node_id: str
    in_degree: int
    out_degree: int
    score: float


@dataclass(frozen=True)
class FileComplexity:
    path: str
    language: Optional[str]
    score: int
    lines: int


@dataclass(frozen=True)
class ComplexitySummary:
    total_files: int
    average: float
    maximum: int
    top: List[FileComplexity] = field(default_factory=list)


@dataclass(frozen=True)
class ComplexityReport:
    files: List[FileComplexity]
    summary: ComplexitySummary

    def scores(self) -> Dict[str, int]:
        return {entry.path: entry.score for entry in self.files}


@dataclass(frozen=True)
class ImpactResult:
    node_id: str
    forward: List[str]
    backward: List[str]
    score: float


@dataclass(frozen=True)
class ModuleInsights:
    node_id: str
    imports: List[str]
    imported_by: List[str]
    external_dependencies: List[str]
    centrality: float
    impact_score: float
    dependents: int
    dependencies: int
    cycles: List[List[str]]


# ---------------------------------------------------------------------------
# Semantic layers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnitSelection:
    size_category: str
    units: Tuple[Node, ...]
    edges: Tuple[Edge, ...]

    def as_snapshot(self) -> Snapshot:
        return Snapshot(nodes=self.units, edges=self.edges)


@dataclass(frozen=True)
class LayerConfiguration:
    number: int
    name: str
    description: str
    show_nodes: str
    show_edges: str
    show_centrality: bool
    show_complexity: bool
    show_risk: bool
    show_cycles: bool
    show_impact: bool


@dataclass(frozen=True)
class SemanticLayerState:
    """Per-session layer state; every transition yields a new value."""
    current_layer: int = 1
    focused_unit: Optional[str] = None
    expanded_units: FrozenSet[str] = frozenset()
    reveal_depth: int = 3
    is_layer_locked: bool = False
    previous_state: Optional["SemanticLayerState"] = None
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_layer": self.current_layer,
            "focused_unit": self.focused_unit,
            "expanded_units": sorted(self.expanded_units),
            "reveal_depth": self.reveal_depth,
            "is_layer_locked": self.is_layer_locked,
            "previous_state": self.previous_state.to_dict() if self.previous_state else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SemanticLayerState":
        previous = payload.get("previous_state")
        return cls(
            current_layer=int(payload.get("current_layer", 1)),
            focused_unit=payload.get("focused_unit"),
            expanded_units=frozenset(payload.get("expanded_units", [])),
            reveal_depth=int(payload.get("reveal_depth", 3)),
            is_layer_locked=bool(payload.get("is_layer_locked", False)),
            previous_state=cls.from_dict(previous) if previous else None,
            version=int(payload.get("version", 0)),
        )


@dataclass(frozen=True)
class SemanticGraph:
    """File-level snapshot plus the unit view derived from it."""
    file_snapshot: Snapshot
    selection: UnitSelection
    cycles: List[List[str]]
    metadata: Dict[str, Any]

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self.selection.units

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self.selection.edges


@dataclass(frozen=True)
class LayerView:
    """What presentation receives for one state of the layer machine."""
    configuration: LayerConfiguration
    graph: Snapshot
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layer": self.configuration.number,
            "name": self.configuration.name,
            "nodes": [node.to_dict() for node in self.graph.nodes],
            "edges": [edge.to_dict() for edge in self.graph.edges],
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class RepositoryInfo:
    path: str
    name: str
    total_files: int
    languages: List[str]
    scanned_at: str
