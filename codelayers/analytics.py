"""Graph analytics over an immutable snapshot.

Centrality, cycle detection, shortest paths and reachability are computed
on a :mod:`networkx` view of the snapshot. Complexity scoring works on raw
file content, after comments and string literals have been blanked.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections import deque
from typing import Iterable, List, Optional, Set

import networkx as nx

from .builder import FileInput, coerce_files
from .config import DEFAULT_TOP_N
from .errors import InvalidInput
from .extractor import strip_comments
from .models import (
    CentralityScore,
    ComplexityReport,
    ComplexitySummary,
    FileComplexity,
    ImpactResult,
    ModuleInsights,
    Node,
    Snapshot,
)

logger = logging.getLogger(__name__)

_DECISION_KEYWORDS = re.compile(
    r"\b(?:if|elif|elsif|for|foreach|while|case|when|catch|except|rescue)\b"
)
_DECISION_OPERATORS = re.compile(r"&&|\|\||\?\?")
_WORD_OPERATORS = re.compile(r"\b(?:and|or)\b")
_WORD_OPERATOR_LANGUAGES = {"python", "ruby"}


def to_digraph(snapshot: Snapshot) -> nx.DiGraph:
    """Directed networkx graph of the snapshot's internal edges."""
    graph = nx.DiGraph()
    graph.add_nodes_from(snapshot.node_ids())
    for edge in snapshot.edges:
        graph.add_edge(edge.source, edge.target, weight=edge.weight)
    return graph


# ---------------------------------------------------------------------------
# Centrality
# ---------------------------------------------------------------------------

def centrality_score(snapshot: Snapshot, node_id: str) -> float:
    node = snapshot.node(node_id)
    total = len(snapshot.nodes)
    if total <= 1:
        return 0.0
    return node.in_degree / (total - 1)


def analyze_centrality(snapshot: Snapshot) -> List[CentralityScore]:
    """Rank nodes by normalised in-degree.

    Ties are broken by out-degree (descending) and then id, so the ranking
    is stable across runs.
    """
    total = len(snapshot.nodes)
    denominator = total - 1 if total > 1 else 0
    scores = [
        CentralityScore(
            node_id=node.id,
            in_degree=node.in_degree,
            out_degree=node.out_degree,
            score=node.in_degree / denominator if denominator else 0.0,
        )
        for node in snapshot.nodes
    ]
    scores.sort(key=lambda item: (-item.score, -item.out_degree, item.node_id))
    return scores


def most_used(snapshot: Snapshot, k: int = DEFAULT_TOP_N) -> List[Node]:
    """The *k* nodes with the highest in-degree.

    Raises:
        InvalidInput: if *k* is negative or not an integer.
    """
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidInput("k must be an integer")
    if k < 0:
        raise InvalidInput("k must not be negative")
    ranked = sorted(snapshot.nodes, key=lambda node: (-node.in_degree, node.id))
    return ranked[: min(k, len(ranked))]


# ---------------------------------------------------------------------------
# Complexity
# ---------------------------------------------------------------------------

def complexity_score(content: str, language: Optional[str]) -> int:
    """Rough cyclomatic complexity: 1 + number of decision points."""
    cleaned = strip_comments(content, language, blank_strings=True)
    score = 1
    score += len(_DECISION_KEYWORDS.findall(cleaned))
    score += len(_DECISION_OPERATORS.findall(cleaned))
    if language in _WORD_OPERATOR_LANGUAGES:
        score += len(_WORD_OPERATORS.findall(cleaned))
    return score


def analyze_complexity(files: Iterable[FileInput], top_n: int = DEFAULT_TOP_N) -> ComplexityReport:
    """Score every file and summarise the results.

    Args:
        files: ``SourceFile`` objects or mappings with ``path`` and ``content``
        top_n: how many of the most complex files the summary lists

    Returns:
        Report with one entry per file (input order) and a summary.
    """
    if top_n < 0:
        raise InvalidInput("top_n must not be negative")
    entries = []
    for source in coerce_files(files):
        lines = source.content.count("\n") + 1 if source.content else 0
        entries.append(
            FileComplexity(
                path=source.path,
                language=source.language,
                score=complexity_score(source.content, source.language),
                lines=lines,
            )
        )

    if not entries:
        return ComplexityReport(files=[], summary=ComplexitySummary(total_files=0, average=0.0, maximum=0))

    ranked = sorted(entries, key=lambda entry: (-entry.score, entry.path))
    summary = ComplexitySummary(
        total_files=len(entries),
        average=sum(entry.score for entry in entries) / len(entries),
        maximum=ranked[0].score,
        top=ranked[:top_n],
    )
    return ComplexityReport(files=entries, summary=summary)


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------

def _canonical(cycle: List[str]) -> tuple:
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:] + cycle[:pivot])


def find_cycles(snapshot: Snapshot, limit: Optional[int] = None) -> List[List[str]]:
    """Find elementary cycles, each rotated to start at its smallest id.

    Cycles visiting the same nodes in a different order are reported
    separately. At most *limit* cycles are enumerated when given.
    """
    if limit is not None and limit < 0:
        raise InvalidInput("limit must not be negative")
    if not snapshot.edges:
        return []

    found = nx.simple_cycles(to_digraph(snapshot))
    if limit is not None:
        found = itertools.islice(found, limit)

    unique = {_canonical(cycle) for cycle in found}
    ordered = sorted(unique, key=lambda cycle: (len(cycle), cycle))
    if limit is not None and len(ordered) == limit:
        logger.info("Cycle enumeration stopped at %d cycles", limit)
    return [list(cycle) for cycle in ordered]


def strongly_connected_groups(snapshot: Snapshot) -> List[List[str]]:
    """Groups of mutually reachable nodes (size > 1), largest first."""
    groups = [
        sorted(component)
        for component in nx.strongly_connected_components(to_digraph(snapshot))
        if len(component) > 1
    ]
    groups.sort(key=lambda group: (-len(group), group))
    return groups


# ---------------------------------------------------------------------------
# Paths and reachability
# ---------------------------------------------------------------------------

def shortest_path(snapshot: Snapshot, source: str, target: str) -> Optional[List[str]]:
    """Shortest import chain from *source* to *target*, or None.

    Raises:
        NodeNotFound: if either id is absent from the snapshot.
    """
    snapshot.node(source)
    snapshot.node(target)
    if source == target:
        return [source]
    try:
        return nx.shortest_path(to_digraph(snapshot), source, target)
    except nx.NetworkXNoPath:
        return None


def _reachable(start: str, neighbours) -> List[str]:
    visited: Set[str] = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for neighbour in neighbours(current):
            if neighbour not in visited:
                visited.add(neighbour)
                queue.append(neighbour)
    visited.discard(start)
    return sorted(visited)


def impact(snapshot: Snapshot, node_id: str) -> ImpactResult:
    """Blast radius of changing *node_id*.

    ``forward`` holds every node that depends on it transitively and
    ``backward`` every node it depends on. The score is the forward set size
    divided by the total node count.
    """
    snapshot.node(node_id)
    forward = _reachable(node_id, snapshot.predecessors)
    backward = _reachable(node_id, snapshot.successors)
    return ImpactResult(
        node_id=node_id,
        forward=forward,
        backward=backward,
        score=len(forward) / len(snapshot.nodes),
    )


def module_insights(snapshot: Snapshot, node_id: str, max_cycles: Optional[int] = None) -> ModuleInsights:
    """Everything known about one module, in one place."""
    snapshot.node(node_id)
    reach = impact(snapshot, node_id)
    external = sorted({edge.target for edge in snapshot.external_edges if edge.source == node_id})
    cycles = [cycle for cycle in find_cycles(snapshot, limit=max_cycles) if node_id in cycle]
    return ModuleInsights(
        node_id=node_id,
        imports=sorted(snapshot.successors(node_id)),
        imported_by=sorted(snapshot.predecessors(node_id)),
        external_dependencies=external,
        centrality=centrality_score(snapshot, node_id),
        impact_score=reach.score,
        dependents=len(reach.forward),
        dependencies=len(reach.backward),
        cycles=cycles,
    )
