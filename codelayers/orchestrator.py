"""Orchestrator running analysis requests against one stored project."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import analytics, semantic_layers
from .builder import build_graph
from .config_manager import load_analysis_config
from .models import (
    CentralityScore,
    ComplexityReport,
    ComplexitySummary,
    FileComplexity,
    ImpactResult,
    LayerView,
    ModuleInsights,
    Node,
    SemanticGraph,
    SemanticLayerState,
    Snapshot,
)
from .sources import collect_source_files, load_churn
from .storage import SnapshotStore

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Coordinates extraction, analytics and the layer engine for one store."""

    def __init__(self, store: SnapshotStore, analysis_config: Optional[Dict[str, Any]] = None):
        self.store = store
        self.settings = analysis_config if analysis_config is not None else load_analysis_config()
        self._snapshot: Optional[Snapshot] = None
        self._semantic_graph: Optional[SemanticGraph] = None

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index(self, project_root: Path, churn_file: Optional[Path] = None) -> Dict[str, int]:
        """Scan *project_root*, build its graph and replace the stored one."""
        churn = load_churn(churn_file)
        files = collect_source_files(project_root, max_file_size=int(self.settings["max_file_size"]))
        snapshot = build_graph(files)
        report = analytics.analyze_complexity(files, top_n=int(self.settings["top_n"]))
        scores = report.scores()
        snapshot = replace(
            snapshot,
            nodes=tuple(replace(node, complexity=scores.get(node.id)) for node in snapshot.nodes),
        )

        self.store.save_snapshot(snapshot, lines={entry.path: entry.lines for entry in report.files})
        root = Path(project_root).expanduser().resolve()
        self.store.set_metadata(
            {
                "project_root": str(root),
                "name": root.name,
                "total_files": len(files),
                "languages": sorted({f.language for f in files if f.language}),
                "node_count": len(snapshot.nodes),
                "edge_count": len(snapshot.edges),
                "external_count": len(snapshot.external_edges),
                "churn": churn,
                "indexed_at": datetime.now().isoformat(),
            }
        )
        self._snapshot = snapshot
        self._semantic_graph = None
        logger.info("Indexed %s: %d files, %d edges", root, len(snapshot.nodes), len(snapshot.edges))
        return {
            "files": len(snapshot.nodes),
            "edges": len(snapshot.edges),
            "external": len(snapshot.external_edges),
        }

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        if self._snapshot is None:
            self._snapshot = self.store.load_snapshot()
        return self._snapshot

    def centrality(self) -> List[CentralityScore]:
        return analytics.analyze_centrality(self.snapshot())

    def complexity(self, top_n: Optional[int] = None) -> ComplexityReport:
        """Complexity report rebuilt from the scores stored at index time."""
        top_n = int(self.settings["top_n"]) if top_n is None else top_n
        lines = self.store.line_counts()
        entries = [
            FileComplexity(path=node.id, language=node.language, score=node.complexity, lines=lines.get(node.id, 0))
            for node in self.snapshot().nodes
            if node.complexity is not None
        ]
        if not entries:
            return ComplexityReport(files=[], summary=ComplexitySummary(total_files=0, average=0.0, maximum=0))
        ranked = sorted(entries, key=lambda entry: (-entry.score, entry.path))
        return ComplexityReport(
            files=entries,
            summary=ComplexitySummary(
                total_files=len(entries),
                average=sum(entry.score for entry in entries) / len(entries),
                maximum=ranked[0].score,
                top=ranked[:top_n],
            ),
        )

    def cycles(self) -> List[List[str]]:
        return analytics.find_cycles(self.snapshot(), limit=self.settings["max_cycles"])

    def most_used(self, k: Optional[int] = None) -> List[Node]:
        return analytics.most_used(self.snapshot(), int(self.settings["top_n"]) if k is None else k)

    def shortest_path(self, source: str, target: str) -> Optional[List[str]]:
        return analytics.shortest_path(self.snapshot(), source, target)

    def impact(self, node_id: str) -> ImpactResult:
        return analytics.impact(self.snapshot(), node_id)

    def insights(self, node_id: str) -> ModuleInsights:
        return analytics.module_insights(self.snapshot(), node_id, max_cycles=self.settings["max_cycles"])

    # ------------------------------------------------------------------
    # Semantic layers
    # ------------------------------------------------------------------

    def semantic_graph(self) -> SemanticGraph:
        if self._semantic_graph is None:
            metadata = self.store.get_metadata()
            snapshot = self.snapshot()
            self._semantic_graph = semantic_layers.process_for_semantic_layers(
                snapshot,
                total_files=int(metadata.get("total_files", len(snapshot.nodes))),
                churn=metadata.get("churn") or None,
                weights=self.settings["risk_weights"],
                cluster_affinity=float(self.settings["cluster_affinity"]),
                max_cycles=self.settings["max_cycles"],
            )
        return self._semantic_graph

    def layer_state(self) -> SemanticLayerState:
        state = self.store.load_layer_state()
        if state is None:
            category = self.semantic_graph().metadata["size_category"]
            state = semantic_layers.create_layer_state(category)
        return state

    def transition(self, change: Callable[[SemanticLayerState], SemanticLayerState]) -> SemanticLayerState:
        """Apply *change* to the stored layer state and persist the result."""
        state = change(self.layer_state())
        self.store.save_layer_state(state)
        return state

    def render(self, state: Optional[SemanticLayerState] = None) -> LayerView:
        return semantic_layers.render_layer(
            self.semantic_graph(),
            state if state is not None else self.layer_state(),
            impact_limit=int(self.settings["top_n"]),
        )
