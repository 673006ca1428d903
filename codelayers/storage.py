"""Persistence layer for per-project relationship graphs.

Each project lives in its own directory under ``MEMORY_DIR``:

- ``graph.db``: SQLite tables for the file nodes and their edges.
- ``project.json``: metadata of the last analysis run.
- ``layer_state.json``: the layer session state for that project.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .builder import make_snapshot
from .config import ensure_base_dirs
from .models import EXTERNAL, INTERNAL, Node, SemanticLayerState, Snapshot

logger = logging.getLogger(__name__)


# ===================================================================
# ProjectManager  (manages directories / active project)
# ===================================================================

class ProjectManager:
    """Manage project memory directories and active project state."""

    def __init__(self) -> None:
        ensure_base_dirs()

    @property
    def memory_dir(self) -> Path:
        return config.MEMORY_DIR

    @property
    def state_file(self) -> Path:
        return config.STATE_FILE

    def list_projects(self) -> List[str]:
        if not self.memory_dir.exists():
            return []
        return sorted([p.name for p in self.memory_dir.iterdir() if p.is_dir()])

    def project_dir(self, project_name: str) -> Path:
        return self.memory_dir / project_name

    def create_or_get_project(self, project_name: str) -> Path:
        path = self.project_dir(project_name)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def set_current_project(self, project_name: Optional[str]) -> None:
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        self.state_file.write_text(
            json.dumps({"current_project": project_name}, indent=2),
            encoding="utf-8",
        )

    def get_current_project(self) -> Optional[str]:
        if not self.state_file.exists():
            return None
        try:
            payload = json.loads(self.state_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return None
        return payload.get("current_project")

    def unload_project(self) -> None:
        self.set_current_project(None)

    def delete_project(self, project_name: str) -> bool:
        path = self.project_dir(project_name)
        if not path.exists():
            return False
        for child in sorted(path.glob("**/*"), reverse=True):
            if child.is_file():
                child.unlink()
            elif child.is_dir():
                child.rmdir()
        path.rmdir()
        if self.get_current_project() == project_name:
            self.unload_project()
        return True


# ===================================================================
# SnapshotStore  (SQLite graph + JSON side files)
# ===================================================================

class SnapshotStore:
    """Stores the latest snapshot, its metadata and the layer session state."""

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = project_dir
        self.project_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = project_dir / "graph.db"
        self.meta_path = project_dir / "project.json"
        self.state_path = project_dir / "layer_state.json"
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS nodes (
                node_id    TEXT PRIMARY KEY,
                label      TEXT NOT NULL,
                directory  TEXT NOT NULL,
                kind       TEXT NOT NULL,
                language   TEXT,
                complexity INTEGER,
                lines      INTEGER
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS edges (
                src       TEXT NOT NULL,
                dst       TEXT NOT NULL,
                weight    INTEGER NOT NULL,
                edge_kind TEXT NOT NULL
            )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_edges_src ON edges(src)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_edges_dst ON edges(dst)")
        self.conn.commit()

    # ------------------------------------------------------------------
    # Clear / metadata
    # ------------------------------------------------------------------

    def _delete_graph(self) -> None:
        self.conn.execute("DELETE FROM edges")
        self.conn.execute("DELETE FROM nodes")

    def clear(self) -> None:
        """Drop the stored graph and reset the layer session."""
        with self.conn:
            self._delete_graph()
        self.reset_layer_state()

    def set_metadata(self, payload: Dict[str, Any]) -> None:
        self.meta_path.write_text(
            json.dumps(payload, indent=2), encoding="utf-8",
        )

    def get_metadata(self) -> Dict[str, Any]:
        if not self.meta_path.exists():
            return {}
        try:
            return json.loads(self.meta_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def save_snapshot(self, snapshot: Snapshot, lines: Optional[Dict[str, int]] = None) -> None:
        """Replace the stored graph with *snapshot*."""
        lines = lines or {}
        with self.conn:
            self._delete_graph()
            self._insert_graph(snapshot, lines)
        self.reset_layer_state()

    def _insert_graph(self, snapshot: Snapshot, lines: Dict[str, int]) -> None:
        self.conn.executemany(
            """
            INSERT INTO nodes (node_id, label, directory, kind, language, complexity, lines)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    node.id,
                    node.label,
                    node.directory,
                    node.kind,
                    node.language,
                    node.complexity,
                    lines.get(node.id),
                )
                for node in snapshot.nodes
            ],
        )
        self.conn.executemany(
            "INSERT INTO edges (src, dst, weight, edge_kind) VALUES (?, ?, ?, ?)",
            [
                (edge.source, edge.target, edge.weight, edge.kind)
                for edge in snapshot.edges + snapshot.external_edges
            ],
        )

    def load_snapshot(self) -> Snapshot:
        """Rebuild the stored snapshot, with degrees recounted from edges."""
        nodes = [
            Node(
                id=row["node_id"],
                label=row["label"],
                directory=row["directory"],
                kind=row["kind"],
                language=row["language"],
                complexity=row["complexity"],
            )
            for row in self.conn.execute("SELECT * FROM nodes ORDER BY node_id")
        ]
        internal: Dict[tuple, int] = {}
        external: Dict[tuple, int] = {}
        for row in self.conn.execute("SELECT * FROM edges ORDER BY src, dst"):
            bucket = external if row["edge_kind"] == EXTERNAL else internal
            bucket[(row["src"], row["dst"])] = row["weight"]
        return make_snapshot(nodes, internal, external)

    def line_counts(self) -> Dict[str, int]:
        return {
            row["node_id"]: row["lines"]
            for row in self.conn.execute("SELECT node_id, lines FROM nodes WHERE lines IS NOT NULL")
        }

    def get_edges(self, kind: str = INTERNAL) -> List[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM edges WHERE edge_kind = ? ORDER BY src, dst", (kind,),
        ).fetchall()

    # ------------------------------------------------------------------
    # Layer session state
    # ------------------------------------------------------------------

    def save_layer_state(self, state: SemanticLayerState) -> None:
        self.state_path.write_text(
            json.dumps(state.to_dict(), indent=2), encoding="utf-8",
        )

    def load_layer_state(self) -> Optional[SemanticLayerState]:
        if not self.state_path.exists():
            return None
        try:
            return SemanticLayerState.from_dict(json.loads(self.state_path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable layer state %s: %s", self.state_path, exc)
            return None

    def reset_layer_state(self) -> None:
        if self.state_path.exists():
            self.state_path.unlink()
