"""Tests for storage layer (ProjectManager and SnapshotStore)."""

import json
import sqlite3

import pytest

from codelayers.models import EXTERNAL, INTERNAL, Node, SemanticLayerState, Snapshot
from codelayers.semantic_layers import create_layer_state, set_layer
from codelayers.storage import ProjectManager, SnapshotStore


class TestProjectManager:
    """Tests for ProjectManager."""

    def test_create_project(self, temp_project_manager: ProjectManager):
        """Test creating a new project."""
        pm = temp_project_manager
        project_dir = pm.create_or_get_project("TestProject")

        assert project_dir.exists()
        assert project_dir.is_dir()
        assert "TestProject" in pm.list_projects()

    def test_list_projects(self, temp_project_manager: ProjectManager):
        """Test listing projects."""
        pm = temp_project_manager
        assert pm.list_projects() == []

        pm.create_or_get_project("Project2")
        pm.create_or_get_project("Project1")

        assert pm.list_projects() == ["Project1", "Project2"]

    def test_set_and_get_current_project(self, temp_project_manager: ProjectManager):
        """Test setting and getting current project."""
        pm = temp_project_manager
        pm.create_or_get_project("MyProject")
        pm.set_current_project("MyProject")

        assert pm.get_current_project() == "MyProject"

    def test_unload_project(self, temp_project_manager: ProjectManager):
        """Test unloading current project."""
        pm = temp_project_manager
        pm.create_or_get_project("MyProject")
        pm.set_current_project("MyProject")

        pm.unload_project()
        assert pm.get_current_project() is None

    def test_corrupt_state_file(self, temp_project_manager: ProjectManager):
        """An unreadable state file means no project is loaded."""
        pm = temp_project_manager
        pm.state_file.write_text("{not json", encoding="utf-8")
        assert pm.get_current_project() is None

    def test_delete_project(self, temp_project_manager: ProjectManager):
        """Deleting the current project also unloads it."""
        pm = temp_project_manager
        project_dir = pm.create_or_get_project("ToDelete")
        (project_dir / "nested").mkdir()
        (project_dir / "nested" / "file.txt").write_text("x", encoding="utf-8")
        pm.set_current_project("ToDelete")

        assert pm.delete_project("ToDelete") is True
        assert "ToDelete" not in pm.list_projects()
        assert pm.get_current_project() is None

    def test_delete_nonexistent_project(self, temp_project_manager: ProjectManager):
        """Test deleting a project that doesn't exist."""
        assert temp_project_manager.delete_project("DoesNotExist") is False


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_snapshot_round_trip(self, temp_snapshot_store: SnapshotStore, sample_project_snapshot: Snapshot):
        """A stored snapshot loads back identical, degrees included."""
        store = temp_snapshot_store
        store.save_snapshot(sample_project_snapshot, lines={"src/App.js": 12})

        loaded = store.load_snapshot()
        assert loaded.to_json() == sample_project_snapshot.to_json()
        assert store.line_counts() == {"src/App.js": 12}

    def test_edges_by_kind(self, temp_snapshot_store: SnapshotStore, sample_project_snapshot: Snapshot):
        """Internal and external edges are kept apart."""
        store = temp_snapshot_store
        store.save_snapshot(sample_project_snapshot)

        assert len(store.get_edges(INTERNAL)) == 7
        external = store.get_edges(EXTERNAL)
        assert sorted(row["dst"] for row in external) == ["axios", "json", "react", "react"]

    def test_save_replaces_previous_snapshot(self, temp_snapshot_store: SnapshotStore, five_file_snapshot: Snapshot):
        """Saving twice keeps only the latest graph."""
        store = temp_snapshot_store
        store.save_snapshot(five_file_snapshot)
        smaller = Snapshot(nodes=(Node(id="a.js", label="a.js", directory="."),))
        store.save_snapshot(smaller)

        assert store.load_snapshot().node_ids() == ["a.js"]
        assert store.get_edges() == []

    def test_complexity_is_stored(self, temp_snapshot_store: SnapshotStore):
        """Optional node columns survive a round trip."""
        store = temp_snapshot_store
        node = Node(id="a.py", label="a.py", directory=".", language="python", complexity=4)
        store.save_snapshot(Snapshot(nodes=(node,)))

        loaded = store.load_snapshot().node("a.py")
        assert loaded.language == "python"
        assert loaded.complexity == 4

    def test_empty_store(self, temp_snapshot_store: SnapshotStore):
        """A fresh store has an empty snapshot and no metadata."""
        assert temp_snapshot_store.load_snapshot().is_empty
        assert temp_snapshot_store.get_metadata() == {}
        assert temp_snapshot_store.load_layer_state() is None

    def test_metadata(self, temp_snapshot_store: SnapshotStore):
        """Test metadata persistence."""
        store = temp_snapshot_store
        store.set_metadata({"project_root": "/repo", "total_files": 3})

        assert store.get_metadata() == {"project_root": "/repo", "total_files": 3}
        assert json.loads(store.meta_path.read_text(encoding="utf-8"))["total_files"] == 3

    def test_layer_state_round_trip(self, temp_snapshot_store: SnapshotStore):
        """Layer state, including the one-slot history, is persisted."""
        store = temp_snapshot_store
        state = set_layer(create_layer_state("medium"), 3)
        store.save_layer_state(state)

        loaded = store.load_layer_state()
        assert loaded == state
        assert loaded.previous_state == SemanticLayerState(reveal_depth=2)

    def test_unreadable_layer_state(self, temp_snapshot_store: SnapshotStore):
        """A corrupt state file is discarded rather than raising."""
        store = temp_snapshot_store
        store.state_path.write_text("[1, 2", encoding="utf-8")
        assert store.load_layer_state() is None

    def test_clear_resets_layer_state(self, temp_snapshot_store: SnapshotStore, five_file_snapshot: Snapshot):
        """Re-indexing starts a fresh layer session."""
        store = temp_snapshot_store
        store.save_snapshot(five_file_snapshot)
        store.save_layer_state(set_layer(create_layer_state(), 2))

        store.clear()
        assert store.load_layer_state() is None
        assert store.load_snapshot().is_empty

    def test_failed_save_keeps_previous_graph(self, temp_snapshot_store: SnapshotStore, five_file_snapshot: Snapshot):
        """A save that fails part-way leaves the stored graph and layer session alone."""
        store = temp_snapshot_store
        store.save_snapshot(five_file_snapshot)
        state = set_layer(create_layer_state(), 2)
        store.save_layer_state(state)

        node = Node(id="a.js", label="a.js", directory=".")
        with pytest.raises(sqlite3.IntegrityError):
            store.save_snapshot(Snapshot(nodes=(node, node)))

        assert store.load_snapshot().to_json() == five_file_snapshot.to_json()
        assert store.load_layer_state() == state

    def test_reopen_store(self, temp_dir, five_file_snapshot: Snapshot):
        """Data survives closing and reopening the database."""
        store = SnapshotStore(temp_dir / "proj")
        store.save_snapshot(five_file_snapshot)
        store.close()

        reopened = SnapshotStore(temp_dir / "proj")
        try:
            assert reopened.load_snapshot().to_json() == five_file_snapshot.to_json()
        finally:
            reopened.close()
