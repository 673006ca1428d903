"""Pytest configuration and fixtures for codelayers tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from codelayers.builder import build_graph
from codelayers.models import Snapshot, SourceFile
from codelayers.sources import collect_source_files
from codelayers.storage import ProjectManager, SnapshotStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch) -> Path:
    """Point every codelayers path at a temporary home directory."""
    home = temp_dir / "home"
    monkeypatch.setattr("codelayers.config.BASE_DIR", home)
    monkeypatch.setattr("codelayers.config.MEMORY_DIR", home / "memory")
    monkeypatch.setattr("codelayers.config.STATE_FILE", home / "state.json")
    return home


@pytest.fixture
def temp_project_manager(temp_home: Path) -> ProjectManager:
    """Create a ProjectManager with temporary storage."""
    return ProjectManager()


@pytest.fixture
def temp_snapshot_store(temp_dir: Path) -> Generator[SnapshotStore, None, None]:
    """Create a SnapshotStore with temporary storage."""
    store = SnapshotStore(temp_dir / "test_project")
    yield store
    store.close()


@pytest.fixture
def five_files() -> List[SourceFile]:
    """index -> utils, index -> App, App -> utils, App -> Header, App -> api."""
    return [
        SourceFile("src/index.js", "import App from './App';\nimport { helper } from './utils';\n"),
        SourceFile(
            "src/App.js",
            "import { helper } from './utils';\n"
            "import Header from './components/Header';\n"
            "import { fetchData } from './api';\n",
        ),
        SourceFile("src/utils.js", "export const helper = (x) => x;\n"),
        SourceFile("src/components/Header.js", "export default function Header() {}\n"),
        SourceFile("src/api.js", "export function fetchData() {}\n"),
    ]


@pytest.fixture
def five_file_snapshot(five_files: List[SourceFile]) -> Snapshot:
    return build_graph(five_files)


def make_graph(*pairs: str, extra: tuple = ()) -> Snapshot:
    """Build a snapshot from ``"a->b"`` pairs using one-line JS files."""
    imports = {}
    for pair in pairs:
        source, target = pair.split("->")
        imports.setdefault(source, []).append(target)
        imports.setdefault(target, [])
    for name in extra:
        imports.setdefault(name, [])
    files = [
        SourceFile(
            f"{name}.js",
            "".join(f"import './{target}';\n" for target in targets),
        )
        for name, targets in imports.items()
    ]
    return build_graph(files)


@pytest.fixture
def graph_factory():
    """Expose :func:`make_graph` to tests."""
    return make_graph


@pytest.fixture
def sample_project_snapshot(sample_project_path: Path) -> Snapshot:
    return build_graph(collect_source_files(sample_project_path))
