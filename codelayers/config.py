"""Configuration paths, language tables and tunables for codelayers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Tuple

BASE_DIR = Path(os.environ.get("CODELAYERS_HOME", str(Path.home() / ".codelayers"))).expanduser()
MEMORY_DIR = BASE_DIR / "memory"
STATE_FILE = BASE_DIR / "state.json"

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping (extensible)
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".go": "go",
    ".java": "java",
    ".cs": "csharp",
    ".rs": "rust",
    ".rb": "ruby",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".php": "php",
}

# Order matters: the first extension that names a scanned file wins.
SOURCE_EXTENSIONS: Tuple[str, ...] = (
    ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs",
    ".py", ".go", ".java", ".cs", ".rs", ".rb",
    ".c", ".h", ".cpp", ".cc", ".hpp", ".php",
)

INDEX_BASENAMES: Tuple[str, ...] = ("index", "__init__", "mod")

SKIP_DIRS = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs", ".next",
    "coverage", "vendor", "target", ".codelayers",
}

# Repository size boundaries (total file count)
SMALL_REPO_LIMIT = 80
MEDIUM_REPO_LIMIT = 500

# Defaults for the tunables that ~/.codelayers/config.toml may override
DEFAULT_RISK_WEIGHTS: Dict[str, float] = {"centrality": 0.5, "complexity": 0.25, "churn": 0.25}
DEFAULT_CLUSTER_AFFINITY = 0.5
DEFAULT_MAX_FILE_SIZE = 1_000_000
DEFAULT_TOP_N = 10
DEFAULT_MAX_CYCLES = 1000


def ensure_base_dirs() -> None:
    """Create base directories for local storage if needed."""
    MEMORY_DIR.mkdir(parents=True, exist_ok=True)
    BASE_DIR.mkdir(parents=True, exist_ok=True)
