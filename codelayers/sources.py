"""Local collaborators: file source, churn loader and repository metadata."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .builder import normalize_path
from .config import DEFAULT_MAX_FILE_SIZE, LANGUAGE_MAP, SKIP_DIRS
from .errors import InvalidInput, NotADirectory, NotFound
from .models import RepositoryInfo, SourceFile

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def resolve_root(root: Optional[PathLike]) -> Path:
    """Validate *root* as an existing directory.

    Raises:
        InvalidInput: if no path is given.
        NotFound: if the path does not exist.
        NotADirectory: if the path is a file.
    """
    if root is None or not str(root).strip():
        raise InvalidInput("A repository path is required")
    path = Path(root).expanduser().resolve()
    if not path.exists():
        raise NotFound(f"Repository path does not exist: {path}")
    if not path.is_dir():
        raise NotADirectory(f"Repository path is not a directory: {path}")
    return path


def iter_source_paths(root: Path) -> List[Path]:
    """Supported source files under *root*, sorted, skipping ignored directories."""
    paths = []
    for file_path in sorted(root.rglob("*")):
        relative = file_path.relative_to(root)
        if any(part in SKIP_DIRS or part.endswith(".egg-info") for part in relative.parts[:-1]):
            continue
        if file_path.suffix.lower() not in LANGUAGE_MAP or not file_path.is_file():
            continue
        paths.append(file_path)
    return paths


def collect_source_files(
    root: Optional[PathLike],
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> List[SourceFile]:
    """Read every supported source file below *root*.

    Files larger than *max_file_size* bytes and files that cannot be read
    are skipped with a warning.
    """
    base = resolve_root(root)
    files: List[SourceFile] = []
    for file_path in iter_source_paths(base):
        rel_path = file_path.relative_to(base).as_posix()
        try:
            size = file_path.stat().st_size
            if size > max_file_size:
                logger.warning("Skipping %s: %d bytes exceeds limit of %d", rel_path, size, max_file_size)
                continue
            content = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Failed to read %s: %s", rel_path, exc)
            continue
        files.append(SourceFile(path=rel_path, content=content, language=LANGUAGE_MAP[file_path.suffix.lower()]))
    logger.info("Collected %d source files from %s", len(files), base)
    return files


def scan_repository(root: Optional[PathLike]) -> RepositoryInfo:
    """Repository metadata used for size classification."""
    base = resolve_root(root)
    paths = iter_source_paths(base)
    languages = sorted({LANGUAGE_MAP[path.suffix.lower()] for path in paths})
    return RepositoryInfo(
        path=str(base),
        name=base.name,
        total_files=len(paths),
        languages=languages,
        scanned_at=datetime.now().isoformat(),
    )


def load_churn(path: Optional[PathLike]) -> Dict[str, float]:
    """Load a JSON object mapping repository-relative paths to churn scores.

    Raises:
        NotFound: if the file does not exist.
        InvalidInput: if the file is not a JSON object of non-negative numbers.
    """
    if path is None:
        return {}
    churn_path = Path(path).expanduser()
    if not churn_path.is_file():
        raise NotFound(f"Churn file does not exist: {churn_path}")
    try:
        payload = json.loads(churn_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"Churn file is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise InvalidInput("Churn file must contain a JSON object")

    churn: Dict[str, float] = {}
    for file_path, value in payload.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise InvalidInput(f"Churn for '{file_path}' must be a number")
        if value < 0:
            raise InvalidInput(f"Churn for '{file_path}' must not be negative")
        churn[normalize_path(file_path)] = float(value)
    return churn
