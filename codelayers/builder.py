"""Resolve raw references into an immutable graph snapshot."""

from __future__ import annotations

import logging
import posixpath
from collections import Counter
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .config import INDEX_BASENAMES, SOURCE_EXTENSIONS
from .errors import InvalidInput
from .extractor import detect_language, extract_references, relative_specifiers
from .models import EXTERNAL, FILE_KIND, INTERNAL, Edge, Node, Snapshot, SourceFile

logger = logging.getLogger(__name__)

FileInput = Union[SourceFile, Mapping[str, Any]]


def normalize_path(path: str) -> str:
    """Repository-relative POSIX form of *path* (no leading ``./``)."""
    normalized = posixpath.normpath(path.replace("\\", "/"))
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def coerce_files(files: Optional[Iterable[FileInput]]) -> List[SourceFile]:
    """Validate collaborator input and return normalised :class:`SourceFile` items.

    Raises:
        InvalidInput: when an item has no path, no text content, or a path
            appears twice.
    """
    if files is None:
        raise InvalidInput("A list of files is required")
    if isinstance(files, (str, bytes, Mapping)):
        raise InvalidInput("Files must be a sequence of file records")

    result: List[SourceFile] = []
    seen: Set[str] = set()
    for index, item in enumerate(files):
        if isinstance(item, SourceFile):
            path, content, language = item.path, item.content, item.language
        elif isinstance(item, Mapping):
            path = item.get("path")
            content = item.get("content")
            language = item.get("language")
        else:
            raise InvalidInput(f"File #{index} is not a file record")

        if not isinstance(path, str) or not path.strip():
            raise InvalidInput(f"File #{index} is missing its path")
        if not isinstance(content, str):
            raise InvalidInput(f"File '{path}' is missing its content")
        if language is not None and not isinstance(language, str):
            raise InvalidInput(f"File '{path}' has an invalid language tag")

        path = normalize_path(path)
        if path.startswith("../") or path == ".." or posixpath.isabs(path):
            raise InvalidInput(f"File path '{path}' is not repository-relative")
        if path in seen:
            raise InvalidInput(f"File '{path}' appears more than once")
        seen.add(path)
        result.append(SourceFile(path=path, content=content, language=language or detect_language(path)))
    return result


def resolve_specifier(relative: str, importer: str, file_set: Set[str]) -> Optional[str]:
    """Resolve a relative specifier against the importer's directory.

    Candidates, first match wins: the literal path, the path with each source
    extension appended, then an index file inside it. Returns None when no
    candidate is a scanned file or the path leaves the repository.
    """
    base = posixpath.dirname(importer)
    target = posixpath.normpath(posixpath.join(base, relative)) if base else posixpath.normpath(relative)
    if target == ".." or target.startswith("../"):
        return None
    if target == ".":
        target = ""

    if target and target in file_set:
        return target
    if target:
        for ext in SOURCE_EXTENSIONS:
            candidate = f"{target}{ext}"
            if candidate in file_set:
                return candidate
    prefix = f"{target}/" if target else ""
    for basename in INDEX_BASENAMES:
        for ext in SOURCE_EXTENSIONS:
            candidate = f"{prefix}{basename}{ext}"
            if candidate in file_set:
                return candidate
    return None


def compute_degrees(nodes: Sequence[Node], edges: Sequence[Edge]) -> Tuple[Node, ...]:
    """Return *nodes* with in/out degrees recounted from *edges*."""
    in_degree: Counter = Counter(edge.target for edge in edges)
    out_degree: Counter = Counter(edge.source for edge in edges)
    return tuple(
        Node(
            id=node.id,
            label=node.label,
            directory=node.directory,
            kind=node.kind,
            in_degree=in_degree.get(node.id, 0),
            out_degree=out_degree.get(node.id, 0),
            language=node.language,
            complexity=node.complexity,
            risk=node.risk,
            children=node.children,
        )
        for node in nodes
    )


def make_snapshot(
    nodes: Iterable[Node],
    edge_weights: Mapping[Tuple[str, str], int],
    external_weights: Optional[Mapping[Tuple[str, str], int]] = None,
) -> Snapshot:
    """Assemble a snapshot with stable ordering and recounted degrees."""
    edges = tuple(
        Edge(source=src, target=dst, weight=weight, kind=INTERNAL)
        for (src, dst), weight in sorted(edge_weights.items())
    )
    external = tuple(
        Edge(source=src, target=dst, weight=weight, kind=EXTERNAL)
        for (src, dst), weight in sorted((external_weights or {}).items())
    )
    ordered = sorted(nodes, key=lambda node: node.id)
    return Snapshot(nodes=compute_degrees(ordered, edges), edges=edges, external_edges=external)


def _file_node(source: SourceFile) -> Node:
    directory = posixpath.dirname(source.path) or "."
    return Node(
        id=source.path,
        label=posixpath.basename(source.path),
        directory=directory,
        kind=FILE_KIND,
        language=source.language,
    )


def build_graph(files: Optional[Iterable[FileInput]]) -> Snapshot:
    """Build the file-level dependency snapshot for one repository.

    Every file becomes a node, even without edges. Relative references that
    resolve to a scanned file become weighted internal edges; everything
    else is recorded as an external edge. A file whose extraction fails
    contributes no references and the build continues.

    Raises:
        InvalidInput: when *files* is malformed (see :func:`coerce_files`).
    """
    sources = coerce_files(files)
    if not sources:
        return Snapshot()

    file_set = {source.path for source in sources}
    internal: Counter = Counter()
    external: Counter = Counter()

    for source in sources:
        try:
            references = extract_references(source.path, source.language, source.content)
        except Exception as exc:
            logger.warning("Failed to extract references from %s: %s", source.path, exc)
            continue

        for reference, relative in relative_specifiers(source.language, references):
            target = resolve_specifier(relative, source.path, file_set) if relative else None
            if target is None:
                external[(source.path, reference.specifier)] += 1
                continue
            if target == source.path:
                logger.debug("Ignoring self-import in %s line %d", source.path, reference.line)
                continue
            internal[(source.path, target)] += 1

    snapshot = make_snapshot((_file_node(source) for source in sources), internal, external)
    logger.info(
        "Built graph: %d nodes, %d edges, %d external references",
        len(snapshot.nodes), len(snapshot.edges), len(snapshot.external_edges),
    )
    return snapshot
