"""Helpers shared by the command modules."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from .errors import CodeLayersError, NotFound, is_client_error
from .orchestrator import AnalysisOrchestrator
from .storage import ProjectManager, SnapshotStore

console = Console()

logger = logging.getLogger(__name__)


def open_current_store(pm: ProjectManager) -> SnapshotStore:
    project = pm.get_current_project()
    if not project:
        raise NotFound("No project loaded. Use 'codelayers load-project <name>' or run 'codelayers index <path>'.")
    project_dir = pm.project_dir(project)
    if not project_dir.exists():
        raise NotFound(f"Loaded project '{project}' does not exist in memory.")
    return SnapshotStore(project_dir)


@contextmanager
def open_orchestrator() -> Iterator[AnalysisOrchestrator]:
    """Orchestrator over the active project's store, closed on exit."""
    store = open_current_store(ProjectManager())
    try:
        yield AnalysisOrchestrator(store)
    finally:
        store.close()


def fail(exc: CodeLayersError) -> NoReturn:
    """Report *exc* and exit: 2 for caller-correctable errors, 1 otherwise."""
    logger.debug("Command failed", exc_info=exc)
    console.print(f"[red]✗[/red] {escape(str(exc))}")
    raise typer.Exit(code=2 if is_client_error(exc) else 1)
