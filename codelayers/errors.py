"""Error kinds raised by the graph engine and its adapters.

Unresolved imports are never errors: they are recorded as external edges.
"""

from __future__ import annotations


class CodeLayersError(Exception):
    """Base class for every error the engine raises on purpose."""


class InvalidInput(CodeLayersError, ValueError):
    """Malformed or missing required fields (no path, no content, bad k)."""


class NotFound(CodeLayersError, LookupError):
    """A repository path or graph element that does not exist."""


class NodeNotFound(NotFound, KeyError):
    """A node id that is absent from the snapshot being queried."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node '{node_id}' not found in snapshot.")
        self.node_id = node_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class NotADirectory(CodeLayersError):
    """A path resolved to a file where a directory was required."""


class OutOfRange(CodeLayersError, ValueError):
    """A layer number outside 1-4, or a non-aggregate unit passed to expand."""


_CLIENT_ERRORS = (InvalidInput, NotFound, NotADirectory)


def is_client_error(exc: BaseException) -> bool:
    """Return True when *exc* is something the caller can correct."""
    return isinstance(exc, _CLIENT_ERRORS)
