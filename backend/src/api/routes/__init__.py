"""HTTP API route handlers."""

from . import assistant, graph, notes, search, system

__all__ = ["notes", "search", "graph", "assistant", "system"]
