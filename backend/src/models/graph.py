"""Graph data models."""

from typing import List

from pydantic import Field

from .base import CamelModel
from .note import NoteType


class GraphNode(CamelModel):
    """Represents a single note in the graph."""
    id: str = Field(..., description="Note id")
    label: str = Field(..., description="Display title of the note")
    type: NoteType = Field(NoteType.DOCUMENT, description="Note type")
    tags: List[str] = Field(default_factory=list)


class GraphLink(CamelModel):
    """Represents a directed connection between two notes."""
    source: str = Field(..., description="ID of the source note")
    target: str = Field(..., description="ID of the target note")


class GraphData(CamelModel):
    """Nodes and edges of a global or local graph."""
    nodes: List[GraphNode]
    links: List[GraphLink]


class ConnectedNote(CamelModel):
    """A note ranked by its number of links in either direction."""
    id: str
    title: str
    connections: int = Field(..., ge=0)


class GraphStats(CamelModel):
    """Connectivity statistics over the whole note graph."""
    total_notes: int = Field(..., ge=0)
    total_links: int = Field(..., ge=0)
    avg_links_per_note: float = Field(..., ge=0)
    most_connected_notes: List[ConnectedNote] = Field(default_factory=list)


class ShortestPath(CamelModel):
    """Note ids from start to end inclusive; empty when unreachable."""
    path: List[str]
