"""Link graph construction and traversal over the note store.

Links are stored directed but traversed as undirected: every algorithm here
goes through ``SymmetricAdjacency``, which merges a note's outgoing and
incoming links. Nothing is cached between calls; each call reads the store
and keeps its visited sets and frontiers local.
"""

from __future__ import annotations

import asyncio
from collections import deque
import logging
from typing import Dict, List, Set, Tuple

from ..models.graph import ConnectedNote, GraphData, GraphLink, GraphNode, GraphStats
from ..models.note import Note
from .note_store import NoteStore

logger = logging.getLogger(__name__)

Edge = Tuple[str, str]

DEFAULT_LOCAL_DEPTH = 2
TOP_CONNECTED = 5


def _to_node(note: Note) -> GraphNode:
    return GraphNode(id=note.id, label=note.title, type=note.type, tags=note.tags)


class SymmetricAdjacency:
    """Undirected view of the directed link store."""

    def __init__(self, store: NoteStore) -> None:
        self.store = store

    async def links(self, note_id: str) -> Tuple[List[Edge], List[Edge]]:
        """Outgoing and incoming links of a note, each sorted by the far endpoint."""
        outgoing, incoming = await asyncio.gather(
            self.store.list_links_by_source(note_id),
            self.store.list_links_by_target(note_id),
        )
        return (
            sorted((link.source_id, link.target_id) for link in outgoing),
            sorted((link.source_id, link.target_id) for link in incoming),
        )

    async def incident(self, note_id: str) -> List[Tuple[str, Edge]]:
        """
        ``(neighbor, edge)`` pairs in discovery order: outgoing links by
        target ascending, then incoming links by source ascending.
        """
        outgoing, incoming = await self.links(note_id)
        return [(target, (source, target)) for source, target in outgoing] + [
            (source, (source, target)) for source, target in incoming
        ]

    async def neighbors(self, note_id: str) -> List[str]:
        """Neighbor ids in discovery order; a note reachable both ways appears once."""
        return list(dict.fromkeys(neighbor for neighbor, _ in await self.incident(note_id)))


class GraphService:
    """Global graph, neighborhoods, shortest paths and connectivity stats."""

    def __init__(self, store: NoteStore) -> None:
        self.store = store
        self.adjacency = SymmetricAdjacency(store)

    async def build_global_graph(self) -> GraphData:
        notes, links = await asyncio.gather(self.store.list_notes(), self.store.list_links())
        return GraphData(
            nodes=[_to_node(note) for note in notes],
            links=[GraphLink(source=link.source_id, target=link.target_id) for link in links],
        )

    async def neighborhood(self, root_id: str, depth: int) -> Tuple[Set[str], List[Edge]]:
        """
        Level-synchronous BFS from ``root_id`` over the symmetric adjacency.

        All frontier nodes of a level are expanded concurrently; the next
        frontier is assembled only after the whole level resolves, in sorted
        frontier order, so the result does not depend on I/O completion order.
        """
        if depth < 0:
            raise ValueError("depth must be >= 0")

        visited: Set[str] = {root_id}
        edges: Dict[Edge, None] = {}
        frontier: List[str] = [root_id]

        for _ in range(depth):
            if not frontier:
                break
            expansions = await asyncio.gather(*(self.adjacency.incident(node_id) for node_id in frontier))

            next_frontier: List[str] = []
            for pairs in expansions:
                for neighbor, edge in pairs:
                    edges.setdefault(edge, None)
                    if neighbor not in visited:
                        visited.add(neighbor)
                        next_frontier.append(neighbor)
            frontier = sorted(next_frontier)

        return visited, list(edges)

    async def local_neighborhood(self, root_id: str, depth: int = DEFAULT_LOCAL_DEPTH) -> GraphData:
        """Neighborhood hydrated with note details; ids that no longer resolve are dropped."""
        node_ids, edges = await self.neighborhood(root_id, depth)
        notes = await self.store.list_notes_by_ids(sorted(node_ids))
        present = {note.id for note in notes}
        if len(present) != len(node_ids):
            logger.debug(
                "Dropped unresolved notes from neighborhood",
                extra={"root_id": root_id, "missing": sorted(node_ids - present)},
            )
        return GraphData(
            nodes=[_to_node(note) for note in notes],
            links=[
                GraphLink(source=source, target=target)
                for source, target in edges
                if source in present and target in present
            ],
        )

    async def shortest_path(self, start_id: str, end_id: str) -> List[str]:
        """
        Fewest-edge path from ``start_id`` to ``end_id`` inclusive, or ``[]``.

        Neighbors are enqueued outgoing before incoming, ascending by id within
        each direction; the first path to reach ``end_id`` wins.
        """
        if start_id == end_id:
            return [start_id]

        parents: Dict[str, str] = {}
        visited: Set[str] = {start_id}
        queue = deque([start_id])

        while queue:
            current = queue.popleft()
            for neighbor in await self.adjacency.neighbors(current):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                parents[neighbor] = current
                if neighbor == end_id:
                    return self._unwind(parents, start_id, end_id)
                queue.append(neighbor)

        return []

    @staticmethod
    def _unwind(parents: Dict[str, str], start_id: str, end_id: str) -> List[str]:
        path = [end_id]
        while path[-1] != start_id:
            path.append(parents[path[-1]])
        path.reverse()
        return path

    async def connectivity_stats(self, top_k: int = TOP_CONNECTED) -> GraphStats:
        total_notes, total_links, degrees = await asyncio.gather(
            self.store.count_notes(),
            self.store.count_links(),
            self.store.link_degrees(),
        )
        avg_links = total_links / total_notes if total_notes else 0.0
        ranked = sorted(degrees, key=lambda entry: (-entry["connections"], entry["id"]))
        return GraphStats(
            total_notes=total_notes,
            total_links=total_links,
            avg_links_per_note=avg_links,
            most_connected_notes=[ConnectedNote(**entry) for entry in ranked[:top_k]],
        )


__all__ = ["GraphService", "SymmetricAdjacency", "DEFAULT_LOCAL_DEPTH", "TOP_CONNECTED"]
