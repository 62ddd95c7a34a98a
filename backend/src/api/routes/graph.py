"""HTTP API routes for graph traversal."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ...models.graph import GraphData, GraphStats, ShortestPath
from ...services.graph import DEFAULT_LOCAL_DEPTH, GraphService
from ..middleware import get_graph_service

router = APIRouter()

Graph = Annotated[GraphService, Depends(get_graph_service)]


@router.get("/api/graph", response_model=GraphData)
async def get_graph_data(graph: Graph) -> GraphData:
    """Every note and every link."""
    return await graph.build_global_graph()


@router.get("/api/graph/local/{note_id}", response_model=GraphData)
async def get_local_graph(
    note_id: str,
    graph: Graph,
    depth: int = Query(DEFAULT_LOCAL_DEPTH, ge=0, le=5),
) -> GraphData:
    """Notes within ``depth`` links of a note, in either direction."""
    return await graph.local_neighborhood(note_id, depth)


@router.get("/api/graph/path", response_model=ShortestPath)
async def get_shortest_path(
    graph: Graph,
    start: str = Query(..., min_length=1),
    end: str = Query(..., min_length=1),
) -> ShortestPath:
    return ShortestPath(path=await graph.shortest_path(start, end))


@router.get("/api/graph/stats", response_model=GraphStats)
async def get_graph_stats(graph: Graph) -> GraphStats:
    return await graph.connectivity_stats()
