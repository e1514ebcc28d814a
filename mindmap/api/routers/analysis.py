"""Similarity views over the session graph.

Routes
------
GET  /analysis/hierarchy?root_id=&threshold=&max_depth=   Tree + flattened elements
GET  /analysis/similarity-edges?threshold=&max_edges=      Proposed kNN edges
POST /analysis/similarity-edges?threshold=&max_edges=      Add them to the graph
GET  /analysis/clusters?threshold=                         Greedy clusters

Nothing here is cached: every call recomputes from the current vectors.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request

from mindmap.api.deps import get_manager, http_error
from mindmap.errors import MindmapError
from mindmap.graph.hierarchy import count_nodes, hierarchy_to_elements, tree_depth

router = APIRouter()


def _edge_dict(edge: Any) -> dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "relation": edge.relation,
        "similarity": edge.similarity,
    }


@router.get("/hierarchy")
def hierarchy(
    request: Request,
    root_id: Optional[str] = None,
    threshold: Optional[float] = None,
    max_depth: Optional[int] = None,
) -> dict[str, Any]:
    """Build the similarity tree around ``root_id`` (default: the root node)."""
    manager = get_manager(request)
    if root_id is None:
        root = manager.find_root_node()
        if root is None:
            return {"tree": None, "node_count": 0, "depth": 0, "elements": {"nodes": [], "edges": []}}
        root_id = root.id

    try:
        tree = manager.hierarchy(root_id, threshold=threshold, max_depth=max_depth)
    except MindmapError as exc:
        raise http_error(exc) from exc

    return {
        "tree": tree.to_dict(),
        "node_count": count_nodes(tree),
        "depth": tree_depth(tree),
        "elements": hierarchy_to_elements(tree).elements(),
    }


@router.get("/similarity-edges")
def similarity_edges(
    request: Request,
    threshold: Optional[float] = None,
    max_edges: Optional[int] = None,
) -> list[dict[str, Any]]:
    edges = get_manager(request).similarity_edges(threshold, max_edges)
    return [_edge_dict(e) for e in edges]


@router.post("/similarity-edges")
def apply_similarity_edges(
    request: Request,
    threshold: Optional[float] = None,
    max_edges: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Add similarity edges for pairs that are not connected yet."""
    edges = get_manager(request).similarity_edges(threshold, max_edges, apply=True)
    return [_edge_dict(e) for e in edges]


@router.get("/clusters")
def clusters(request: Request, threshold: Optional[float] = None) -> list[list[dict[str, Any]]]:
    return [
        [{"id": n.id, "label": n.label} for n in cluster]
        for cluster in get_manager(request).clusters(threshold)
    ]
