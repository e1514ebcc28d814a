"""Per-node endpoints.

Routes
------
GET    /nodes/{node_id}              Fetch a node
DELETE /nodes/{node_id}              Delete a node and its edges
POST   /nodes/{node_id}/hide         Hide a node
POST   /nodes/{node_id}/show         Show a node
POST   /nodes/{node_id}/collapse     Hide every successor of the node
POST   /nodes/{node_id}/expand       Re-show every successor of the node
POST   /nodes/{node_id}/deep-dive    LLM expansion avoiding current neighbours
GET    /nodes/{node_id}/similar      Nodes similar to this one (?threshold=)
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, Response

from mindmap.api.deps import get_manager, http_error, node_dict
from mindmap.errors import MindmapError

router = APIRouter()


def _not_found(node_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Node not found: {node_id!r}")


@router.get("/{node_id}")
def get_one(node_id: str, request: Request) -> dict[str, Any]:
    node = get_manager(request).get_node(node_id)
    if node is None:
        raise _not_found(node_id)
    return node_dict(node)


@router.delete("/{node_id}")
def remove(node_id: str, request: Request) -> Response:
    """Delete a node together with every edge touching it."""
    if not get_manager(request).delete_node(node_id):
        raise _not_found(node_id)
    return Response(status_code=204)


@router.post("/{node_id}/hide")
def hide(node_id: str, request: Request) -> dict[str, Any]:
    manager = get_manager(request)
    if not manager.hide_node(node_id):
        raise _not_found(node_id)
    return manager.to_elements()


@router.post("/{node_id}/show")
def show(node_id: str, request: Request) -> dict[str, Any]:
    manager = get_manager(request)
    if not manager.show_node(node_id):
        raise _not_found(node_id)
    return manager.to_elements()


@router.post("/{node_id}/collapse")
def collapse(node_id: str, request: Request) -> dict[str, Any]:
    """Fold the branch below a node (successors along outgoing edges)."""
    manager = get_manager(request)
    try:
        hidden = manager.collapse_branch(node_id)
    except MindmapError as exc:
        raise http_error(exc) from exc
    return {"hidden": hidden, **manager.to_elements()}


@router.post("/{node_id}/expand")
def expand_branch(node_id: str, request: Request) -> dict[str, Any]:
    manager = get_manager(request)
    try:
        shown = manager.expand_branch(node_id)
    except MindmapError as exc:
        raise http_error(exc) from exc
    return {"shown": shown, **manager.to_elements()}


@router.post("/{node_id}/deep-dive", status_code=201)
async def deep_dive(node_id: str, request: Request) -> list[dict[str, Any]]:
    """Ask the LLM for new concepts around this node and attach them."""
    try:
        created = await get_manager(request).deep_dive_node(node_id)
    except MindmapError as exc:
        raise http_error(exc) from exc
    return [node_dict(n) for n in created]


@router.get("/{node_id}/similar")
def similar(
    node_id: str,
    request: Request,
    threshold: Optional[float] = None,
) -> list[dict[str, Any]]:
    manager = get_manager(request)
    if manager.get_node(node_id) is None:
        raise _not_found(node_id)
    return [
        {**node_dict(match.node), "similarity": match.similarity}
        for match in manager.find_similar_nodes(node_id, threshold)
    ]
