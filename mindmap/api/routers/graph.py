"""Whole-graph endpoints.

Routes
------
GET    /graph                 Visible nodes + edges as visualisation elements
DELETE /graph                 Remove every node and edge
GET    /graph/export          Full graph as a YAML document
GET    /graph/visible-edges   Visible edge list as JSON
POST   /graph/import          Replace the graph with a YAML document (body)
POST   /graph/import/csv      Merge a ``source,target`` CSV edge list (body)
POST   /graph/show-all        Make every node visible
POST   /graph/expand          Ask the LLM for concepts related to a keyword
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from mindmap.api.deps import get_manager, http_error, node_dict
from mindmap.errors import FormatError, MindmapError
from mindmap.formats.csv_io import parse_edge_csv, visible_edges_json
from mindmap.formats.yaml_io import dump_yaml, parse_yaml

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ExpandRequest(BaseModel):
    keyword: str
    parent_id: Optional[str] = None


async def _body_text(request: Request) -> str:
    """Return the request body as UTF-8 text."""
    try:
        return (await request.body()).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError(f"Request body is not valid UTF-8: {exc}") from exc


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("")
def elements(request: Request) -> dict[str, Any]:
    """Return the visible graph in ``{"nodes": [...], "edges": [...]}`` form."""
    return get_manager(request).to_elements()


@router.delete("")
def clear(request: Request) -> Response:
    get_manager(request).clear()
    return Response(status_code=204)


@router.get("/export")
def export_yaml(request: Request) -> Response:
    """Serialise the whole graph (hidden nodes included) to YAML."""
    body = dump_yaml(get_manager(request).to_yaml_data())
    return Response(
        content=body,
        media_type="application/x-yaml",
        headers={"Content-Disposition": 'attachment; filename="mindmap_export.yaml"'},
    )


@router.get("/visible-edges")
def export_visible_edges(request: Request) -> Response:
    body = visible_edges_json(get_manager(request).payload())
    return Response(content=body, media_type="application/json")


@router.post("/import")
async def import_yaml(request: Request) -> dict[str, Any]:
    """Replace the current graph with the YAML document in the request body.

    Node labels are re-embedded; the old graph is only replaced once the
    document has been normalised and embedded.
    """
    manager = get_manager(request)
    try:
        data = parse_yaml(await _body_text(request))
        if data is not None and not isinstance(data, dict):
            raise FormatError("YAML document must be a mapping")
        await manager.init_from_data(data, replace=True)
    except MindmapError as exc:
        raise http_error(exc) from exc
    return {"nodes": len(manager.nodes), "edges": len(manager.edges)}


@router.post("/import/csv")
async def import_csv(request: Request) -> dict[str, Any]:
    """Merge a CSV edge list into the current graph and embed new nodes."""
    manager = get_manager(request)
    try:
        added = manager.merge(parse_edge_csv(await _body_text(request)))
        await manager.embed_missing_vectors()
    except MindmapError as exc:
        raise http_error(exc) from exc
    return {"added_nodes": len(added.nodes), "added_edges": len(added.edges)}


@router.post("/show-all")
def show_all(request: Request) -> dict[str, Any]:
    manager = get_manager(request)
    manager.show_all_nodes()
    return manager.to_elements()


@router.post("/expand", status_code=201)
async def expand(body: ExpandRequest, request: Request) -> list[dict[str, Any]]:
    """Add LLM-suggested concepts for ``keyword`` (under ``parent_id`` if given)."""
    manager = get_manager(request)
    try:
        created = await manager.generate_related_nodes(body.keyword, body.parent_id)
    except MindmapError as exc:
        raise http_error(exc) from exc
    return [node_dict(n) for n in created]
