"""Shared helpers for the routers."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from mindmap.errors import (
    EmbeddingError,
    FormatError,
    GraphError,
    LLMConfigError,
    LLMRequestError,
    MindmapError,
    NodeNotFoundError,
)
from mindmap.graph.manager import GraphManager


def get_manager(request: Request) -> GraphManager:
    return request.app.state.manager


def http_error(exc: MindmapError) -> HTTPException:
    """Map an engine error onto an HTTP status with the message as detail."""
    if isinstance(exc, NodeNotFoundError):
        status = 404
    elif isinstance(exc, (FormatError, GraphError)):
        status = 400
    elif isinstance(exc, LLMConfigError):
        status = 503
    elif isinstance(exc, (EmbeddingError, LLMRequestError)):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=str(exc))


def node_dict(node: Any) -> dict[str, Any]:
    return {
        "id": node.id,
        "label": node.label,
        "depth": node.depth,
        "visible": node.visible,
        "expanded": node.expanded,
        "llmGenerated": node.llm_generated,
        "color": node.color,
        "createdAt": node.created_at,
    }
