"""FastAPI application factory.

Lifespan
--------
On startup the app builds one session: an :class:`EmbeddingModel` handle,
the configured LLM adapter and a :class:`GraphManager`, all stored on
``app.state``.  When ``MINDMAP_INITIAL_GRAPH`` points at a YAML file the
graph is seeded from it.  The embedding model itself is loaded lazily by the
first request that needs vectors.

Routers
-------
    /graph     whole-graph elements, import/export, LLM keyword expansion
    /nodes     per-node visibility, deletion, deep dive, similar nodes
    /analysis  similarity hierarchy, similarity edges, clusters
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from mindmap.config import settings
from mindmap.formats.yaml_io import load_graph_file
from mindmap.graph.manager import GraphManager
from mindmap.session import build_manager

from mindmap.api.routers import analysis as analysis_router
from mindmap.api.routers import graph as graph_router
from mindmap.api.routers import nodes as nodes_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the session graph on startup and drop it on shutdown."""
    manager = build_manager()
    if settings.initial_graph_path is not None and settings.initial_graph_path.exists():
        await manager.init_from_data(load_graph_file(settings.initial_graph_path))
    app.state.manager = manager
    try:
        yield
    finally:
        manager.clear()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Mind-map API",
        description=(
            "Session graph for an embedding-driven mind-map visualiser. "
            "Serves visualisation elements, LLM-driven expansion, "
            "similarity hierarchies and YAML/CSV import/export."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(graph_router.router, prefix="/graph", tags=["graph"])
    app.include_router(nodes_router.router, prefix="/nodes", tags=["nodes"])
    app.include_router(analysis_router.router, prefix="/analysis", tags=["analysis"])

    @app.get("/status", tags=["status"])
    def status(request: Request) -> dict[str, Any]:
        """Embedding model state and graph size."""
        manager: GraphManager = request.app.state.manager
        embedder = manager.embedder
        return {
            "embedding": {
                "provider": embedder.provider if embedder else None,
                "status": embedder.status if embedder else "disabled",
                "dimension": embedder.dimension if embedder else None,
            },
            "llm": manager.llm_service.name if manager.llm_service else None,
            "nodes": len(manager.nodes),
            "edges": len(manager.edges),
        }

    return app


# Module-level instance used by uvicorn:
#   uvicorn mindmap.api.app:app --reload
app = create_app()
