"""Wiring of a graph session from settings, shared by the API and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from mindmap.config import AppConfig, load_app_config
from mindmap.embedding import EmbeddingModel
from mindmap.formats.yaml_io import load_graph_file, save_graph_file
from mindmap.graph.manager import GraphManager
from mindmap.llm.providers import create_llm_service


def build_manager(app_config: Optional[AppConfig] = None) -> GraphManager:
    """Create a manager wired to the configured embedder and LLM adapter.

    The LLM provider comes from the app config ``llm.provider`` key when
    present, else from ``settings.llm_provider``.  The hierarchy threshold
    follows ``similarity.default_threshold`` the same way.
    """
    app_config = app_config or load_app_config()
    provider = app_config.provider
    return GraphManager(
        embedder=EmbeddingModel(),
        llm_service=create_llm_service(provider, app_config.llm_provider_config(provider)),
        prompts=app_config.prompts,
        node_colors=app_config.node_colors,
        similarity_threshold=app_config.default_threshold,
    )


async def load_graph(
    path: Path,
    embed: bool = True,
    app_config: Optional[AppConfig] = None,
) -> GraphManager:
    """Build a manager and populate it from the YAML file at *path*."""
    manager = build_manager(app_config)
    await manager.init_from_data(load_graph_file(path), embed=embed)
    return manager


def save_graph(manager: GraphManager, path: Path, title: Optional[str] = None) -> None:
    """Write the manager's graph to *path* in the YAML persistence shape."""
    data = manager.to_yaml_data(title=title) if title else manager.to_yaml_data()
    save_graph_file(path, data)
