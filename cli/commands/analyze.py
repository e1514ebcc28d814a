"""Similarity analysis over the active graph: hierarchy, edges, clusters."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from mindmap.errors import MindmapError
from mindmap.session import load_graph, save_graph

from cli.context import active_graph_path, require_context
from cli.rendering import render_hierarchy

analyze_app = typer.Typer(help="Embedding-based analysis of the active graph.")


@analyze_app.command("hierarchy")
@require_context
def analyze_hierarchy(
    root: Optional[str] = typer.Option(None, "--root", help="Root node ID (defaults to the depth-0 node)."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum similarity (exclusive)."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Maximum tree depth."),
) -> None:
    """Print the greedy similarity tree grown from ROOT."""
    try:
        manager = asyncio.run(load_graph(active_graph_path()))
        root_node = manager.require_node(root) if root else manager.find_root_node()
        if root_node is None:
            typer.echo("Graph is empty.")
            return
        tree = manager.hierarchy(root_node.id, threshold=threshold, max_depth=max_depth)
    except MindmapError as exc:
        typer.echo(f"❌ Error: {exc}")
        raise typer.Exit(code=1)

    typer.echo(render_hierarchy(tree))


@analyze_app.command("edges")
@require_context
def analyze_edges(
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum similarity (inclusive)."),
    max_edges: Optional[int] = typer.Option(None, "--max-edges", help="Edges proposed per node."),
    apply: bool = typer.Option(False, "--apply", help="Add the new edges to the graph file."),
) -> None:
    """List (or add) similarity edges between nodes."""
    path = active_graph_path()
    try:
        manager = asyncio.run(load_graph(path))
    except MindmapError as exc:
        typer.echo(f"❌ Error: {exc}")
        raise typer.Exit(code=1)

    edges = manager.similarity_edges(threshold=threshold, max_edges_per_node=max_edges, apply=apply)
    if not edges:
        typer.echo("No similarity edges found.")
        return

    for e in edges:
        src = manager.nodes[e.source].label
        dst = manager.nodes[e.target].label
        typer.echo(f"  {src} ↔ {dst}  {e.similarity:.3f}")

    if apply:
        save_graph(manager, path)
        typer.echo(f"✅ Added {len(edges)} edge(s) to {path}")


@analyze_app.command("clusters")
@require_context
def analyze_clusters(
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum similarity to the seed."),
) -> None:
    """Group nodes around seeds by similarity."""
    try:
        manager = asyncio.run(load_graph(active_graph_path()))
    except MindmapError as exc:
        typer.echo(f"❌ Error: {exc}")
        raise typer.Exit(code=1)

    clusters = manager.clusters(threshold=threshold)
    if not clusters:
        typer.echo("No clusters (no nodes have vectors).")
        return
    for i, members in enumerate(clusters, start=1):
        labels = ", ".join(n.label for n in members)
        typer.echo(f"  Cluster {i} ({len(members)}): {labels}")
