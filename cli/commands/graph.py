"""Commands for selecting, viewing and growing a mind-map graph file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from mindmap.errors import MindmapError
from mindmap.formats.csv_io import parse_edge_csv, visible_edges_json
from mindmap.formats.yaml_io import load_graph_file
from mindmap.session import build_manager, load_graph, save_graph

from cli.context import active_graph_path, load_context, require_context, save_context
from cli.rendering import render_tree

graph_app = typer.Typer(help="Select, view and expand mind-map graph files.")


def _fail(exc: Exception) -> None:
    typer.echo(f"❌ Error: {exc}")
    raise typer.Exit(code=1)


@graph_app.command("use")
def graph_use(
    path: Path = typer.Argument(..., help="YAML graph file to make active."),
) -> None:
    """Switch the active graph file."""
    if not path.exists():
        typer.echo(f"❌ File not found: {path}")
        raise typer.Exit(code=1)
    try:
        data = load_graph_file(path)
    except MindmapError as exc:
        _fail(exc)

    title = (data.get("metadata") or {}).get("title") or path.stem
    ctx = load_context()
    ctx.active_graph_path = str(path.resolve())
    ctx.active_graph_title = title
    save_context(ctx)
    typer.echo(f"📂 Active graph: {title} ({path})")


@graph_app.command("show")
@require_context
def graph_show(
    format: str = typer.Option("tree", "--format", help="Output format: tree | list"),
) -> None:
    """Display the active graph as an ASCII tree or flat list."""
    manager = asyncio.run(load_graph(active_graph_path(), embed=False))
    root = manager.find_root_node()
    if root is None:
        typer.echo("Graph is empty.")
        return

    if format == "list":
        typer.echo(f"Nodes in graph ({len(manager.nodes)}):")
        for n in manager.all_nodes():
            flags = "" if n.visible else " (hidden)"
            typer.echo(f"  [{n.depth}] {n.label} ({n.id}){flags}")
        return

    edges = [
        {"source": e.source, "target": e.target, "relation": e.relation}
        for e in manager.all_edges()
    ]
    typer.echo(render_tree(manager.all_nodes(), edges, root.id))


@graph_app.command("expand")
@require_context
def graph_expand(
    keyword: str = typer.Argument(..., help="Keyword to expand."),
    parent: Optional[str] = typer.Option(None, "--parent", help="Attach results under this node ID."),
) -> None:
    """Ask the LLM for related concepts and save them into the active graph."""
    path = active_graph_path()

    async def _run():
        manager = await load_graph(path)
        created = await manager.generate_related_nodes(keyword, parent)
        return manager, created

    try:
        manager, created = asyncio.run(_run())
    except MindmapError as exc:
        _fail(exc)

    save_graph(manager, path)
    typer.echo(f"✅ Added {len(created)} node(s):")
    for n in created:
        typer.echo(f"  {n.id}  {n.label!r}")


@graph_app.command("deep-dive")
@require_context
def graph_deep_dive(
    node_id: str = typer.Argument(..., help="Node ID to deepen."),
) -> None:
    """Expand one node with concepts that avoid its current neighbours."""
    path = active_graph_path()

    async def _run():
        manager = await load_graph(path)
        created = await manager.deep_dive_node(node_id)
        return manager, created

    try:
        manager, created = asyncio.run(_run())
    except MindmapError as exc:
        _fail(exc)

    save_graph(manager, path)
    typer.echo(f"✅ Deep dive added {len(created)} node(s):")
    for n in created:
        typer.echo(f"  {n.id}  {n.label!r}")


@graph_app.command("import-csv")
def graph_import_csv(
    csv_path: Path = typer.Argument(..., help="Two-column source,target CSV."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write a new graph file instead of merging."),
) -> None:
    """Merge a CSV edge list into the active graph, or create a new graph with --out."""
    if not csv_path.exists():
        typer.echo(f"❌ File not found: {csv_path}")
        raise typer.Exit(code=1)
    payload = parse_edge_csv(csv_path.read_text(encoding="utf-8"))

    ctx = load_context()
    target = out or (Path(ctx.active_graph_path) if ctx.active_graph_path else None)
    if target is None:
        typer.echo("❌ No active graph selected. Pass --out to create one.")
        raise typer.Exit(code=1)

    if out is None and target.exists():
        manager = asyncio.run(load_graph(target, embed=False))
    else:
        manager = build_manager()

    added = manager.merge(payload)
    save_graph(manager, target, title=target.stem if out else None)
    typer.echo(
        f"✅ Imported {len(added.nodes)} node(s) and {len(added.edges)} edge(s) into {target}"
    )

    if out is not None:
        ctx.active_graph_path = str(out.resolve())
        ctx.active_graph_title = out.stem
        save_context(ctx)
        typer.echo(f"📂 Active graph: {out.stem}")


@graph_app.command("delete")
@require_context
def graph_delete(node_id: str = typer.Argument(..., help="Node ID to delete.")) -> None:
    """Delete a node and every edge touching it."""
    path = active_graph_path()
    manager = asyncio.run(load_graph(path, embed=False))
    if not manager.delete_node(node_id):
        typer.echo(f"❌ Node {node_id} not found.")
        raise typer.Exit(code=1)
    save_graph(manager, path)
    typer.echo(f"🗑️  Deleted {node_id}")


@graph_app.command("collapse")
@require_context
def graph_collapse(node_id: str = typer.Argument(..., help="Node whose branch to hide.")) -> None:
    """Hide every node below NODE_ID (along outgoing edges)."""
    path = active_graph_path()
    manager = asyncio.run(load_graph(path, embed=False))
    try:
        hidden = manager.collapse_branch(node_id)
    except MindmapError as exc:
        _fail(exc)
    save_graph(manager, path)
    typer.echo(f"Collapsed {node_id}: {hidden} node(s) hidden.")


@graph_app.command("expand-branch")
@require_context
def graph_expand_branch(node_id: str = typer.Argument(..., help="Node whose branch to show.")) -> None:
    """Re-show every hidden node below NODE_ID."""
    path = active_graph_path()
    manager = asyncio.run(load_graph(path, embed=False))
    try:
        shown = manager.expand_branch(node_id)
    except MindmapError as exc:
        _fail(exc)
    save_graph(manager, path)
    typer.echo(f"Expanded {node_id}: {shown} node(s) shown.")


@graph_app.command("export-visible")
@require_context
def graph_export_visible(
    out: Optional[Path] = typer.Option(None, "--out", help="Write JSON here instead of stdout."),
) -> None:
    """Export the edges between visible nodes as JSON."""
    manager = asyncio.run(load_graph(active_graph_path(), embed=False))
    body = visible_edges_json(manager.payload())
    if out is None:
        typer.echo(body)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(body, encoding="utf-8")
    typer.echo(f"✅ Visible edges written to {out}")
