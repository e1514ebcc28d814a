"""Utilities for rendering graphs in the CLI."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mindmap.graph.hierarchy import HierarchyNode
from mindmap.graph.models import Node


def render_tree(nodes: List[Node], edges: List[Dict[str, Any]], root_id: str) -> str:
    """Render a graph as an ASCII tree following outgoing edges.

    Args:
        nodes: List of Node objects.
        edges: List of dicts (source, target, relation).
        root_id: The ID of the node to start from.

    Returns:
        String representation of the tree.  Nodes reachable along several
        paths are printed once, under the first parent that reaches them.
    """
    adj: Dict[str, List[tuple[str, str]]] = {}
    node_map = {n.id: n for n in nodes}

    for e in edges:
        adj.setdefault(e["source"], []).append((e["target"], e.get("relation", "")))

    lines: List[str] = []
    visited = set()

    def _render_node(node_id: str, relation: str, prefix: str, is_last: bool, is_root: bool):
        if node_id in visited and not is_root:
            return
        visited.add(node_id)

        node = node_map.get(node_id)
        if not node and not is_root:
            return

        title = node.label if node else f"Unknown({node_id[:8]})"
        icon = _get_icon(node)

        if is_root:
            lines.append(f"{icon} {title}")
            child_prefix = ""
        else:
            connector = "└── " if is_last else "├── "
            rel = f"[{relation}] " if relation else ""
            lines.append(f"{prefix}{connector}{rel}{icon} {title}")
            child_prefix = prefix + ("    " if is_last else "│   ")

        children = [c for c in adj.get(node_id, []) if c[0] not in visited]
        count = len(children)
        for i, (child_id, rel) in enumerate(children):
            _render_node(child_id, rel, child_prefix, i == count - 1, False)

    if root_id in node_map:
        _render_node(root_id, "", "", True, True)
    else:
        lines.append("Root node not found in graph.")

    return "\n".join(lines)


def render_hierarchy(tree: Optional[HierarchyNode]) -> str:
    """Render a similarity tree with each child's score to its parent."""
    if tree is None:
        return "(empty hierarchy)"

    lines = [f"{_get_icon(tree.node)} {tree.node.label}"]

    def _walk(item: HierarchyNode, prefix: str) -> None:
        count = len(item.children)
        for i, child in enumerate(item.children):
            last = i == count - 1
            connector = "└── " if last else "├── "
            score = f" ({child.similarity:.3f})" if child.similarity is not None else ""
            lines.append(f"{prefix}{connector}{_get_icon(child.node)} {child.node.label}{score}")
            _walk(child, prefix + ("    " if last else "│   "))

    _walk(tree, "")
    return "\n".join(lines)


def _get_icon(node: Optional[Node]) -> str:
    if node is None:
        return "📦"
    if node.depth == 0:
        return "🧠"
    if node.llm_generated:
        return "✨"
    return "💡"
