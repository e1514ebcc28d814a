"""Two-column CSV edge lists and JSON export of the visible edge set."""

from __future__ import annotations

import csv
import io
import json

from mindmap.graph.models import Edge, GraphPayload, Node, edge_key


def parse_edge_csv(text: str) -> GraphPayload:
    """Parse a ``source,target`` CSV (first line is a header).

    The result is an undirected, deduplicated graph: A-B and B-A collapse
    into the first edge seen.  Lines with fewer than two columns or a blank
    endpoint are ignored.  Node order follows first appearance.
    """
    lines = (text or "").strip().splitlines()
    if len(lines) <= 1:
        return GraphPayload()

    node_ids: dict[str, None] = {}
    edges: list[Edge] = []
    seen: set[str] = set()

    for row in csv.reader(io.StringIO("\n".join(lines[1:]))):
        if len(row) < 2:
            continue
        source, target = row[0].strip(), row[1].strip()
        if not source or not target:
            continue

        key = edge_key(source, target)
        if key not in seen:
            seen.add(key)
            edges.append(Edge(id=f"e{len(edges) + 1}_{key}", source=source, target=target))
        node_ids.setdefault(source)
        node_ids.setdefault(target)

    return GraphPayload(nodes=[Node(id=n, label=n) for n in node_ids], edges=edges)


def visible_edges_json(payload: GraphPayload) -> str:
    """Serialise the edges whose endpoints are both visible.

    Output shape: ``{"elements": {"edges": [{"data": {source, target}}]}}``.
    """
    visible = {n.id for n in payload.nodes if n.visible}
    edges = [
        {"data": {"source": e.source, "target": e.target}}
        for e in payload.edges
        if e.source in visible and e.target in visible
    ]
    return json.dumps({"elements": {"edges": edges}}, indent=2)
