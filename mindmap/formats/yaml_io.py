"""YAML persistence for mind-map graphs.

Document shape::

    metadata: {...}            # free-form
    nodes:
      - {id, label, depth, visible, expanded, llmGenerated}
    edges:
      - {source, target, relation}

Import accepts missing optional fields and fills in defaults
(``visible=true``, ``expanded=false``, ``depth=0``, ``relation=""``).
Embeddings are never stored; they are regenerated on load.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from mindmap.errors import FormatError
from mindmap.graph.models import Edge, GraphPayload, Node


class _NoAliasDumper(yaml.SafeDumper):
    """Never emit ``&anchor`` / ``*alias`` references."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Text <-> Python
# ---------------------------------------------------------------------------

def parse_yaml(text: str) -> Any:
    """Parse YAML *text*.

    Raises:
        FormatError: If the text is not valid YAML.
    """
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        print(f"[yaml] parse error: {exc}")
        raise FormatError(f"Invalid YAML: {exc}") from exc


def dump_yaml(data: Any) -> str:
    """Serialise *data* with 2-space indent, 120-column width, no aliases."""
    return yaml.dump(
        data,
        Dumper=_NoAliasDumper,
        indent=2,
        width=120,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def load_graph_file(path: Path) -> dict[str, Any]:
    """Read and parse a YAML graph file; an empty file yields ``{}``."""
    data = parse_yaml(Path(path).read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FormatError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def save_graph_file(path: Path, data: dict[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_yaml(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Document <-> graph
# ---------------------------------------------------------------------------

def _coerce(kind: type, value: Any, what: str) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"Invalid {what}: {value!r}") from exc


def graph_data_from_yaml(data: Optional[dict[str, Any]]) -> GraphPayload:
    """Normalise a parsed YAML document into a :class:`GraphPayload`.

    Nodes without an ``id`` and edges without both endpoints are skipped.

    Raises:
        FormatError: If the document is not a mapping, or a node depth or
            edge weight is not numeric.
    """
    payload = GraphPayload()
    if not data:
        return payload
    if not isinstance(data, dict):
        raise FormatError("Graph document must be a mapping")

    for raw in data.get("nodes") or []:
        if not isinstance(raw, dict) or raw.get("id") is None:
            print(f"[yaml] skipping node without id: {raw!r}")
            continue
        node_id = str(raw["id"])
        payload.nodes.append(
            Node(
                id=node_id,
                label=str(raw.get("label") or node_id),
                depth=_coerce(int, raw.get("depth") or 0, f"node {node_id!r} depth"),
                visible=raw.get("visible") is not False,
                expanded=bool(raw.get("expanded") or False),
                llm_generated=bool(raw.get("llmGenerated") or False),
            )
        )

    for index, raw in enumerate(data.get("edges") or []):
        if not isinstance(raw, dict) or raw.get("source") is None or raw.get("target") is None:
            print(f"[yaml] skipping edge without endpoints: {raw!r}")
            continue
        source, target = str(raw["source"]), str(raw["target"])
        payload.edges.append(
            Edge(
                id=str(raw.get("id") or f"edge-{source}-{target}-{index}"),
                source=source,
                target=target,
                relation=str(raw.get("relation") or ""),
                weight=_coerce(float, raw.get("weight") or 1.0, f"edge {source}->{target} weight"),
            )
        )

    return payload


def payload_to_yaml_data(
    payload: GraphPayload,
    metadata: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build the persistence document for *payload*."""
    meta = {
        "title": "Mind map",
        "description": "",
        "created_at": _now_iso(),
    }
    meta.update(metadata or {})
    return {
        "metadata": meta,
        "nodes": [
            {
                "id": n.id,
                "label": n.label,
                "depth": n.depth,
                "visible": n.visible,
                "expanded": n.expanded,
                "llmGenerated": n.llm_generated,
            }
            for n in payload.nodes
        ],
        "edges": [
            {"source": e.source, "target": e.target, "relation": e.relation}
            for e in payload.edges
        ],
    }
