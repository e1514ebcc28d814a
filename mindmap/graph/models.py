"""Dataclass models for the in-memory concept graph.

These are plain Python objects.  The format layer serialises / deserialises
to and from these types; the API layer converts them to element dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from time import time
from typing import Any, Optional


def edge_key(source: str, target: str) -> str:
    """Return the unordered pair key used to deduplicate edges."""
    a, b = sorted((str(source), str(target)))
    return f"{a}-{b}"


@dataclass
class Node:
    id: str
    label: str
    depth: int = 0
    vector: Optional[list[float]] = None
    visible: bool = True
    expanded: bool = False
    llm_generated: bool = False
    color: str = ""
    created_at: int = field(default_factory=lambda: int(time()))

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    def element(self) -> dict[str, Any]:
        """Return the node as a visualisation element (``{"data": ...}``)."""
        return {
            "data": {
                "id": self.id,
                "label": self.label,
                "depth": self.depth,
                "color": self.color,
                "llmGenerated": self.llm_generated,
            }
        }


@dataclass
class Edge:
    id: str
    source: str
    target: str
    relation: str = ""
    weight: float = 1.0
    similarity: Optional[float] = None

    @property
    def key(self) -> str:
        return edge_key(self.source, self.target)

    def connects(self, a: str, b: str) -> bool:
        """True if this edge joins *a* and *b* in either direction."""
        return (self.source == a and self.target == b) or (
            self.source == b and self.target == a
        )

    def element(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "relation": self.relation,
        }
        if self.similarity is not None:
            data["similarity"] = self.similarity
        return {"data": data}


@dataclass
class GraphPayload:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def elements(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "nodes": [n.element() for n in self.nodes],
            "edges": [e.element() for e in self.edges],
        }
