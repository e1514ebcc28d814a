"""Vector-similarity primitives and the flat (root-independent) graph builders.

Everything here is lenient: a
missing or mis-shaped vector scores ``0.0`` and is reported with a
``[similarity]`` diagnostic line rather than raising.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from mindmap.graph.models import Edge, Node, edge_key


@dataclass
class ScoredNode:
    node: Node
    similarity: float

    @property
    def id(self) -> str:
        return self.node.id


def _length(vec: Optional[Sequence[float]]) -> Optional[int]:
    return None if vec is None else len(vec)


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def cosine_similarity(
    vec1: Optional[Sequence[float]],
    vec2: Optional[Sequence[float]],
) -> float:
    """Return the cosine similarity of two vectors in ``[-1, 1]``.

    Missing vectors or vectors of different lengths yield ``0.0`` (with a
    diagnostic).  A zero-magnitude vector also yields ``0.0``.
    """
    if vec1 is None or vec2 is None or len(vec1) != len(vec2):
        print(
            f"[similarity] invalid vectors: len(vec1)={_length(vec1)} "
            f"len(vec2)={_length(vec2)}"
        )
        return 0.0

    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)
    magnitude = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(a, b)) / magnitude


def euclidean_distance(
    vec1: Optional[Sequence[float]],
    vec2: Optional[Sequence[float]],
) -> float:
    """Return the Euclidean distance, or ``inf`` for unusable input."""
    if vec1 is None or vec2 is None or len(vec1) != len(vec2):
        return math.inf
    diff = np.asarray(vec1, dtype=np.float64) - np.asarray(vec2, dtype=np.float64)
    return float(np.linalg.norm(diff))


# ---------------------------------------------------------------------------
# Neighbour search
# ---------------------------------------------------------------------------

def find_similar_nodes(
    target: Optional[Node],
    nodes: Iterable[Node],
    threshold: float = 0.6,
) -> list[ScoredNode]:
    """Score every other node against *target*.

    Returns the nodes whose similarity is ``>= threshold``, highest first.
    Ties keep the input order.  Nodes without a vector are skipped.
    """
    if target is None or not target.vector:
        print(f"[similarity] target node has no vector: {target.id if target else None!r}")
        return []

    scored = [
        ScoredNode(node=n, similarity=cosine_similarity(target.vector, n.vector))
        for n in nodes
        if n.id != target.id and n.vector
    ]
    matches = [s for s in scored if s.similarity >= threshold]
    return sorted(matches, key=lambda s: s.similarity, reverse=True)


def compute_similarity_matrix(nodes: Sequence[Node]) -> dict[str, dict[str, float]]:
    """Return ``{id_a: {id_b: similarity}}`` for every ordered pair a != b."""
    matrix: dict[str, dict[str, float]] = {}
    for a in nodes:
        if not a.vector:
            continue
        row: dict[str, float] = {}
        for b in nodes:
            if not b.vector or a.id == b.id:
                continue
            row[b.id] = cosine_similarity(a.vector, b.vector)
        matrix[a.id] = row
    return matrix


# ---------------------------------------------------------------------------
# Graph builders
# ---------------------------------------------------------------------------

def generate_similarity_edges(
    nodes: Sequence[Node],
    threshold: float = 0.7,
    max_edges_per_node: int = 3,
) -> list[Edge]:
    """Build a kNN-like edge set over *nodes*.

    Each node contributes edges to at most ``max_edges_per_node`` of its most
    similar peers.  A-B and B-A are the same edge; the first one seen wins.
    """
    edges: list[Edge] = []
    seen: set[str] = set()

    for node in nodes:
        if not node.vector:
            continue
        for match in find_similar_nodes(node, nodes, threshold)[:max_edges_per_node]:
            key = edge_key(node.id, match.id)
            if key in seen:
                continue
            seen.add(key)
            edges.append(
                Edge(
                    id=f"sim_{key}",
                    source=node.id,
                    target=match.id,
                    relation=f"similarity: {match.similarity * 100:.1f}%",
                    weight=match.similarity,
                    similarity=match.similarity,
                )
            )
    return edges


def cluster_nodes(nodes: Sequence[Node], threshold: float = 0.7) -> list[list[Node]]:
    """Greedy single-pass clustering.

    Each not-yet-assigned node seeds a cluster and absorbs every unassigned
    node similar to it at or above *threshold*.
    """
    clusters: list[list[Node]] = []
    assigned: set[str] = set()

    for node in nodes:
        if node.id in assigned or not node.vector:
            continue
        cluster = [node]
        assigned.add(node.id)
        for match in find_similar_nodes(node, nodes, threshold):
            if match.id not in assigned:
                cluster.append(match.node)
                assigned.add(match.id)
        clusters.append(cluster)

    return clusters
