"""Similarity-driven tree construction around a chosen root.

The tree is derived data: it is never stored and is rebuilt whenever the
root or the threshold changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Collection, Iterator, Optional, Sequence

from mindmap.graph.models import Edge, GraphPayload, Node
from mindmap.graph.similarity import cosine_similarity

DEFAULT_BRANCHING = 3


@dataclass
class HierarchyNode:
    node: Node
    depth: int = 0
    similarity: Optional[float] = None
    children: list[HierarchyNode] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.node.id

    def to_dict(self) -> dict:
        return {
            "id": self.node.id,
            "label": self.node.label,
            "depth": self.depth,
            "similarity": self.similarity,
            "children": [c.to_dict() for c in self.children],
        }


def build_dynamic_hierarchy(
    root: Optional[Node],
    nodes: Sequence[Node],
    hidden_ids: Collection[str] = (),
    max_depth: int = 3,
    threshold: float = 0.6,
    branching: int = DEFAULT_BRANCHING,
) -> Optional[HierarchyNode]:
    """Grow a tree from *root* by greedy nearest-neighbour selection.

    At each level every unused, non-hidden node is scored against the current
    parent.  Candidates strictly above *threshold* are sorted by similarity
    (stable, so ties keep input order) and the best *branching* become
    children.  They are marked used before recursing, so a node placed at one
    level is never placed again deeper down.

    Returns ``None`` when *root* is ``None``.
    """
    if root is None:
        print("[hierarchy] no root node given")
        return None

    hidden = set(hidden_ids)
    used: set[str] = {root.id}

    def _build_level(parent: Node, current_depth: int) -> list[HierarchyNode]:
        if current_depth >= max_depth:
            return []

        scored = [
            (n, cosine_similarity(parent.vector, n.vector))
            for n in nodes
            if n.id not in used and n.id not in hidden and n.vector
        ]
        above = [(n, s) for n, s in scored if s > threshold]
        chosen = sorted(above, key=lambda pair: pair[1], reverse=True)[:branching]

        for n, _ in chosen:
            used.add(n.id)

        return [
            HierarchyNode(
                node=n,
                depth=current_depth + 1,
                similarity=s,
                children=_build_level(n, current_depth + 1),
            )
            for n, s in chosen
        ]

    if not root.vector:
        print(f"[hierarchy] root {root.id!r} has no vector; tree is empty")
        return HierarchyNode(node=root, depth=0)

    tree = HierarchyNode(node=root, depth=0, children=_build_level(root, 0))
    print(
        f"[hierarchy] root={root.label!r} nodes={count_nodes(tree)} "
        f"depth={tree_depth(tree)}"
    )
    return tree


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def iter_tree(tree: HierarchyNode) -> Iterator[HierarchyNode]:
    """Yield every tree node in depth-first pre-order."""
    yield tree
    for child in tree.children:
        yield from iter_tree(child)


def count_nodes(tree: HierarchyNode) -> int:
    return sum(1 for _ in iter_tree(tree))


def tree_depth(tree: HierarchyNode, current: int = 0) -> int:
    """Return the depth of the deepest leaf (the root alone has depth 0)."""
    if not tree.children:
        return current
    return max(tree_depth(c, current + 1) for c in tree.children)


def hierarchy_to_elements(tree: HierarchyNode) -> GraphPayload:
    """Flatten a tree into nodes plus one parent->child edge per placement."""
    payload = GraphPayload()

    def _walk(item: HierarchyNode, parent_id: Optional[str]) -> None:
        payload.nodes.append(
            Node(
                id=item.node.id,
                label=item.node.label,
                depth=item.depth,
                vector=item.node.vector,
                visible=item.node.visible,
                expanded=item.node.expanded,
                llm_generated=item.node.llm_generated,
                color=item.node.color,
                created_at=item.node.created_at,
            )
        )
        if parent_id is not None:
            payload.edges.append(
                Edge(
                    id=f"edge-{parent_id}-{item.node.id}",
                    source=parent_id,
                    target=item.node.id,
                    weight=item.similarity if item.similarity is not None else 1.0,
                    similarity=item.similarity,
                )
            )
        for child in item.children:
            _walk(child, item.node.id)

    _walk(tree, None)
    return payload
