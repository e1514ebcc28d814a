"""In-memory graph state and LLM-driven expansion.

``GraphManager`` owns the node and edge maps for one session.  It is driven
from a single event loop: mutations happen between awaited embedding / LLM
calls and are not locked, so two overlapping expansions on the same nodes
can interleave.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional

from mindmap.config import settings
from mindmap.embedding import EmbeddingModel
from mindmap.errors import GraphError, NodeNotFoundError
from mindmap.formats.yaml_io import graph_data_from_yaml, payload_to_yaml_data
from mindmap.graph.hierarchy import HierarchyNode, build_dynamic_hierarchy
from mindmap.graph.models import Edge, GraphPayload, Node
from mindmap.graph.similarity import (
    ScoredNode,
    cluster_nodes,
    find_similar_nodes,
    generate_similarity_edges,
)
from mindmap.llm import prompts as prompt_templates
from mindmap.llm.parsing import RelatedWord
from mindmap.llm.providers import LLMService

DEFAULT_NODE_COLOR = "#6b7280"


class GraphManager:
    """Node/edge store plus the operations the UI layer calls.

    Args:
        embedder: Embedding handle used to vectorise node labels.  Without
            one, nodes are stored without vectors and similarity features
            return empty results.
        llm_service: Adapter used by :meth:`generate_related_nodes` and
            :meth:`deep_dive_node`.
        prompts: Optional ``expand_keyword`` / ``deep_dive`` templates.
        node_colors: ``depth_<n>`` / ``default`` colour table.
        similarity_threshold: Default for :meth:`hierarchy` and
            :meth:`find_similar_nodes`; ``settings.similarity_threshold``
            when omitted.
    """

    def __init__(
        self,
        embedder: Optional[EmbeddingModel] = None,
        llm_service: Optional[LLMService] = None,
        prompts: Optional[dict[str, str]] = None,
        node_colors: Optional[dict[str, str]] = None,
        similarity_threshold: Optional[float] = None,
    ) -> None:
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, Edge] = {}
        self.embedder = embedder
        self.llm_service = llm_service
        self.prompts = dict(prompts or {})
        self.node_colors = dict(node_colors or {})
        self.similarity_threshold = (
            settings.similarity_threshold if similarity_threshold is None else similarity_threshold
        )
        self._next_node_id = 1
        self._next_edge_id = 1

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def init_from_data(
        self,
        data: Optional[dict[str, Any]],
        embed: bool = True,
        replace: bool = False,
    ) -> None:
        """Populate the graph from a parsed YAML document.

        Node labels are embedded in one sequential batch when *embed* is
        true and an embedder is configured.  With *replace*, the current
        graph is cleared only after the document has been normalised and
        embedded, so a :class:`FormatError` or :class:`EmbeddingError`
        leaves it untouched.
        """
        print("[graph] initialising from data …")
        payload = graph_data_from_yaml(data)

        vectors: list[Optional[list[float]]] = [None] * len(payload.nodes)
        if embed and self.embedder is not None and payload.nodes:
            vectors = list(await self.embedder.embed_batch([n.label for n in payload.nodes]))

        if replace:
            self.clear()

        for node, vector in zip(payload.nodes, vectors):
            self.add_node(
                node_id=node.id,
                label=node.label,
                depth=node.depth,
                vector=vector,
                visible=node.visible,
                expanded=node.expanded,
                llm_generated=node.llm_generated,
            )
        for edge in payload.edges:
            self.add_edge(edge.source, edge.target, relation=edge.relation, weight=edge.weight)

        print(f"[graph] ✓ {len(self.nodes)} node(s), {len(self.edges)} edge(s)")

    async def embed_missing_vectors(self) -> int:
        """Embed every node that has no vector yet.  Returns the count."""
        if self.embedder is None:
            return 0
        pending = [n for n in self.nodes.values() if not n.vector]
        if not pending:
            return 0
        vectors = await self.embedder.embed_batch([n.label for n in pending])
        for node, vector in zip(pending, vectors):
            node.vector = vector
        return len(pending)

    # ------------------------------------------------------------------
    # Nodes and edges
    # ------------------------------------------------------------------
    def _new_node_id(self) -> str:
        while True:
            candidate = f"node_{self._next_node_id}"
            self._next_node_id += 1
            if candidate not in self.nodes:
                return candidate

    def _new_edge_id(self) -> str:
        while True:
            candidate = f"edge_{self._next_edge_id}"
            self._next_edge_id += 1
            if candidate not in self.edges:
                return candidate

    def color_for_depth(self, depth: int) -> str:
        return (
            self.node_colors.get(f"depth_{depth}")
            or self.node_colors.get("default")
            or DEFAULT_NODE_COLOR
        )

    def add_node(
        self,
        node_id: Optional[str] = None,
        label: Optional[str] = None,
        depth: int = 0,
        vector: Optional[list[float]] = None,
        visible: bool = True,
        expanded: bool = False,
        llm_generated: bool = False,
    ) -> Node:
        """Insert a node (replacing any node with the same id) and return it."""
        nid = str(node_id) if node_id is not None else self._new_node_id()
        node = Node(
            id=nid,
            label=label or nid,
            depth=depth,
            vector=vector,
            visible=visible,
            expanded=expanded,
            llm_generated=llm_generated,
            color=self.color_for_depth(depth),
        )
        self.nodes[nid] = node
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        relation: str = "",
        weight: float = 1.0,
        similarity: Optional[float] = None,
        edge_id: Optional[str] = None,
    ) -> Edge:
        """Insert an edge unless the unordered pair is already connected.

        Returns the new edge, or the existing one for a duplicate pair.
        """
        source, target = str(source), str(target)
        existing = self.find_edge(source, target)
        if existing is not None:
            print(f"[graph] duplicate edge ignored: {source} - {target}")
            return existing

        eid = edge_id if edge_id and edge_id not in self.edges else self._new_edge_id()
        edge = Edge(
            id=eid,
            source=source,
            target=target,
            relation=relation or "",
            weight=weight,
            similarity=similarity,
        )
        self.edges[eid] = edge
        return edge

    def find_edge(self, source: str, target: str) -> Optional[Edge]:
        """Return the edge joining *source* and *target* in either direction."""
        source, target = str(source), str(target)
        for edge in self.edges.values():
            if edge.connects(source, target):
                return edge
        return None

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(str(node_id))

    def require_node(self, node_id: str) -> Node:
        node = self.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(str(node_id))
        return node

    def all_nodes(self) -> list[Node]:
        return list(self.nodes.values())

    def all_edges(self) -> list[Edge]:
        return list(self.edges.values())

    def neighbors(self, node_id: str) -> list[Node]:
        """Return nodes joined to *node_id* by an edge in either direction."""
        nid = str(node_id)
        result: list[Node] = []
        for edge in self.edges.values():
            other = None
            if edge.source == nid:
                other = edge.target
            elif edge.target == nid:
                other = edge.source
            if other is not None and other in self.nodes:
                result.append(self.nodes[other])
        return result

    def find_node_by_label(self, label: str) -> Optional[Node]:
        """Case-insensitive label lookup."""
        lower = label.lower()
        for node in self.nodes.values():
            if node.label.lower() == lower:
                return node
        return None

    def find_root_node(self) -> Optional[Node]:
        """Return the first depth-0 node, else the first node, else ``None``."""
        for node in self.nodes.values():
            if node.depth == 0:
                return node
        return next(iter(self.nodes.values()), None)

    def find_similar_nodes(self, node_id: str, threshold: Optional[float] = None) -> list[ScoredNode]:
        node = self.get_node(node_id)
        if node is None or not node.vector:
            return []
        if threshold is None:
            threshold = self.similarity_threshold
        return find_similar_nodes(node, self.all_nodes(), threshold)

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------
    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it."""
        nid = str(node_id)
        if nid not in self.nodes:
            return False
        for eid in [eid for eid, e in self.edges.items() if nid in (e.source, e.target)]:
            del self.edges[eid]
        del self.nodes[nid]
        return True

    def hide_node(self, node_id: str) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node.visible = False
        return True

    def show_node(self, node_id: str) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node.visible = True
        return True

    def show_all_nodes(self) -> None:
        for node in self.nodes.values():
            node.visible = True

    def successors(self, node_id: str) -> list[Node]:
        """Nodes reachable from *node_id* along outgoing (source->target) edges."""
        start = str(node_id)
        outgoing: dict[str, list[str]] = {}
        for edge in self.edges.values():
            outgoing.setdefault(edge.source, []).append(edge.target)

        seen = {start}
        order: list[Node] = []
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in outgoing.get(current, []):
                if nxt in seen or nxt not in self.nodes:
                    continue
                seen.add(nxt)
                order.append(self.nodes[nxt])
                queue.append(nxt)
        return order

    def collapse_branch(self, node_id: str) -> int:
        """Hide every successor of *node_id*; the node itself stays visible."""
        node = self.require_node(node_id)
        hidden = 0
        for succ in self.successors(node.id):
            if succ.visible:
                succ.visible = False
                hidden += 1
        node.visible = True
        print(f"[graph] collapsed {node.id}: {hidden} node(s) hidden")
        return hidden

    def expand_branch(self, node_id: str) -> int:
        """Re-show every hidden successor of *node_id*."""
        node = self.require_node(node_id)
        shown = 0
        for succ in self.successors(node.id):
            if not succ.visible:
                succ.visible = True
                shown += 1
        node.visible = True
        print(f"[graph] expanded {node.id}: {shown} node(s) shown")
        return shown

    def clear(self) -> None:
        self.nodes.clear()
        self.edges.clear()
        self._next_node_id = 1
        self._next_edge_id = 1

    # ------------------------------------------------------------------
    # Accumulating loads
    # ------------------------------------------------------------------
    def merge(self, payload: GraphPayload) -> GraphPayload:
        """Add *payload* to the graph without duplicating nodes or pairs.

        Existing nodes keep their state, except that a hidden node gaining a
        new edge is shown again.  Returns what was actually added.
        """
        added = GraphPayload()
        for node in payload.nodes:
            if node.id in self.nodes:
                continue
            added.nodes.append(
                self.add_node(
                    node_id=node.id,
                    label=node.label,
                    depth=node.depth,
                    vector=node.vector,
                    visible=node.visible,
                    expanded=node.expanded,
                    llm_generated=node.llm_generated,
                )
            )

        for edge in payload.edges:
            if edge.source not in self.nodes or edge.target not in self.nodes:
                continue
            if self.find_edge(edge.source, edge.target) is not None:
                continue
            added.edges.append(
                self.add_edge(
                    edge.source,
                    edge.target,
                    relation=edge.relation,
                    weight=edge.weight,
                    similarity=edge.similarity,
                    edge_id=edge.id,
                )
            )
            for endpoint in (edge.source, edge.target):
                node = self.nodes[endpoint]
                if not node.visible:
                    node.visible = True
                    print(f"[graph] hidden node {endpoint} reconnected; shown again")

        print(f"[graph] merged {len(added.nodes)} node(s), {len(added.edges)} edge(s)")
        return added

    # ------------------------------------------------------------------
    # LLM expansion
    # ------------------------------------------------------------------
    def _require_llm(self) -> LLMService:
        if self.llm_service is None:
            raise GraphError("LLM service is not configured")
        return self.llm_service

    async def _attach_words(
        self,
        words: list[RelatedWord],
        parent_id: Optional[str],
        depth: int,
    ) -> list[Node]:
        vectors: list[Optional[list[float]]] = [None] * len(words)
        if self.embedder is not None:
            vectors = list(await self.embedder.embed_batch([w.word for w in words]))

        created: list[Node] = []
        for word, vector in zip(words, vectors):
            existing = self.find_node_by_label(word.word)
            if existing is not None:
                if parent_id and existing.id != parent_id and not self.find_edge(parent_id, existing.id):
                    self.add_edge(parent_id, existing.id, relation=word.relation)
                continue

            node = self.add_node(
                label=word.word,
                depth=depth,
                vector=vector,
                llm_generated=True,
            )
            created.append(node)
            if parent_id:
                self.add_edge(parent_id, node.id, relation=word.relation)
        return created

    async def generate_related_nodes(
        self,
        keyword: str,
        parent_id: Optional[str] = None,
    ) -> list[Node]:
        """Ask the LLM for concepts related to *keyword* and add them.

        Words matching an existing label (case-insensitive) only gain an edge
        to the parent; new words become nodes at ``parent depth + 1`` (depth
        ``0`` without a parent).

        Raises:
            GraphError: No LLM service is configured.
            NodeNotFoundError: *parent_id* does not exist.
        """
        llm = self._require_llm()
        parent = self.require_node(parent_id) if parent_id else None

        print(f"[graph] expanding keyword {keyword!r}")
        template = prompt_templates.template(
            self.prompts, "expand_keyword", prompt_templates.EXPAND_KEYWORD
        )
        words = await llm.generate_related_words(keyword, template)
        if not words:
            print("[graph] LLM returned no related words")
            return []

        parent_depth = parent.depth if parent else -1
        created = await self._attach_words(words, parent.id if parent else None, parent_depth + 1)
        print(f"[graph] ✓ {len(created)} new node(s)")
        return created

    async def deep_dive_node(self, node_id: str) -> list[Node]:
        """Expand *node_id* with concepts that avoid its current neighbours.

        Marks the node ``expanded``.

        Raises:
            NodeNotFoundError: *node_id* does not exist.
            GraphError: No LLM service is configured.
        """
        node = self.require_node(node_id)
        llm = self._require_llm()

        neighbor_labels = [n.label for n in self.neighbors(node.id)]
        root = self.find_root_node()
        root_theme = root.label if root else node.label

        print(f"[graph] deep dive on {node.label!r}")
        template = prompt_templates.template(
            self.prompts, "deep_dive", prompt_templates.DEEP_DIVE
        )
        words = await llm.deep_dive(node.label, neighbor_labels, root_theme, template)
        if not words:
            print("[graph] deep dive returned nothing")
            return []

        created = await self._attach_words(words, node.id, node.depth + 1)
        node.expanded = True
        print(f"[graph] ✓ deep dive added {len(created)} node(s)")
        return created

    # ------------------------------------------------------------------
    # Similarity views
    # ------------------------------------------------------------------
    def hierarchy(
        self,
        root_id: str,
        threshold: Optional[float] = None,
        max_depth: Optional[int] = None,
    ) -> Optional[HierarchyNode]:
        """Similarity tree rooted at *root_id*; hidden nodes are excluded."""
        root = self.require_node(root_id)
        hidden = [n.id for n in self.nodes.values() if not n.visible]
        return build_dynamic_hierarchy(
            root,
            self.all_nodes(),
            hidden_ids=hidden,
            max_depth=settings.hierarchy_max_depth if max_depth is None else max_depth,
            threshold=self.similarity_threshold if threshold is None else threshold,
            branching=settings.hierarchy_branching,
        )

    def similarity_edges(
        self,
        threshold: Optional[float] = None,
        max_edges_per_node: Optional[int] = None,
        apply: bool = False,
    ) -> list[Edge]:
        """Compute kNN-style similarity edges over all nodes.

        With *apply*, edges for pairs not yet connected are added to the
        graph and only those are returned.
        """
        proposed = generate_similarity_edges(
            self.all_nodes(),
            threshold=settings.edge_threshold if threshold is None else threshold,
            max_edges_per_node=(
                settings.max_edges_per_node if max_edges_per_node is None else max_edges_per_node
            ),
        )
        if not apply:
            return proposed

        added: list[Edge] = []
        existing = {e.key for e in self.edges.values()}
        for edge in proposed:
            if edge.key in existing:
                continue
            added.append(
                self.add_edge(
                    edge.source,
                    edge.target,
                    relation=edge.relation,
                    weight=edge.weight,
                    similarity=edge.similarity,
                    edge_id=edge.id,
                )
            )
            existing.add(edge.key)
        return added

    def clusters(self, threshold: Optional[float] = None) -> list[list[Node]]:
        return cluster_nodes(
            self.all_nodes(),
            threshold=settings.edge_threshold if threshold is None else threshold,
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def payload(self) -> GraphPayload:
        return GraphPayload(nodes=self.all_nodes(), edges=self.all_edges())

    def to_elements(self) -> dict[str, list[dict[str, Any]]]:
        """Visible nodes plus the edges whose endpoints are both visible."""
        visible = {nid for nid, n in self.nodes.items() if n.visible}
        return {
            "nodes": [n.element() for n in self.nodes.values() if n.visible],
            "edges": [
                e.element()
                for e in self.edges.values()
                if e.source in visible and e.target in visible
            ],
        }

    def to_yaml_data(self, title: str = "Exported mind map") -> dict[str, Any]:
        return payload_to_yaml_data(
            self.payload(),
            metadata={
                "title": title,
                "exportedAt": datetime.now(timezone.utc).isoformat(),
                "nodeCount": len(self.nodes),
                "edgeCount": len(self.edges),
            },
        )

