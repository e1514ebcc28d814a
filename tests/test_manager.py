"""Tests for the in-memory GraphManager.

Embedding calls go through the ``fake_embeddings`` fixture; LLM expansion
uses the seeded mock adapter with no delay.
"""

from __future__ import annotations

import asyncio

import pytest

from mindmap.embedding import EmbeddingModel
from mindmap.errors import FormatError, GraphError, NodeNotFoundError
from mindmap.graph.manager import GraphManager
from mindmap.graph.models import Edge, GraphPayload, Node
from mindmap.llm.parsing import RelatedWord
from mindmap.llm.providers import LLMService, MockLLMService

DOC = {
    "metadata": {"title": "AI map"},
    "nodes": [
        {"id": "ai", "label": "AI", "depth": 0},
        {"id": "ml", "label": "Machine Learning", "depth": 1},
        {"id": "rob", "label": "Robotics", "depth": 1},
        {"id": "cv", "label": "Computer Vision", "depth": 1, "visible": False},
    ],
    "edges": [
        {"source": "ai", "target": "ml", "relation": "technique"},
        {"source": "ai", "target": "rob"},
        {"source": "ml", "target": "cv"},
    ],
}


class StubLLM(LLMService):
    """Returns fixed words and records the prompt arguments it saw."""

    def __init__(self, words: list[RelatedWord]) -> None:
        super().__init__()
        self.words = words
        self.calls: list[tuple] = []

    @property
    def name(self) -> str:
        return "Stub"

    async def generate_related_words(self, keyword, prompt_template=""):
        self.calls.append(("expand", keyword, prompt_template))
        return list(self.words)

    async def deep_dive(self, current_node, existing_neighbors, root_theme, prompt_template=""):
        self.calls.append(("deep_dive", current_node, list(existing_neighbors), root_theme))
        return list(self.words)


@pytest.fixture()
def manager(fake_embeddings) -> GraphManager:
    m = GraphManager(
        embedder=EmbeddingModel(provider="ollama"),
        llm_service=MockLLMService({"delay": 0, "seed": 7}),
    )
    asyncio.run(m.init_from_data(DOC))
    return m


# ---------------------------------------------------------------------------
# Loading and basics
# ---------------------------------------------------------------------------

class TestLoading:
    def test_nodes_and_edges_loaded(self, manager) -> None:
        assert set(manager.nodes) == {"ai", "ml", "rob", "cv"}
        assert len(manager.edges) == 3
        assert manager.nodes["cv"].visible is False

    def test_replace_swaps_graph(self, manager) -> None:
        asyncio.run(manager.init_from_data({"nodes": [{"id": "x", "label": "AI"}]}, replace=True))
        assert list(manager.nodes) == ["x"]
        assert manager.edges == {}

    def test_replace_with_bad_document_keeps_graph(self, manager) -> None:
        with pytest.raises(FormatError):
            asyncio.run(
                manager.init_from_data({"nodes": [{"id": "x", "depth": "two"}]}, replace=True)
            )
        assert set(manager.nodes) == {"ai", "ml", "rob", "cv"}

    def test_vectors_embedded(self, manager) -> None:
        assert all(n.vector for n in manager.all_nodes())
        assert manager.embedder.dimension == 3

    def test_embed_disabled(self) -> None:
        m = GraphManager(embedder=EmbeddingModel())
        asyncio.run(m.init_from_data(DOC, embed=False))
        assert all(n.vector is None for n in m.all_nodes())

    def test_empty_document(self) -> None:
        m = GraphManager()
        asyncio.run(m.init_from_data(None))
        assert m.nodes == {}
        assert m.find_root_node() is None


class TestNodesAndEdges:
    def test_add_node_generates_id(self) -> None:
        m = GraphManager()
        a = m.add_node(label="first")
        b = m.add_node(label="second")
        assert a.id == "node_1"
        assert b.id == "node_2"

    def test_add_node_skips_taken_id(self) -> None:
        m = GraphManager()
        m.add_node(node_id="node_1", label="taken")
        assert m.add_node(label="fresh").id == "node_2"

    def test_duplicate_edge_either_direction(self, capsys) -> None:
        m = GraphManager()
        m.add_node("a")
        m.add_node("b")
        first = m.add_edge("a", "b")
        again = m.add_edge("b", "a")
        assert again is first
        assert len(m.edges) == 1
        assert "duplicate edge ignored" in capsys.readouterr().out

    def test_colour_by_depth(self) -> None:
        m = GraphManager(node_colors={"depth_0": "#111", "default": "#999"})
        assert m.add_node("root", depth=0).color == "#111"
        assert m.add_node("deep", depth=4).color == "#999"
        assert GraphManager().add_node("x").color == "#6b7280"

    def test_neighbors_both_directions(self, manager) -> None:
        assert {n.id for n in manager.neighbors("ml")} == {"ai", "cv"}

    def test_find_node_by_label_case_insensitive(self, manager) -> None:
        assert manager.find_node_by_label("machine learning").id == "ml"
        assert manager.find_node_by_label("nothing") is None

    def test_find_root_node(self, manager) -> None:
        assert manager.find_root_node().id == "ai"

    def test_delete_node_removes_edges(self, manager) -> None:
        assert manager.delete_node("ml") is True
        assert "ml" not in manager.nodes
        assert all("ml" not in (e.source, e.target) for e in manager.all_edges())
        assert manager.delete_node("ml") is False

    def test_require_node_missing(self, manager) -> None:
        with pytest.raises(NodeNotFoundError):
            manager.require_node("ghost")


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

class TestVisibility:
    def test_hide_and_show(self, manager) -> None:
        assert manager.hide_node("rob")
        assert not manager.nodes["rob"].visible
        assert manager.show_node("rob")
        assert manager.nodes["rob"].visible
        assert manager.hide_node("ghost") is False

    def test_show_all(self, manager) -> None:
        manager.show_all_nodes()
        assert all(n.visible for n in manager.all_nodes())

    def test_collapse_and_expand_branch(self, manager) -> None:
        manager.show_all_nodes()
        hidden = manager.collapse_branch("ai")
        assert hidden == 3
        assert manager.nodes["ai"].visible
        assert {n.id for n in manager.all_nodes() if not n.visible} == {"ml", "rob", "cv"}

        assert manager.expand_branch("ml") == 1
        assert manager.nodes["cv"].visible
        assert manager.nodes["ml"].visible

    def test_collapse_unknown_node(self, manager) -> None:
        with pytest.raises(NodeNotFoundError):
            manager.collapse_branch("ghost")

    def test_elements_exclude_hidden(self, manager) -> None:
        elements = manager.to_elements()
        ids = {n["data"]["id"] for n in elements["nodes"]}
        assert "cv" not in ids
        assert all(e["data"]["target"] != "cv" for e in elements["edges"])


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

class TestMerge:
    def test_merge_adds_only_new(self, manager) -> None:
        payload = GraphPayload(
            nodes=[Node(id="ai", label="AI"), Node(id="nlp", label="NLP")],
            edges=[
                Edge(id="x1", source="ml", target="ai"),
                Edge(id="x2", source="ai", target="nlp"),
            ],
        )
        added = manager.merge(payload)
        assert [n.id for n in added.nodes] == ["nlp"]
        assert [(e.source, e.target) for e in added.edges] == [("ai", "nlp")]
        assert len(manager.edges) == 4

    def test_merge_reshows_reconnected_node(self, manager) -> None:
        payload = GraphPayload(edges=[Edge(id="x", source="rob", target="cv")])
        manager.merge(payload)
        assert manager.nodes["cv"].visible


# ---------------------------------------------------------------------------
# LLM expansion
# ---------------------------------------------------------------------------

class TestExpansion:
    def test_generate_related_nodes_under_parent(self, manager) -> None:
        created = asyncio.run(manager.generate_related_nodes("Machine Learning", "ml"))
        assert 5 <= len(created) <= 6
        for node in created:
            assert node.depth == 2
            assert node.llm_generated
            assert node.vector is not None
            assert manager.find_edge("ml", node.id) is not None

    def test_generate_without_parent(self, manager) -> None:
        created = asyncio.run(manager.generate_related_nodes("Python"))
        assert created
        assert all(n.depth == 0 for n in created)
        assert all(not manager.neighbors(n.id) for n in created)

    def test_existing_label_reused(self, manager) -> None:
        stub = StubLLM([RelatedWord(word="robotics", relation="field"), RelatedWord(word="NLP")])
        manager.llm_service = stub
        created = asyncio.run(manager.generate_related_nodes("AI", "ml"))
        assert [n.label for n in created] == ["NLP"]
        assert manager.find_edge("ml", "rob").relation == "field"
        assert len([n for n in manager.all_nodes() if n.label.lower() == "robotics"]) == 1

    def test_unknown_parent(self, manager) -> None:
        with pytest.raises(NodeNotFoundError):
            asyncio.run(manager.generate_related_nodes("AI", "ghost"))

    def test_no_llm_configured(self) -> None:
        with pytest.raises(GraphError):
            asyncio.run(GraphManager().generate_related_nodes("AI"))

    def test_empty_reply_creates_nothing(self, manager) -> None:
        manager.llm_service = StubLLM([])
        before = len(manager.nodes)
        assert asyncio.run(manager.generate_related_nodes("AI", "ai")) == []
        assert len(manager.nodes) == before

    def test_custom_prompt_template_used(self, manager) -> None:
        stub = StubLLM([])
        manager.llm_service = stub
        manager.prompts = {"expand_keyword": "Words for {keyword}"}
        asyncio.run(manager.generate_related_nodes("AI"))
        assert stub.calls[0] == ("expand", "AI", "Words for {keyword}")

    def test_deep_dive_passes_context(self, manager) -> None:
        stub = StubLLM([RelatedWord(word="Reinforcement Learning", relation="paradigm")])
        manager.llm_service = stub
        created = asyncio.run(manager.deep_dive_node("ml"))
        kind, current, neighbours, theme = stub.calls[0]
        assert kind == "deep_dive"
        assert current == "Machine Learning"
        assert set(neighbours) == {"AI", "Computer Vision"}
        assert theme == "AI"
        assert created[0].depth == 2
        assert manager.nodes["ml"].expanded

    def test_deep_dive_unknown_node(self, manager) -> None:
        with pytest.raises(NodeNotFoundError):
            asyncio.run(manager.deep_dive_node("ghost"))


# ---------------------------------------------------------------------------
# Similarity views
# ---------------------------------------------------------------------------

class TestSimilarityViews:
    def test_hierarchy_excludes_hidden(self, manager) -> None:
        tree = manager.hierarchy("ai", threshold=0.6)
        assert [c.id for c in tree.children] == ["ml"]

        manager.show_all_nodes()
        tree = manager.hierarchy("ai", threshold=0.6)
        assert [c.id for c in tree.children] == ["ml", "cv"]

    def test_hierarchy_unknown_root(self, manager) -> None:
        with pytest.raises(NodeNotFoundError):
            manager.hierarchy("ghost")

    def test_find_similar(self, manager) -> None:
        result = manager.find_similar_nodes("ai", threshold=0.6)
        assert [s.id for s in result] == ["ml", "cv"]

    def test_manager_threshold_is_the_default(self, manager) -> None:
        manager.similarity_threshold = 0.85
        manager.show_all_nodes()
        assert [s.id for s in manager.find_similar_nodes("ai")] == ["ml"]
        assert [c.id for c in manager.hierarchy("ai").children] == ["ml"]
        assert [c.id for c in manager.hierarchy("ai", threshold=0.6).children] == ["ml", "cv"]

    def test_similarity_edges_apply(self, manager) -> None:
        proposed = manager.similarity_edges(threshold=0.75)
        assert {e.key for e in proposed} == {"ai-ml", "ai-cv"}
        added = manager.similarity_edges(threshold=0.75, apply=True)
        assert [e.key for e in added] == ["ai-cv"]
        assert manager.find_edge("ai", "cv").similarity == pytest.approx(0.8)

    def test_clusters(self, manager) -> None:
        clusters = manager.clusters(threshold=0.75)
        assert [sorted(n.id for n in c) for c in clusters] == [["ai", "cv", "ml"], ["rob"]]


class TestOutput:
    def test_to_yaml_data(self, manager) -> None:
        data = manager.to_yaml_data(title="Saved")
        assert data["metadata"]["title"] == "Saved"
        assert data["metadata"]["nodeCount"] == 4
        assert data["metadata"]["edgeCount"] == 3
        cv = next(n for n in data["nodes"] if n["id"] == "cv")
        assert cv["visible"] is False
        assert "vector" not in cv

    def test_clear(self, manager) -> None:
        manager.clear()
        assert manager.nodes == {} and manager.edges == {}
        assert manager.add_node(label="again").id == "node_1"
