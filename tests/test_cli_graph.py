"""Tests for the 'graph' and 'analyze' CLI command groups and the root app."""

import json

import pytest
import yaml
from typer.testing import CliRunner

from cli.commands.analyze import analyze_app
from cli.commands.graph import graph_app
from cli.context import load_context
from cli.main import app

runner = CliRunner()

SEED = {
    "metadata": {"title": "AI map"},
    "nodes": [
        {"id": "ai", "label": "AI", "depth": 0},
        {"id": "ml", "label": "Machine Learning", "depth": 1},
        {"id": "rob", "label": "Robotics", "depth": 1},
        {"id": "cv", "label": "Computer Vision", "depth": 2},
    ],
    "edges": [
        {"source": "ai", "target": "ml", "relation": "technique"},
        {"source": "ai", "target": "rob"},
        {"source": "ml", "target": "cv"},
    ],
}


@pytest.fixture
def graph_file(isolated_settings, fake_embeddings):
    """Write the seed graph and make it the active one."""
    path = isolated_settings / "ai.yaml"
    path.write_text(yaml.safe_dump(SEED, sort_keys=False), encoding="utf-8")
    result = runner.invoke(graph_app, ["use", str(path)])
    assert result.exit_code == 0
    return path


def _reload(path):
    return yaml.safe_load(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# graph
# ---------------------------------------------------------------------------

def test_use_sets_active_graph(graph_file):
    ctx = load_context()
    assert ctx.active_graph_path == str(graph_file.resolve())
    assert ctx.active_graph_title == "AI map"


def test_use_missing_file(isolated_settings):
    result = runner.invoke(graph_app, ["use", str(isolated_settings / "nope.yaml")])
    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_commands_need_active_graph(isolated_settings):
    result = runner.invoke(graph_app, ["show"])
    assert result.exit_code == 1
    assert "No active graph selected" in result.stdout


def test_show_tree(graph_file):
    result = runner.invoke(graph_app, ["show"])
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert "🧠 AI" in lines
    assert any("[technique]" in line and "Machine Learning" in line for line in lines)
    assert any(line.startswith("│   └── ") and "Computer Vision" in line for line in lines)


def test_show_list(graph_file):
    runner.invoke(graph_app, ["collapse", "ml"])
    result = runner.invoke(graph_app, ["show", "--format", "list"])
    assert result.exit_code == 0
    assert "Nodes in graph (4):" in result.stdout
    assert "Computer Vision (cv) (hidden)" in result.stdout


def test_expand_keyword_saves_nodes(graph_file):
    result = runner.invoke(graph_app, ["expand", "Python", "--parent", "rob"])
    assert result.exit_code == 0, result.stdout
    assert "✅ Added" in result.stdout

    data = _reload(graph_file)
    new_nodes = [n for n in data["nodes"] if n["llmGenerated"]]
    assert 5 <= len(new_nodes) <= 6
    assert all(n["depth"] == 2 for n in new_nodes)
    new_ids = {n["id"] for n in new_nodes}
    assert all(e["source"] == "rob" for e in data["edges"] if e["target"] in new_ids)


def test_expand_unknown_parent(graph_file):
    result = runner.invoke(graph_app, ["expand", "AI", "--parent", "ghost"])
    assert result.exit_code == 1
    assert "❌ Error: Node not found: 'ghost'" in result.stdout


def test_deep_dive(graph_file):
    result = runner.invoke(graph_app, ["deep-dive", "ml"])
    assert result.exit_code == 0, result.stdout
    data = _reload(graph_file)
    ml = next(n for n in data["nodes"] if n["id"] == "ml")
    assert ml["expanded"] is True


def test_collapse_and_expand_branch(graph_file):
    result = runner.invoke(graph_app, ["collapse", "ai"])
    assert "3 node(s) hidden" in result.stdout
    hidden = {n["id"] for n in _reload(graph_file)["nodes"] if not n["visible"]}
    assert hidden == {"ml", "rob", "cv"}

    result = runner.invoke(graph_app, ["expand-branch", "ai"])
    assert "3 node(s) shown" in result.stdout
    assert all(n["visible"] for n in _reload(graph_file)["nodes"])


def test_collapse_unknown_node(graph_file):
    result = runner.invoke(graph_app, ["collapse", "ghost"])
    assert result.exit_code == 1
    assert "❌ Error" in result.stdout


def test_delete(graph_file):
    result = runner.invoke(graph_app, ["delete", "ml"])
    assert result.exit_code == 0
    data = _reload(graph_file)
    assert "ml" not in {n["id"] for n in data["nodes"]}
    assert all("ml" not in (e["source"], e["target"]) for e in data["edges"])
    assert runner.invoke(graph_app, ["delete", "ml"]).exit_code == 1


def test_import_csv_merges_into_active(graph_file, isolated_settings):
    csv_path = isolated_settings / "edges.csv"
    csv_path.write_text("source,target\nai,nlp\nnlp,ai\nai,ml\n", encoding="utf-8")
    result = runner.invoke(graph_app, ["import-csv", str(csv_path)])
    assert result.exit_code == 0
    assert "1 node(s) and 1 edge(s)" in result.stdout
    data = _reload(graph_file)
    assert "nlp" in {n["id"] for n in data["nodes"]}
    assert len(data["edges"]) == 4


def test_import_csv_to_new_file(isolated_settings):
    csv_path = isolated_settings / "edges.csv"
    csv_path.write_text("source,target\nA,B\nB,A\nB,C\n", encoding="utf-8")
    out = isolated_settings / "fresh.yaml"
    result = runner.invoke(graph_app, ["import-csv", str(csv_path), "--out", str(out)])
    assert result.exit_code == 0
    data = _reload(out)
    assert [n["id"] for n in data["nodes"]] == ["A", "B", "C"]
    assert [(e["source"], e["target"]) for e in data["edges"]] == [("A", "B"), ("B", "C")]
    assert load_context().active_graph_path == str(out.resolve())


def test_import_csv_without_target(isolated_settings):
    csv_path = isolated_settings / "edges.csv"
    csv_path.write_text("source,target\nA,B\n", encoding="utf-8")
    result = runner.invoke(graph_app, ["import-csv", str(csv_path)])
    assert result.exit_code == 1


def test_export_visible(graph_file, isolated_settings):
    runner.invoke(graph_app, ["collapse", "ml"])
    out = isolated_settings / "exports" / "visible.json"
    result = runner.invoke(graph_app, ["export-visible", "--out", str(out)])
    assert result.exit_code == 0
    edges = json.loads(out.read_text(encoding="utf-8"))["elements"]["edges"]
    assert {"data": {"source": "ml", "target": "cv"}} not in edges
    assert len(edges) == 2


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------

def test_analyze_hierarchy(graph_file):
    result = runner.invoke(analyze_app, ["hierarchy", "--threshold", "0.6"])
    assert result.exit_code == 0, result.stdout
    lines = result.stdout.strip().splitlines()
    assert lines[-3] == "🧠 AI"
    assert lines[-2] == "├── 💡 Machine Learning (0.900)"
    assert lines[-1] == "└── 💡 Computer Vision (0.800)"


def test_analyze_hierarchy_unknown_root(graph_file):
    result = runner.invoke(analyze_app, ["hierarchy", "--root", "ghost"])
    assert result.exit_code == 1


def test_analyze_edges_apply(graph_file):
    result = runner.invoke(analyze_app, ["edges", "--threshold", "0.75", "--apply"])
    assert result.exit_code == 0
    assert "AI ↔ Computer Vision  0.800" in result.stdout
    assert len(_reload(graph_file)["edges"]) == 4


def test_analyze_clusters(graph_file):
    result = runner.invoke(analyze_app, ["clusters", "--threshold", "0.75"])
    assert result.exit_code == 0
    assert "Cluster 1 (3)" in result.stdout
    assert "Cluster 2 (1): Robotics" in result.stdout


# ---------------------------------------------------------------------------
# root app
# ---------------------------------------------------------------------------

def test_root_help_lists_groups():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("graph", "analyze", "serve"):
        assert name in result.stdout
