"""Shared fixtures.

No test talks to Ollama, OpenAI or Anthropic: the embedding provider call is
replaced by a lookup table and the LLM adapter is the seeded mock.
"""

from __future__ import annotations

import math

import pytest

# Hand-picked unit vectors.  Labels not listed embed to FALLBACK.
VECTORS: dict[str, list[float]] = {
    "dimension probe": [1.0, 0.0, 0.0],
    "AI": [1.0, 0.0, 0.0],
    "Machine Learning": [0.9, math.sqrt(1 - 0.81), 0.0],
    "Robotics": [0.5, -math.sqrt(0.75), 0.0],
    "Computer Vision": [0.8, 0.0, 0.6],
}
FALLBACK: list[float] = [0.0, 0.0, 1.0]


def fake_vector(text: str) -> list[float]:
    return list(VECTORS.get(text, FALLBACK))


@pytest.fixture()
def fake_embeddings(monkeypatch):
    """Route every embedding request through :data:`VECTORS`.

    Returns the list of texts that were sent, in order.
    """
    calls: list[str] = []

    async def _fake(text: str) -> list[float]:
        calls.append(text)
        return fake_vector(text)

    monkeypatch.setattr("mindmap.embedding._embed_ollama", _fake)
    monkeypatch.setattr("mindmap.embedding.settings.embedding_provider", "ollama")
    return calls


@pytest.fixture()
def isolated_settings(tmp_path, monkeypatch):
    """Point the CLI state at a temporary directory and use the instant mock LLM."""
    cli_dir = tmp_path / ".mindmap_cli"
    cli_dir.mkdir()
    monkeypatch.setattr("mindmap.config.settings.cli_config_dir", cli_dir)
    monkeypatch.setattr("mindmap.config.settings.llm_provider", "mock")
    monkeypatch.setattr("mindmap.config.settings.mock_llm_delay", 0.0)
    monkeypatch.setattr("mindmap.config.settings.app_config_path", None)
    monkeypatch.setattr("mindmap.config.settings.initial_graph_path", None)
    return tmp_path
