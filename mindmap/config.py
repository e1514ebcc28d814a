"""Centralised settings for the mind-map engine.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Presentation-level options (prompt templates, node colours, LLM provider
blocks) live in a YAML app config, loaded with :func:`load_app_config`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _optional_path(name: str) -> Optional[Path]:
    value = os.environ.get(name, "")
    return Path(value) if value else None


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    app_config_path: Optional[Path] = field(
        default_factory=lambda: _optional_path("MINDMAP_CONFIG")
    )
    initial_graph_path: Optional[Path] = field(
        default_factory=lambda: _optional_path("MINDMAP_INITIAL_GRAPH")
    )
    cli_config_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("MINDMAP_CLI_DIR", Path.home() / ".mindmap_cli")
        )
    )

    # ------------------------------------------------------------------
    # Embedding model
    # ------------------------------------------------------------------
    embedding_provider: str = field(
        default_factory=lambda: os.environ.get("EMBEDDING_PROVIDER", "ollama")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_embed_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_EMBED_MODEL", "embeddinggemma:latest")
    )
    openai_embed_model: str = field(
        default_factory=lambda: os.environ.get(
            "OPENAI_EMBED_MODEL", "text-embedding-3-small"
        )
    )
    embedding_timeout: float = field(
        default_factory=lambda: float(os.environ.get("EMBEDDING_TIMEOUT", "60.0"))
    )

    # ------------------------------------------------------------------
    # LLM expansion
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "mock")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )
    anthropic_chat_model: str = field(
        default_factory=lambda: os.environ.get(
            "ANTHROPIC_CHAT_MODEL", "claude-sonnet-4-20250514"
        )
    )
    llm_temperature: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.7"))
    )
    llm_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "1024"))
    )
    mock_llm_delay: float = field(
        default_factory=lambda: float(os.environ.get("MOCK_LLM_DELAY", "0.5"))
    )

    # ------------------------------------------------------------------
    # Similarity / hierarchy
    # ------------------------------------------------------------------
    similarity_threshold: float = field(
        default_factory=lambda: float(os.environ.get("SIMILARITY_THRESHOLD", "0.6"))
    )
    hierarchy_max_depth: int = field(
        default_factory=lambda: int(os.environ.get("HIERARCHY_MAX_DEPTH", "3"))
    )
    hierarchy_branching: int = field(
        default_factory=lambda: int(os.environ.get("HIERARCHY_BRANCHING", "3"))
    )
    edge_threshold: float = field(
        default_factory=lambda: float(os.environ.get("EDGE_THRESHOLD", "0.7"))
    )
    max_edges_per_node: int = field(
        default_factory=lambda: int(os.environ.get("MAX_EDGES_PER_NODE", "3"))
    )


# Module-level singleton, import this everywhere:
#   from mindmap.config import settings
settings = Settings()


# ---------------------------------------------------------------------------
# YAML app config
# ---------------------------------------------------------------------------

@dataclass
class AppConfig:
    # No ``llm.provider`` here means ``settings.llm_provider`` decides.
    llm: dict[str, Any] = field(default_factory=dict)
    prompts: dict[str, str] = field(default_factory=dict)
    node_colors: dict[str, str] = field(default_factory=dict)
    similarity: dict[str, Any] = field(default_factory=dict)

    @property
    def provider(self) -> str:
        return self.llm.get("provider") or settings.llm_provider

    @property
    def default_threshold(self) -> float:
        """Hierarchy threshold; ``similarity.default_threshold`` or the setting."""
        return float(self.similarity.get("default_threshold", settings.similarity_threshold))

    def llm_provider_config(self, provider: str) -> dict[str, Any]:
        """Return the ``llm.<provider>`` block merged with a top-level ``apiKey``."""
        block = dict(self.llm.get(provider) or {})
        if self.llm.get("apiKey") and not block.get("apiKey"):
            block["apiKey"] = self.llm["apiKey"]
        return block


def load_app_config(path: Optional[Path] = None) -> AppConfig:
    """Load the YAML app config.

    Falls back to :class:`AppConfig` defaults when no path is configured or
    the file does not exist.  Sections missing from the file keep their
    defaults; the original ``app`` and ``graph`` sections are ignored.

    Raises:
        yaml.YAMLError: If the file exists but is not valid YAML.
    """
    path = path or settings.app_config_path
    if path is None or not Path(path).exists():
        return AppConfig()

    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    defaults = AppConfig()
    return AppConfig(
        llm=raw.get("llm") or defaults.llm,
        prompts=raw.get("prompts") or defaults.prompts,
        node_colors=raw.get("node_colors") or defaults.node_colors,
        similarity=raw.get("similarity") or defaults.similarity,
    )
