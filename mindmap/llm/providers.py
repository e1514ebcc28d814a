"""LLM adapters that propose related concepts for the mind map.

Provider selection (``settings.llm_provider`` or the app config
``llm.provider`` key):

  ``mock``       canned topic tables, no network; the default.
  ``openai``     LangChain ``ChatOpenAI``; requires an API key.
  ``anthropic``  LangChain ``ChatAnthropic``; requires an API key.
  ``ollama``     LangChain ``ChatOllama`` against a local Ollama server.

All adapters share one interface: ``generate_related_words`` and
``deep_dive``, both returning ``list[RelatedWord]``.  Adapters hold only the
configuration they were built with.  A missing key raises
:class:`LLMConfigError`; a failed call raises :class:`LLMRequestError`.
Unparseable replies degrade to ``[]``.
"""

from __future__ import annotations

import asyncio
import os
import random
from abc import ABC, abstractmethod
from typing import Any, Optional

from mindmap.config import settings
from mindmap.errors import LLMConfigError, LLMRequestError
from mindmap.llm import prompts
from mindmap.llm.parsing import RelatedWord, parse_related_words

# YAML app config keys are camelCase; adapters take snake_case.
_CONFIG_ALIASES = {
    "apiKey": "api_key",
    "maxTokens": "max_tokens",
    "baseUrl": "base_url",
}


def _normalise_config(config: Optional[dict[str, Any]]) -> dict[str, Any]:
    return {_CONFIG_ALIASES.get(k, k): v for k, v in (config or {}).items()}


def _message_text(message: Any) -> str:
    """Return the text of a LangChain message (str or content-block list)."""
    content = message.content if hasattr(message, "content") else message
    if isinstance(content, list):
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content)


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class LLMService(ABC):
    """Interface for a single concept-suggestion backend."""

    def __init__(self, config: Optional[dict[str, Any]] = None) -> None:
        self.config = _normalise_config(config)

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    async def generate_related_words(
        self,
        keyword: str,
        prompt_template: str = prompts.EXPAND_KEYWORD,
    ) -> list[RelatedWord]:
        """Return concepts related to *keyword*."""

    @abstractmethod
    async def deep_dive(
        self,
        current_node: str,
        existing_neighbors: list[str],
        root_theme: str,
        prompt_template: str = prompts.DEEP_DIVE,
    ) -> list[RelatedWord]:
        """Return new concepts for *current_node* that avoid its neighbours."""


# ---------------------------------------------------------------------------
# LangChain-backed remote adapters
# ---------------------------------------------------------------------------

class _ChatModelService(LLMService):
    """Shared request flow for adapters that wrap a LangChain chat model."""

    @abstractmethod
    def _chat_model(self) -> Any:
        """Build the LangChain chat model for one request."""

    async def _complete(self, prompt: str) -> str:
        llm = self._chat_model()
        try:
            response = await llm.ainvoke(prompt)
        except Exception as exc:
            raise LLMRequestError(f"{self.name} API error: {exc}") from exc
        return _message_text(response)

    async def generate_related_words(
        self,
        keyword: str,
        prompt_template: str = prompts.EXPAND_KEYWORD,
    ) -> list[RelatedWord]:
        reply = await self._complete(prompts.render_expand(prompt_template, keyword))
        return parse_related_words(reply)

    async def deep_dive(
        self,
        current_node: str,
        existing_neighbors: list[str],
        root_theme: str,
        prompt_template: str = prompts.DEEP_DIVE,
    ) -> list[RelatedWord]:
        prompt = prompts.render_deep_dive(
            prompt_template, current_node, existing_neighbors, root_theme
        )
        return parse_related_words(await self._complete(prompt))


class OpenAIService(_ChatModelService):
    """OpenAI chat completions via ``langchain_openai``."""

    @property
    def name(self) -> str:
        return "OpenAI"

    def _chat_model(self) -> Any:
        api_key = self.config.get("api_key") or os.environ.get("OPENAI_API_KEY", "")
        if not api_key:
            raise LLMConfigError("OpenAI API key is not set (OPENAI_API_KEY).")

        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=self.config.get("model", settings.openai_chat_model),
            api_key=api_key,
            max_tokens=self.config.get("max_tokens", settings.llm_max_tokens),
            temperature=self.config.get("temperature", settings.llm_temperature),
        )


class AnthropicService(_ChatModelService):
    """Anthropic messages API via ``langchain_anthropic``."""

    @property
    def name(self) -> str:
        return "Anthropic"

    def _chat_model(self) -> Any:
        api_key = self.config.get("api_key") or os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key:
            raise LLMConfigError("Anthropic API key is not set (ANTHROPIC_API_KEY).")

        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=self.config.get("model", settings.anthropic_chat_model),
            api_key=api_key,
            max_tokens=self.config.get("max_tokens", settings.llm_max_tokens),
            temperature=self.config.get("temperature", settings.llm_temperature),
        )


class OllamaService(_ChatModelService):
    """Local chat model via ``langchain_ollama``.  Needs no key."""

    @property
    def name(self) -> str:
        return "Ollama"

    def _chat_model(self) -> Any:
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=self.config.get("model", settings.ollama_chat_model),
            base_url=self.config.get("base_url", settings.ollama_base_url),
            temperature=self.config.get("temperature", settings.llm_temperature),
        )


# ---------------------------------------------------------------------------
# Mock adapter (no key, demo / tests)
# ---------------------------------------------------------------------------

MOCK_DATA: dict[str, list[dict[str, str]]] = {
    "default": [
        {"word": "Core Concepts", "relation": "foundation"},
        {"word": "Applications", "relation": "practical use"},
        {"word": "Related Technology", "relation": "technical link"},
        {"word": "History", "relation": "how it developed"},
        {"word": "Current Trends", "relation": "where it is heading"},
    ],
    "Machine Learning": [
        {"word": "Neural Networks", "relation": "underlying technique"},
        {"word": "Data Preprocessing", "relation": "required step"},
        {"word": "Feature Engineering", "relation": "key technique"},
        {"word": "Model Evaluation", "relation": "quality check"},
        {"word": "Hyperparameters", "relation": "tuning knob"},
        {"word": "Overfitting", "relation": "common pitfall"},
    ],
    "Deep Learning": [
        {"word": "Gradient Descent", "relation": "optimiser"},
        {"word": "Activation Functions", "relation": "building block"},
        {"word": "Batch Normalization", "relation": "stabiliser"},
        {"word": "Dropout", "relation": "regulariser"},
        {"word": "GPU Computing", "relation": "acceleration"},
        {"word": "Frameworks", "relation": "tooling"},
    ],
    "Transformer": [
        {"word": "Self-Attention", "relation": "core mechanism"},
        {"word": "Multi-Head Attention", "relation": "extension"},
        {"word": "Position Encoding", "relation": "order information"},
        {"word": "Feed Forward", "relation": "layer"},
        {"word": "Layer Normalization", "relation": "normalisation"},
        {"word": "Large Language Models", "relation": "descendant"},
    ],
    "Data Science": [
        {"word": "Statistics", "relation": "base skill"},
        {"word": "Data Visualization", "relation": "presentation"},
        {"word": "SQL", "relation": "data access"},
        {"word": "Python", "relation": "main language"},
        {"word": "Pandas", "relation": "data wrangling"},
        {"word": "Big Data", "relation": "scale"},
    ],
    "AI": [
        {"word": "Machine Learning", "relation": "main technique"},
        {"word": "Natural Language Processing", "relation": "application area"},
        {"word": "Computer Vision", "relation": "application area"},
        {"word": "Robotics", "relation": "application area"},
        {"word": "Ethics and Regulation", "relation": "societal issue"},
        {"word": "AGI", "relation": "long-term goal"},
    ],
    "Python": [
        {"word": "NumPy", "relation": "numerics"},
        {"word": "Pandas", "relation": "data analysis"},
        {"word": "Matplotlib", "relation": "plotting"},
        {"word": "Scikit-learn", "relation": "machine learning"},
        {"word": "TensorFlow", "relation": "deep learning"},
        {"word": "PyTorch", "relation": "deep learning"},
    ],
}


class MockLLMService(LLMService):
    """Offline adapter that draws from :data:`MOCK_DATA`.

    Config keys: ``delay`` (seconds, default ``settings.mock_llm_delay``) and
    ``seed`` (for reproducible picks).
    """

    def __init__(self, config: Optional[dict[str, Any]] = None) -> None:
        super().__init__(config)
        self.delay = float(self.config.get("delay", settings.mock_llm_delay))
        self._rng = random.Random(self.config.get("seed"))

    @property
    def name(self) -> str:
        return "Mock"

    def find_best_match(self, keyword: str) -> list[dict[str, str]]:
        """Return the topic table whose key overlaps *keyword*, else ``default``."""
        lower = keyword.lower()
        for key, table in MOCK_DATA.items():
            if key == "default":
                continue
            if key.lower() in lower or lower in key.lower():
                return table
        return MOCK_DATA["default"]

    def _pick(self, items: list[dict[str, str]], low: int, high: int) -> list[RelatedWord]:
        count = self._rng.randint(low, high)
        shuffled = list(items)
        self._rng.shuffle(shuffled)
        return [RelatedWord(**item) for item in shuffled[: min(count, len(shuffled))]]

    async def generate_related_words(
        self,
        keyword: str,
        prompt_template: str = prompts.EXPAND_KEYWORD,
    ) -> list[RelatedWord]:
        print(f"[llm] [Mock] generating related words for {keyword!r} …")
        await asyncio.sleep(self.delay)
        selected = self._pick(self.find_best_match(keyword), 5, 7)
        print(f"[llm] [Mock] ✓ {len(selected)} word(s).")
        return selected

    async def deep_dive(
        self,
        current_node: str,
        existing_neighbors: list[str],
        root_theme: str,
        prompt_template: str = prompts.DEEP_DIVE,
    ) -> list[RelatedWord]:
        print(f"[llm] [Mock] deep dive on {current_node!r} …")
        await asyncio.sleep(self.delay)

        known = [n.lower() for n in existing_neighbors]

        def _is_known(word: str, both_ways: bool = True) -> bool:
            w = word.lower()
            return any(w in n or (both_ways and n in w) for n in known)

        results = [
            item for item in self.find_best_match(current_node) if not _is_known(item["word"])
        ]
        if len(results) < 3:
            defaults = [
                item for item in MOCK_DATA["default"]
                if not _is_known(item["word"], both_ways=False)
            ]
            results = (results + defaults)[:5]

        selected = self._pick(results, 4, 6)
        print(f"[llm] [Mock] ✓ {len(selected)} deep-dive word(s).")
        return selected


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, type[LLMService]] = {
    "openai": OpenAIService,
    "anthropic": AnthropicService,
    "ollama": OllamaService,
    "mock": MockLLMService,
}


def create_llm_service(
    provider: Optional[str] = None,
    config: Optional[dict[str, Any]] = None,
) -> LLMService:
    """Build the adapter named *provider*; unknown names fall back to mock."""
    name = (provider or settings.llm_provider).lower()
    cls = _PROVIDERS.get(name, MockLLMService)
    service = cls(config)
    print(f"[llm] service initialised: {service.name}")
    return service
