"""LLM adapters package."""

from mindmap.llm.parsing import RelatedWord, parse_related_words
from mindmap.llm.providers import (
    AnthropicService,
    LLMService,
    MockLLMService,
    OllamaService,
    OpenAIService,
    create_llm_service,
)

__all__ = [
    "RelatedWord",
    "parse_related_words",
    "LLMService",
    "MockLLMService",
    "OpenAIService",
    "AnthropicService",
    "OllamaService",
    "create_llm_service",
]
