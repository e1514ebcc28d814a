"""Extraction of ``[{word, relation}, ...]`` lists from free-form LLM output."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator


class RelatedWord(BaseModel):
    word: str
    relation: str = ""

    @field_validator("word")
    @classmethod
    def _word_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("word must not be blank")
        return value

    @field_validator("relation", mode="before")
    @classmethod
    def _relation_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


def _extract_array(text: str) -> str:
    """Return the span from the first ``[`` to the last ``]`` (or *text*)."""
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_related_words(text: str) -> list[RelatedWord]:
    """Parse an LLM reply into :class:`RelatedWord` items.

    The reply may wrap the JSON array in prose or a code fence.  Malformed
    replies degrade to ``[]``; individual invalid items are dropped.
    """
    try:
        raw = json.loads(_extract_array(text or ""))
    except json.JSONDecodeError as exc:
        print(f"[llm] could not parse JSON from reply: {exc}")
        print(f"[llm] raw reply: {text!r:.200}")
        return []

    if not isinstance(raw, list):
        print(f"[llm] expected a JSON array, got {type(raw).__name__}")
        return []

    words: list[RelatedWord] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            words.append(RelatedWord.model_validate(item))
        except ValidationError:
            continue
    return words
