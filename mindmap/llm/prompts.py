"""Default prompt templates and placeholder substitution.

Templates use ``{keyword}``, ``{root_theme}``, ``{current_node}`` and
``{existing_neighbors}`` placeholders.  Substitution is plain string
replacement, so templates may contain literal JSON braces.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

EXPAND_KEYWORD = (
    "Keyword: {keyword}\n"
    "List 5 to 8 concepts closely related to the keyword. "
    "Reply with a JSON array only, for example:\n"
    '[{"word": "concept", "relation": "how it relates"}]'
)

DEEP_DIVE = (
    "Central theme: {root_theme}\n"
    "Current node: {current_node}\n"
    "Already connected: {existing_neighbors}\n"
    "Suggest 4 to 6 new concepts that deepen the current node without "
    "repeating the connected ones. Reply with a JSON array only, for example:\n"
    '[{"word": "concept", "relation": "how it relates"}]'
)


def template(prompts: Optional[Mapping[str, str]], name: str, default: str) -> str:
    """Return ``prompts[name]`` if configured, else *default*."""
    if prompts and prompts.get(name):
        return prompts[name]
    return default


def render_expand(prompt_template: str, keyword: str) -> str:
    return prompt_template.replace("{keyword}", keyword)


def render_deep_dive(
    prompt_template: str,
    current_node: str,
    existing_neighbors: Iterable[str],
    root_theme: str,
) -> str:
    return (
        prompt_template.replace("{root_theme}", root_theme)
        .replace("{current_node}", current_node)
        .replace("{existing_neighbors}", ", ".join(existing_neighbors))
    )
