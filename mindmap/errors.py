"""Exception types raised by the mind-map engine.

Errors are shallow: each carries a user-facing message and is caught at the
HTTP or CLI boundary.  Numeric degeneracies (vector mismatch, empty result
sets) never raise; they degrade to neutral values instead.
"""

from __future__ import annotations


class MindmapError(Exception):
    """Base class for all engine errors."""


class GraphError(MindmapError):
    """Invalid graph operation (e.g. expansion without an LLM service)."""


class NodeNotFoundError(GraphError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id!r}")
        self.node_id = node_id


class EmbeddingError(MindmapError):
    """The embedding backend failed or returned an unusable vector."""


class LLMConfigError(MindmapError):
    """An LLM adapter is missing required configuration (usually an API key)."""


class LLMRequestError(MindmapError):
    """The remote LLM call failed."""


class FormatError(MindmapError):
    """A YAML/CSV document could not be parsed into a graph."""
