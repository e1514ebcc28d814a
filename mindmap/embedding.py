"""Text embedding handle.

Embedding providers
-------------------
``ollama`` (default)
    Calls the local Ollama REST API at ``/api/embeddings``.
    Configure via ``OLLAMA_BASE_URL`` and ``OLLAMA_EMBED_MODEL``.

``openai``
    Calls the OpenAI embeddings API.
    Requires ``OPENAI_API_KEY`` to be set.
    Configure via ``OPENAI_EMBED_MODEL``.

Set ``EMBEDDING_PROVIDER=openai`` in your ``.env`` to switch providers.

The model is owned by whoever constructs an :class:`EmbeddingModel` (the API
lifespan, a CLI command, a test).  Initialisation runs once: concurrent
callers that arrive while it is in flight await the same task.
"""

from __future__ import annotations

import asyncio
import os
from time import perf_counter
from typing import Callable, Optional, Sequence

import httpx
import numpy as np

from mindmap.config import settings
from mindmap.errors import EmbeddingError

ProgressCallback = Callable[[int, int], None]

_PROBE_TEXT = "dimension probe"


# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------

async def _embed_ollama(text: str) -> list[float]:
    """Call Ollama ``/api/embeddings`` and return the embedding vector."""
    async with httpx.AsyncClient(timeout=settings.embedding_timeout) as client:
        response = await client.post(
            f"{settings.ollama_base_url}/api/embeddings",
            json={"model": settings.ollama_embed_model, "prompt": text},
        )
        response.raise_for_status()
        return response.json()["embedding"]


def _openai_key() -> str:
    api_key = os.environ.get("OPENAI_API_KEY", "")
    if not api_key:
        raise EmbeddingError(
            "OPENAI_API_KEY environment variable is not set. "
            "Set it or switch to EMBEDDING_PROVIDER=ollama."
        )
    return api_key


async def _embed_openai(text: str) -> list[float]:
    """Call the OpenAI embeddings API and return the embedding vector."""
    api_key = _openai_key()
    async with httpx.AsyncClient(timeout=settings.embedding_timeout) as client:
        response = await client.post(
            "https://api.openai.com/v1/embeddings",
            headers={"Authorization": f"Bearer {api_key}"},
            json={"model": settings.openai_embed_model, "input": text},
        )
        response.raise_for_status()
        return response.json()["data"][0]["embedding"]


def normalize(vector: Sequence[float]) -> list[float]:
    """Scale *vector* to unit length.  Zero vectors are returned unchanged."""
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


# ---------------------------------------------------------------------------
# Model handle
# ---------------------------------------------------------------------------

class EmbeddingModel:
    """Lazily initialised embedding backend with a one-time init guard.

    Args:
        provider: ``"ollama"`` or ``"openai"``.  Defaults to
            ``settings.embedding_provider``.
        dimension: Expected vector length.  When omitted it is taken from
            the probe embedding computed during initialisation.
    """

    def __init__(self, provider: Optional[str] = None, dimension: Optional[int] = None) -> None:
        self.provider = provider or settings.embedding_provider
        self.dimension = dimension
        self._init_task: Optional[asyncio.Task] = None
        self._loaded = False
        self._failed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def status(self) -> str:
        """One of ``idle``, ``loading``, ``loaded`` or ``error``."""
        if self._loaded:
            return "loaded"
        if self._init_task is not None and not self._init_task.done():
            return "loading"
        if self._failed:
            return "error"
        return "idle"

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------
    async def initialize(self) -> EmbeddingModel:
        """Load the model once; concurrent callers share the in-flight load.

        Raises:
            EmbeddingError: If the provider is unknown, misconfigured or the
                probe request fails.  The guard is reset so a later call
                retries.
        """
        if self._loaded:
            return self
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load())
        await self._init_task
        return self

    async def _load(self) -> None:
        print(f"[embedding] loading {self.provider} model …")
        started = perf_counter()
        try:
            if self.provider == "openai":
                _openai_key()
            elif self.provider != "ollama":
                raise EmbeddingError(f"Unknown embedding provider: {self.provider!r}")

            probe = await self._raw_embed(_PROBE_TEXT)
            if self.dimension is None:
                self.dimension = len(probe)
            elif len(probe) != self.dimension:
                raise EmbeddingError(
                    f"Model returned {len(probe)}-dim vectors, expected {self.dimension}"
                )
        except Exception:
            self._failed = True
            self._init_task = None
            print("[embedding] ❌ model load failed")
            raise

        self._loaded = True
        self._failed = False
        print(
            f"[embedding] ✓ model ready (dim={self.dimension}) "
            f"in {perf_counter() - started:.2f}s"
        )

    async def _raw_embed(self, text: str) -> list[float]:
        try:
            if self.provider == "openai":
                return await _embed_openai(text)
            return await _embed_ollama(text)
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise EmbeddingError(f"Malformed embedding response: {exc!r}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def embed(self, text: str) -> list[float]:
        """Return a unit-length embedding vector for *text*.

        Raises:
            EmbeddingError: If the request fails or the vector length differs
                from the session dimension.
        """
        await self.initialize()
        vector = await self._raw_embed(text)
        if len(vector) != self.dimension:
            raise EmbeddingError(
                f"Embedding for {text!r} has length {len(vector)}, expected {self.dimension}"
            )
        return normalize(vector)

    async def embed_batch(
        self,
        texts: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[list[float]]:
        """Embed *texts* one at a time, preserving order.

        Args:
            texts: Strings to embed.
            on_progress: Optional ``callback(done, total)`` invoked after each
                item.
        """
        total = len(texts)
        if total == 0:
            return []

        print(f"[embedding] embedding {total} text(s) …")
        started = perf_counter()
        await self.initialize()

        vectors: list[list[float]] = []
        for i, text in enumerate(texts, start=1):
            vectors.append(await self.embed(text))
            if on_progress is not None:
                on_progress(i, total)
            if i % 5 == 0 or i == total:
                print(f"[embedding]   {i}/{total} done")

        print(f"[embedding] ✓ batch finished in {perf_counter() - started:.2f}s")
        return vectors
