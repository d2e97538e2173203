"""Base abstraction for embedding providers.

Providers only implement the raw request (``_request_embeddings``); the base
class owns the shared contract:

- input validation (non-empty list of non-blank strings)
- role prefixes (queries and documents are embedded asymmetrically)
- output count check and L2 normalization, so a plain dot product between
  a query vector and a passage vector is the cosine similarity
- a typed ``EmbeddingError`` for every failure
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

import numpy as np

from passage_search.core.types import EmbeddingRole

EMBEDDING_ROLES: tuple[str, ...] = ("query", "document")

DEFAULT_QUERY_PREFIX = "task: search result | query: "
DEFAULT_DOCUMENT_PREFIX = "title: none | text: "


class EmbeddingError(RuntimeError):
    """Base error for embedding failures (model unavailable, inference error)."""


class BaseEmbedding(ABC):
    """Abstract embedding provider."""

    query_prefix: str = DEFAULT_QUERY_PREFIX
    document_prefix: str = DEFAULT_DOCUMENT_PREFIX

    def _configure_prefixes(self, embedding_settings: Any) -> None:
        query_prefix = getattr(embedding_settings, "query_prefix", None)
        document_prefix = getattr(embedding_settings, "document_prefix", None)
        if isinstance(query_prefix, str):
            self.query_prefix = query_prefix
        if isinstance(document_prefix, str):
            self.document_prefix = document_prefix

    def validate_texts(self, texts: Sequence[str]) -> None:
        """Reject an empty batch, non-string items and blank strings with ``ValueError``."""

        if not texts:
            raise ValueError("Texts list cannot be empty")

        for index, text in enumerate(texts):
            if not isinstance(text, str):
                raise ValueError(f"Item at index {index} is not a string")
            if not text.strip():
                raise ValueError(f"Item at index {index} is empty or whitespace-only")

    def apply_prefix(self, text: str, role: EmbeddingRole) -> str:
        if role not in EMBEDDING_ROLES:
            raise ValueError(f"Unknown embedding role: {role!r}")
        prefix = self.query_prefix if role == "query" else self.document_prefix
        return f"{prefix}{text}"

    @staticmethod
    def normalize(vector: Sequence[float]) -> list[float]:
        array = np.asarray(vector, dtype=np.float64)
        norm = float(np.linalg.norm(array))
        if not np.isfinite(norm) or norm == 0.0:
            raise EmbeddingError("Embedding has zero or non-finite norm")
        return (array / norm).tolist()

    async def embed(self, text: str, role: EmbeddingRole = "query", **kwargs: Any) -> list[float]:
        """Embed one text; returns a unit-normalized vector."""

        vectors = await self.embed_batch([text], role=role, **kwargs)
        return vectors[0]

    async def embed_batch(
        self,
        texts: Sequence[str],
        role: EmbeddingRole = "document",
        trace: Any | None = None,
        **kwargs: Any,
    ) -> list[list[float]]:
        """Embed a batch of texts for ``role``, one unit vector per input."""

        self.validate_texts(texts)
        prefixed = [self.apply_prefix(text, role) for text in texts]

        raw_vectors = await self._request_embeddings(prefixed, **kwargs)
        if len(raw_vectors) != len(texts):
            raise EmbeddingError(
                "Output length mismatch: embedding result count does not match input count"
            )

        vectors = [self.normalize(vector) for vector in raw_vectors]
        if trace is not None:
            trace.record_stage(
                "embedding",
                {"provider": type(self).__name__, "role": role, "count": len(vectors)},
            )
        return vectors

    @abstractmethod
    async def _request_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
        """Call the backend for already-prefixed texts; return raw vectors."""

    def get_dimension(self) -> int | None:
        """Vector dimension if known up front, else None."""

        return None
