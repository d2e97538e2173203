"""Brute-force dot-product scoring of passage embeddings.

Embedding providers return unit-normalized vectors, so the dot product is the
cosine similarity; stored vectors are never re-normalized here. Only the
mean vector built for "more like this" lookups is scaled back to unit length.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from passage_search.core.types import Document, Passage, VectorCandidate
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    """Plain dot product; vectors of different length raise ``ValueError``."""

    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    return float(np.dot(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)))


def document_vector(document: Document) -> list[float] | None:
    """Mean of a document's passage embeddings, scaled back to unit length.

    Embeddings whose dimension differs from the first one are ignored. Returns
    None when the document has no usable embedding.
    """

    vectors = [p.embedding for p in document.passages if p.embedding is not None]
    if not vectors:
        return None
    dimension = len(vectors[0])
    matrix = np.asarray([v for v in vectors if len(v) == dimension], dtype=np.float64)
    mean = matrix.mean(axis=0)
    norm = float(np.linalg.norm(mean))
    if not np.isfinite(norm) or norm == 0.0:
        return None
    return (mean / norm).tolist()


@dataclass(frozen=True)
class ScoredPassage:
    document: Document
    passage: Passage
    similarity: float


def score_passages(
    query_vector: Sequence[float], documents: Sequence[Document]
) -> Iterator[ScoredPassage]:
    """Yield a similarity for every passage that carries an embedding.

    Passages without an embedding are skipped; so are embeddings whose length
    differs from the query vector (produced by another model).
    """

    query = np.asarray(query_vector, dtype=np.float64)
    for document in documents:
        for passage in document.passages:
            if passage.embedding is None:
                continue
            if len(passage.embedding) != len(query):
                logger.warning(
                    "Skipping passage %s: embedding dimension %d != query dimension %d",
                    passage.id,
                    len(passage.embedding),
                    len(query),
                )
                continue
            similarity = float(np.dot(query, np.asarray(passage.embedding, dtype=np.float64)))
            yield ScoredPassage(document=document, passage=passage, similarity=similarity)


class VectorSearch:
    """Ranks documents by the similarity of their best passage."""

    def search(
        self,
        query_vector: Sequence[float],
        documents: Sequence[Document],
        k: int = 10,
        min_similarity: float | None = None,
    ) -> list[VectorCandidate]:
        best: dict[str, ScoredPassage] = {}
        for scored in score_passages(query_vector, documents):
            current = best.get(scored.document.id)
            # strict comparison keeps the earliest passage on ties
            if current is None or scored.similarity > current.similarity:
                best[scored.document.id] = scored

        candidates = [
            VectorCandidate(
                document=scored.document,
                similarity=scored.similarity,
                top_passage=scored.passage,
            )
            for scored in best.values()
            if min_similarity is None or scored.similarity >= min_similarity
        ]
        candidates.sort(key=lambda c: (-c.similarity, c.document_id))
        return candidates[:k] if k > 0 else []

    def find_similar(
        self,
        source: Document,
        documents: Sequence[Document],
        k: int = 10,
        min_similarity: float | None = None,
    ) -> list[VectorCandidate]:
        """Documents closest to ``source``'s mean passage vector, excluding ``source``."""

        vector = document_vector(source)
        if vector is None:
            logger.debug("Document %s has no embeddings; nothing is similar", source.id)
            return []
        others = [doc for doc in documents if doc.id != source.id]
        return self.search(vector, others, k=k, min_similarity=min_similarity)
