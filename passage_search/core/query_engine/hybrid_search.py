"""Hybrid search: Snapshot -> [Keyword || Semantic] -> Weighted RRF -> Confidence."""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from passage_search.core.query_engine.fusion import classify_confidence, weighted_rrf_fusion
from passage_search.core.query_engine.keyword_search import KeywordSearch
from passage_search.core.query_engine.query_cache import QueryCache
from passage_search.core.query_engine.vector_search import VectorSearch
from passage_search.core.settings import Settings, default_settings
from passage_search.core.types import (
    SEARCH_MODES,
    Document,
    RankedCandidate,
    SearchResult,
    VectorCandidate,
)
from passage_search.libs.embedding.base_embedding import BaseEmbedding
from passage_search.libs.store.base_corpus_store import BaseCorpusStore
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)

SNIPPET_LENGTH = 300


def _snippet(candidate: VectorCandidate | None) -> str | None:
    if candidate is None or candidate.top_passage is None:
        return None
    return candidate.top_passage.text[:SNIPPET_LENGTH]


class HybridSearch:
    """Fuses keyword and semantic rankings of documents.

    Collaborators are injected: ``store`` supplies the corpus snapshot and
    ``embedding`` turns the query into a unit vector. Embedding failures
    propagate to the caller as ``EmbeddingError``.
    """

    def __init__(
        self,
        store: BaseCorpusStore,
        embedding: BaseEmbedding,
        settings: Settings | None = None,
        cache: QueryCache | None = None,
        keyword_search: KeywordSearch | None = None,
        vector_search: VectorSearch | None = None,
    ) -> None:
        self.settings = settings or default_settings()
        self.store = store
        self.embedding = embedding
        self.cache = cache
        self.keyword_search = keyword_search or KeywordSearch(self.settings)
        self.vector_search = vector_search or VectorSearch()

    async def search(
        self,
        query: str,
        mode: str = "hybrid",
        k: int | None = None,
        alpha: float | None = None,
        trace: Any | None = None,
    ) -> list[SearchResult]:
        """Rank documents for ``query``.

        Args:
            query: Query text.
            mode: "semantic", "keyword" or "hybrid".
            k: Number of results (default ``fusion.default_k``).
            alpha: Semantic weight in hybrid mode; keyword gets ``1 - alpha``.
            trace: Optional TraceContext.
        """

        if mode not in SEARCH_MODES:
            raise ValueError(f"Unknown search mode: {mode!r}. Expected one of {SEARCH_MODES}")
        if not isinstance(query, str) or not query.strip():
            return []

        fusion = self.settings.fusion
        top_k = k if k is not None else fusion.default_k
        weight = fusion.alpha if alpha is None else float(alpha)
        if top_k <= 0:
            return []

        cache_key = QueryCache.make_key(query, {"mode": mode, "k": top_k, "alpha": weight})
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s search: %r", mode, query)
                if trace is not None:
                    trace.record_stage("cache", {"hit": True, "count": len(cached)})
                return cached

        # one snapshot shared by both branches
        snapshot = await self.store.get_all_documents()
        documents = [doc for doc in snapshot if doc.is_searchable]
        if trace is not None:
            trace.record_stage(
                "snapshot", {"documents": len(snapshot), "searchable": len(documents)}
            )

        if mode == "semantic":
            results = await self._semantic_results(query, documents, top_k, trace)
        elif mode == "keyword":
            results = self._keyword_results(query, documents, top_k, trace)
        else:
            results = await self._hybrid_results(query, documents, top_k, weight, trace)

        if self.cache is not None:
            self.cache.set(cache_key, results)
        logger.info("%s search for %r returned %d results", mode, query, len(results))
        return results

    async def find_similar(
        self, document_id: str, k: int | None = None, trace: Any | None = None
    ) -> list[SearchResult]:
        """Rank other documents by closeness to a stored document ("more like this").

        Raises:
            LookupError: If the store has no document with ``document_id``.
        """

        source = await self.store.get_document(document_id)
        if source is None:
            raise LookupError(f"Document not found: {document_id}")
        top_k = k if k is not None else self.settings.fusion.default_k
        if top_k <= 0:
            return []

        snapshot = await self.store.get_all_documents()
        documents = [doc for doc in snapshot if doc.is_searchable]
        candidates = self.vector_search.find_similar(
            source,
            documents,
            k=top_k,
            min_similarity=self.settings.fusion.semantic_min_similarity,
        )
        if trace is not None:
            trace.record_stage("similar_search", {"source": document_id, "count": len(candidates)})
        logger.info(
            "Similar-document search for %s returned %d results", document_id, len(candidates)
        )
        return [self._semantic_result(c) for c in candidates]

    async def _semantic_candidates(
        self, query: str, documents: Sequence[Document], k: int
    ) -> list[VectorCandidate]:
        query_vector = await self.embedding.embed(query, role="query")
        return self.vector_search.search(
            query_vector,
            documents,
            k=k,
            min_similarity=self.settings.fusion.semantic_min_similarity,
        )

    async def _keyword_candidates(
        self, query: str, documents: Sequence[Document], k: int
    ) -> list[RankedCandidate]:
        return self.keyword_search.search(query, documents, k=k)

    async def _semantic_results(
        self, query: str, documents: Sequence[Document], k: int, trace: Any | None
    ) -> list[SearchResult]:
        candidates = await self._semantic_candidates(query, documents, k)
        if trace is not None:
            trace.record_stage("semantic_search", {"count": len(candidates)})
        return [self._semantic_result(c) for c in candidates]

    def _semantic_result(self, candidate: VectorCandidate) -> SearchResult:
        return SearchResult(
            document=candidate.document,
            similarity=candidate.similarity,
            relevance_score=candidate.similarity,
            search_mode="semantic",
            confidence=classify_confidence(candidate.similarity, None, self.settings.fusion),
            top_passage_snippet=_snippet(candidate),
        )

    def _keyword_results(
        self, query: str, documents: Sequence[Document], k: int, trace: Any | None
    ) -> list[SearchResult]:
        candidates = self.keyword_search.search(query, documents, k=k)
        if trace is not None:
            trace.record_stage("keyword_search", {"count": len(candidates)})
        return [
            SearchResult(
                document=c.document,
                similarity=0.0,
                relevance_score=c.score,
                search_mode="keyword",
                confidence=classify_confidence(None, c.score, self.settings.fusion),
                keyword_score=c.score,
                matched_terms=list(c.matched_terms),
            )
            for c in candidates
        ]

    async def _hybrid_results(
        self,
        query: str,
        documents: Sequence[Document],
        k: int,
        alpha: float,
        trace: Any | None,
    ) -> list[SearchResult]:
        fusion = self.settings.fusion
        candidate_k = k * fusion.oversample

        # fork both branches over the same snapshot, join before fusing
        semantic, keyword = await asyncio.gather(
            self._semantic_candidates(query, documents, candidate_k),
            self._keyword_candidates(query, documents, candidate_k),
        )
        if trace is not None:
            trace.record_stage("semantic_search", {"count": len(semantic)})
            trace.record_stage("keyword_search", {"count": len(keyword)})

        fused = weighted_rrf_fusion(
            [[c.document_id for c in semantic], [c.document_id for c in keyword]],
            weights=[alpha, 1.0 - alpha],
            k=fusion.rrf_k,
        )
        if trace is not None:
            trace.record_stage(
                "fusion", {"count": len(fused), "rrf_k": fusion.rrf_k, "alpha": alpha}
            )

        semantic_by_id = {c.document_id: c for c in semantic}
        keyword_by_id = {c.document_id: c for c in keyword}
        documents_by_id = {doc.id: doc for doc in documents}

        results: list[SearchResult] = []
        for entry in fused[:k]:
            vector_hit = semantic_by_id.get(entry.item_id)
            keyword_hit = keyword_by_id.get(entry.item_id)
            similarity = vector_hit.similarity if vector_hit is not None else None
            keyword_score = keyword_hit.score if keyword_hit is not None else None
            results.append(
                SearchResult(
                    document=documents_by_id[entry.item_id],
                    similarity=similarity if similarity is not None else 0.0,
                    relevance_score=entry.score,
                    search_mode="hybrid",
                    confidence=classify_confidence(similarity, keyword_score, fusion),
                    keyword_score=keyword_score,
                    matched_terms=list(keyword_hit.matched_terms) if keyword_hit else None,
                    top_passage_snippet=_snippet(vector_hit),
                    fusion_score=entry.score,
                    source_scores={
                        "semantic": entry.contributions.get(0, 0.0),
                        "keyword": entry.contributions.get(1, 0.0),
                    },
                )
            )
        return results
