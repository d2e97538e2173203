"""Diversity-constrained passage retrieval for context assembly.

Every vectorized passage is scored against the query, blended with its
quality score, and selected greedily under two caps: passages per document
and distinct documents per domain. Selection is a single pass, so a later,
higher-scoring candidate can be skipped because its quota is already spent.
"""

from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import urlparse

from passage_search.core.query_engine.vector_search import score_passages
from passage_search.core.settings import Settings, default_settings
from passage_search.core.text_processing import extract_domain
from passage_search.core.types import Document, RetrievedPassage
from passage_search.libs.embedding.base_embedding import BaseEmbedding
from passage_search.libs.store.base_corpus_store import BaseCorpusStore
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)

# feed homepages change on every visit; their text is never worth citing
SOCIAL_FEED_HOSTS = frozenset(
    {
        "twitter.com",
        "x.com",
        "reddit.com",
        "youtube.com",
        "facebook.com",
        "instagram.com",
        "tiktok.com",
    }
)


def is_social_homepage(url: str) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    host = (parsed.hostname or "").lower()
    for prefix in ("www.", "m."):
        if host.startswith(prefix):
            host = host[len(prefix):]
    path = parsed.path.rstrip("/")
    if host in SOCIAL_FEED_HOSTS and path == "":
        return True
    return host == "linkedin.com" and path in ("", "/feed")


def domain_key(document: Document) -> str:
    """Diversity grouping key: URL hostname, or the document id when there is none."""

    return extract_domain(document.url) or document.id


def select_diverse(
    candidates: Sequence[RetrievedPassage],
    domains: dict[str, str],
    top_k: int,
    max_per_document: int,
    max_per_domain: int,
) -> list[RetrievedPassage]:
    """Greedy single pass over ``candidates`` (already in score order).

    Args:
        candidates: Passages sorted best first.
        domains: document id -> domain key.
        top_k: Stop once this many are accepted.
        max_per_document: Cap on accepted passages per document.
        max_per_domain: Cap on distinct accepted documents per domain.
    """

    selected: list[RetrievedPassage] = []
    per_document: dict[str, int] = {}
    documents_per_domain: dict[str, set[str]] = {}

    for candidate in candidates:
        if len(selected) >= top_k:
            break
        doc_id = candidate.document_id
        if per_document.get(doc_id, 0) >= max_per_document:
            continue
        domain = domains.get(doc_id, doc_id)
        domain_docs = documents_per_domain.setdefault(domain, set())
        if doc_id not in domain_docs and len(domain_docs) >= max_per_domain:
            continue

        selected.append(candidate)
        per_document[doc_id] = per_document.get(doc_id, 0) + 1
        domain_docs.add(doc_id)

    return selected


class PassageRetriever:
    """Retrieves a bounded, non-redundant passage set for a query."""

    def __init__(
        self,
        store: BaseCorpusStore,
        embedding: BaseEmbedding,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or default_settings()
        self.store = store
        self.embedding = embedding

    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        min_similarity: float | None = None,
        max_per_document: int | None = None,
        max_per_domain: int | None = None,
        quality_weight: float | None = None,
        trace: Any | None = None,
    ) -> list[RetrievedPassage]:
        """Return up to ``top_k`` passages; every omitted option uses ``settings.retrieval``."""

        config = self.settings.retrieval
        top_k = config.top_k if top_k is None else top_k
        min_similarity = config.min_similarity if min_similarity is None else min_similarity
        max_per_document = config.max_per_document if max_per_document is None else max_per_document
        max_per_domain = config.max_per_domain if max_per_domain is None else max_per_domain
        quality_weight = config.quality_weight if quality_weight is None else quality_weight
        if not 0.0 <= quality_weight <= 1.0:
            raise ValueError("quality_weight must be within [0, 1]")

        if not isinstance(query, str) or not query.strip() or top_k <= 0:
            return []

        query_vector = await self.embedding.embed(query, role="query")
        snapshot = await self.store.get_all_documents()
        documents = [
            doc for doc in snapshot if doc.is_searchable and not is_social_homepage(doc.url)
        ]
        skipped = sum(1 for doc in snapshot if doc.is_searchable) - len(documents)
        if skipped:
            logger.debug("Skipped %d social feed homepages", skipped)

        candidates = self.rank_passages(query_vector, documents, min_similarity, quality_weight)
        if trace is not None:
            trace.record_stage(
                "passage_scoring",
                {"documents": len(documents), "candidates": len(candidates)},
            )

        domains = {doc.id: domain_key(doc) for doc in documents}
        selected = select_diverse(candidates, domains, top_k, max_per_document, max_per_domain)
        if trace is not None:
            trace.record_stage(
                "diversity_selection",
                {
                    "selected": len(selected),
                    "max_per_document": max_per_document,
                    "max_per_domain": max_per_domain,
                },
            )

        logger.info(
            "Retrieved %d passages from %d documents for %r",
            len(selected),
            len(group_by_document(selected)),
            query,
        )
        return selected

    @staticmethod
    def rank_passages(
        query_vector: Sequence[float],
        documents: Sequence[Document],
        min_similarity: float,
        quality_weight: float,
    ) -> list[RetrievedPassage]:
        """Score, filter (inclusive threshold) and sort passages by combined score."""

        candidates: list[RetrievedPassage] = []
        for scored in score_passages(query_vector, documents):
            if scored.similarity < min_similarity:
                continue
            doc = scored.document
            combined = (
                scored.similarity * (1.0 - quality_weight) + scored.passage.quality * quality_weight
            )
            candidates.append(
                RetrievedPassage(
                    passage=scored.passage,
                    document_id=doc.id,
                    document_url=doc.url,
                    document_title=doc.title,
                    similarity=scored.similarity,
                    combined_score=combined,
                    timestamp=doc.timestamp,
                    visit_count=doc.visit_count,
                    last_accessed=doc.last_accessed,
                    dwell_time=doc.dwell_time,
                )
            )

        candidates.sort(key=lambda c: (-c.combined_score, c.document_id, c.passage.position))
        return candidates


def group_by_document(passages: Sequence[RetrievedPassage]) -> dict[str, list[RetrievedPassage]]:
    """Bucket passages per document; documents and passages keep retrieval order."""

    grouped: dict[str, list[RetrievedPassage]] = {}
    for passage in passages:
        grouped.setdefault(passage.document_id, []).append(passage)
    return grouped


def unique_sources(passages: Sequence[RetrievedPassage]) -> list[dict[str, Any]]:
    return [
        {
            "document_id": doc_id,
            "url": items[0].document_url,
            "title": items[0].document_title,
            "passage_count": len(items),
        }
        for doc_id, items in group_by_document(passages).items()
    ]
