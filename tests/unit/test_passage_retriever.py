"""Unit tests for diversity-constrained passage retrieval.

The embedding provider is replaced by a fake that returns a fixed query
vector; passage embeddings are built so that the similarity is exactly the
first component.
"""

from __future__ import annotations

import asyncio
import math
import random
from typing import Any

import pytest

from passage_search.core.query_engine.passage_retriever import (
    PassageRetriever,
    domain_key,
    group_by_document,
    is_social_homepage,
    select_diverse,
    unique_sources,
)
from passage_search.core.trace.trace_context import TraceContext
from passage_search.core.types import Document, Passage
from passage_search.libs.embedding.base_embedding import BaseEmbedding
from passage_search.libs.store.memory_store import InMemoryCorpusStore


class FakeEmbedding(BaseEmbedding):
    """Every text maps to the unit x-axis vector."""

    def __init__(self) -> None:
        self.calls = 0

    async def _request_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
        self.calls += 1
        return [[1.0, 0.0] for _ in texts]


def _vec(similarity: float) -> tuple[float, float]:
    return (similarity, math.sqrt(max(0.0, 1.0 - similarity * similarity)))


def _doc(doc_id: str, sims: list[float], url: str | None = None, quality: float = 0.5) -> Document:
    passages = [
        Passage(
            id=f"{doc_id}-p{i:03d}",
            text=f"passage {i} of {doc_id}",
            word_count=4,
            position=i,
            quality=quality,
            embedding=_vec(s),
        )
        for i, s in enumerate(sims)
    ]
    return Document(
        id=doc_id,
        url=f"https://{doc_id}.example.com/article" if url is None else url,
        title=f"Title {doc_id}",
        passages=passages,
    )


def _retrieve(documents: list[Document], **kwargs: Any):
    retriever = PassageRetriever(InMemoryCorpusStore(documents), FakeEmbedding())
    return asyncio.run(retriever.retrieve("query", **kwargs))


# ============================================================================
# Threshold and scoring
# ============================================================================


@pytest.mark.unit
class TestThreshold:
    def test_threshold_is_inclusive(self):
        corpus = [_doc("a", [0.57]), _doc("b", [0.58]), _doc("c", [0.581])]

        results = _retrieve(corpus, min_similarity=0.58, quality_weight=0.0)

        assert [r.document_id for r in results] == ["c", "b"]
        assert results[1].similarity == pytest.approx(0.58)

    def test_quality_blends_into_combined_score(self):
        corpus = [_doc("plain", [0.8], quality=0.1), _doc("rich", [0.7], quality=1.0)]

        results = _retrieve(corpus, min_similarity=0.0, quality_weight=0.5)

        assert [r.document_id for r in results] == ["rich", "plain"]
        assert results[0].combined_score == pytest.approx(0.85)
        assert results[1].combined_score == pytest.approx(0.45)

    def test_quality_weight_out_of_range_raises(self):
        with pytest.raises(ValueError, match="quality_weight"):
            _retrieve([_doc("a", [0.9])], quality_weight=1.5)

    def test_blank_query_returns_nothing_without_embedding(self):
        embedding = FakeEmbedding()
        retriever = PassageRetriever(InMemoryCorpusStore([_doc("a", [0.9])]), embedding)

        assert asyncio.run(retriever.retrieve("   ")) == []
        assert embedding.calls == 0

    def test_document_metadata_carried_on_results(self):
        doc = _doc("a", [0.9])
        results = _retrieve([doc], min_similarity=0.5)

        assert results[0].document_url == doc.url
        assert results[0].document_title == "Title a"
        assert results[0].passage.id == "a-p000"


# ============================================================================
# Diversity caps
# ============================================================================


@pytest.mark.unit
class TestDiversity:
    def test_per_document_cap(self):
        corpus = [_doc("a", [0.95, 0.94, 0.93, 0.92, 0.91]), _doc("b", [0.6])]

        results = _retrieve(corpus, min_similarity=0.5, max_per_document=3, quality_weight=0.0)

        assert [r.passage.id for r in results] == ["a-p000", "a-p001", "a-p002", "b-p000"]

    def test_per_domain_cap_counts_documents(self):
        same_site = "https://blog.example.com/post-{}"
        corpus = [
            _doc("a", [0.95, 0.9], url=same_site.format(1)),
            _doc("b", [0.94], url=same_site.format(2)),
            _doc("c", [0.93], url=same_site.format(3)),
            _doc("d", [0.6], url="https://other.org/"),
        ]

        results = _retrieve(
            corpus, min_similarity=0.5, max_per_domain=2, max_per_document=3, quality_weight=0.0
        )

        assert [r.document_id for r in results] == ["a", "b", "a", "d"]

    def test_selection_is_single_greedy_pass(self):
        candidates = _retrieve(
            [_doc("a", [0.9, 0.85, 0.8]), _doc("b", [0.7])],
            min_similarity=0.0,
            max_per_document=10,
            quality_weight=0.0,
        )
        domains = {"a": "a", "b": "b"}

        selected = select_diverse(candidates, domains, top_k=3, max_per_document=2, max_per_domain=5)

        assert [r.passage.id for r in selected] == ["a-p000", "a-p001", "b-p000"]

    def test_random_corpora_respect_caps(self):
        rng = random.Random(1234)
        for _ in range(25):
            corpus = []
            for index in range(rng.randint(1, 8)):
                sims = [round(rng.uniform(0.0, 1.0), 3) for _ in range(rng.randint(1, 6))]
                host = rng.choice(["one.example.com", "two.example.com", "three.org"])
                corpus.append(_doc(f"d{index}", sims, url=f"https://{host}/{index}"))
            top_k = rng.randint(1, 10)
            per_doc = rng.randint(1, 3)
            per_domain = rng.randint(1, 3)

            results = _retrieve(
                corpus,
                top_k=top_k,
                min_similarity=0.3,
                max_per_document=per_doc,
                max_per_domain=per_domain,
            )

            assert len(results) <= top_k
            assert all(r.similarity >= 0.3 for r in results)
            scores = [r.combined_score for r in results]
            assert scores == sorted(scores, reverse=True)
            grouped = group_by_document(results)
            assert all(len(items) <= per_doc for items in grouped.values())
            domains: dict[str, set[str]] = {}
            for doc_id, items in grouped.items():
                domains.setdefault(items[0].document_url.split("/")[2], set()).add(doc_id)
            assert all(len(ids) <= per_domain for ids in domains.values())


# ============================================================================
# Social feeds, domains, grouping
# ============================================================================


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://twitter.com/", True),
        ("https://www.reddit.com", True),
        ("https://m.youtube.com/", True),
        ("https://x.com", True),
        ("https://www.linkedin.com/feed/", True),
        ("https://twitter.com/user/status/1", False),
        ("https://www.reddit.com/r/python/comments/abc", False),
        ("https://www.linkedin.com/in/someone", False),
        ("https://example.com/", False),
        ("", False),
    ],
)
def test_is_social_homepage(url, expected):
    assert is_social_homepage(url) is expected


def test_social_homepages_are_skipped():
    corpus = [
        _doc("feed", [0.99], url="https://twitter.com/"),
        _doc("tweet", [0.9], url="https://twitter.com/user/status/1"),
    ]
    assert [r.document_id for r in _retrieve(corpus, min_similarity=0.5)] == ["tweet"]


def test_domain_key_falls_back_to_document_id():
    assert domain_key(_doc("local", [0.5], url="")) == "local"
    assert domain_key(_doc("web", [0.5], url="https://www.example.com/a")) == "example.com"


def test_group_by_document_and_sources_keep_order():
    results = _retrieve(
        [_doc("a", [0.9, 0.7]), _doc("b", [0.8])], min_similarity=0.5, quality_weight=0.0
    )

    grouped = group_by_document(results)
    sources = unique_sources(results)

    assert list(grouped) == ["a", "b"]
    assert [p.passage.position for p in grouped["a"]] == [0, 1]
    assert sources == [
        {"document_id": "a", "url": "https://a.example.com/article", "title": "Title a", "passage_count": 2},
        {"document_id": "b", "url": "https://b.example.com/article", "title": "Title b", "passage_count": 1},
    ]


def test_trace_records_scoring_and_selection():
    trace = TraceContext()
    retriever = PassageRetriever(InMemoryCorpusStore([_doc("a", [0.9])]), FakeEmbedding())

    asyncio.run(retriever.retrieve("query", min_similarity=0.5, trace=trace))

    assert trace.get_stage_data("passage_scoring") == {"documents": 1, "candidates": 1}
    assert trace.get_stage_data("diversity_selection")["selected"] == 1
