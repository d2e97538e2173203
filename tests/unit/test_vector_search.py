"""Unit tests for dot-product passage scoring."""

from __future__ import annotations

import math

import pytest

from passage_search.core.query_engine.vector_search import (
    VectorSearch,
    document_vector,
    dot,
    score_passages,
)
from passage_search.core.types import Document, Passage


def _passage(doc_id: str, position: int, embedding) -> Passage:
    return Passage(
        id=f"{doc_id}-p{position:03d}",
        text="some passage text",
        word_count=3,
        position=position,
        quality=0.5,
        embedding=embedding,
    )


def _doc(doc_id: str, *embeddings) -> Document:
    return Document(
        id=doc_id,
        url=f"https://{doc_id}.example.com/",
        title=doc_id,
        passages=[_passage(doc_id, i, e) for i, e in enumerate(embeddings)],
    )


class TestDot:
    def test_dot_product(self):
        assert dot([1.0, 2.0, 3.0], [4.0, 5.0, 6.0]) == pytest.approx(32.0)

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError, match="mismatch"):
            dot([1.0, 0.0], [1.0, 0.0, 0.0])


class TestScorePassages:
    def test_skips_missing_and_mismatched_embeddings(self):
        doc = _doc("a", (1.0, 0.0), None, (1.0, 0.0, 0.0), (0.6, 0.8))

        scored = list(score_passages((1.0, 0.0), [doc]))

        assert [s.passage.position for s in scored] == [0, 3]
        assert [s.similarity for s in scored] == pytest.approx([1.0, 0.6])


class TestVectorSearch:
    def test_documents_ranked_by_best_passage(self):
        corpus = [
            _doc("low", (0.2, 0.98)),
            _doc("high", (0.1, 0.99), (0.9, 0.43589)),
            _doc("mid", (0.5, 0.866)),
        ]

        results = VectorSearch().search((1.0, 0.0), corpus)

        assert [c.document_id for c in results] == ["high", "mid", "low"]
        assert results[0].similarity == pytest.approx(0.9)
        assert results[0].top_passage.position == 1

    def test_min_similarity_is_inclusive(self):
        corpus = [_doc("edge", (0.5, 0.866)), _doc("below", (0.49, 0.87))]

        results = VectorSearch().search((1.0, 0.0), corpus, min_similarity=0.5)

        assert [c.document_id for c in results] == ["edge"]

    def test_ties_break_on_document_id(self):
        corpus = [_doc("b", (0.5, 0.866)), _doc("a", (0.5, 0.866))]

        results = VectorSearch().search((1.0, 0.0), corpus)

        assert [c.document_id for c in results] == ["a", "b"]

    def test_documents_without_embeddings_are_absent(self):
        corpus = [_doc("plain", None), _doc("embedded", (1.0, 0.0))]

        results = VectorSearch().search((1.0, 0.0), corpus, k=5)

        assert [c.document_id for c in results] == ["embedded"]

    def test_k_zero_returns_nothing(self):
        assert VectorSearch().search((1.0, 0.0), [_doc("a", (1.0, 0.0))], k=0) == []


class TestFindSimilar:
    def test_document_vector_is_normalized_mean(self):
        doc = _doc("src", (1.0, 0.0), (1.0, 0.0, 0.0), None, (0.0, 1.0))

        assert document_vector(doc) == pytest.approx([math.sqrt(0.5), math.sqrt(0.5)])

    @pytest.mark.parametrize(
        "embeddings",
        [(None,), ((1.0, 0.0), (-1.0, 0.0))],
        ids=["no-embeddings", "cancelling"],
    )
    def test_document_vector_unavailable(self, embeddings):
        assert document_vector(_doc("src", *embeddings)) is None

    def test_source_document_is_excluded(self):
        source = _doc("src", (1.0, 0.0), (0.0, 1.0))
        corpus = [
            _doc("orthogonal", (math.sqrt(0.5), -math.sqrt(0.5))),
            source,
            _doc("near", (0.6, 0.8)),
            _doc("axis", (1.0, 0.0)),
        ]

        results = VectorSearch().find_similar(source, corpus)

        assert [c.document_id for c in results] == ["near", "axis", "orthogonal"]
        assert results[0].similarity == pytest.approx(1.4 * math.sqrt(0.5))

    def test_k_and_min_similarity_apply(self):
        source = _doc("src", (1.0, 0.0))
        corpus = [_doc("a", (0.9, 0.43589)), _doc("b", (0.6, 0.8)), _doc("c", (0.2, 0.98))]

        results = VectorSearch().find_similar(source, corpus, k=2, min_similarity=0.5)

        assert [c.document_id for c in results] == ["a", "b"]

    def test_source_without_embeddings_has_no_neighbours(self):
        source = _doc("src", None)

        assert VectorSearch().find_similar(source, [source, _doc("a", (1.0, 0.0))]) == []
