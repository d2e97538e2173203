"""Unit tests for KeywordSearch.

Tests cover:
- Stop-word and empty queries
- IDF behaviour and determinism
- Exact phrase and domain bonuses
- Corpus-order tie breaking
- Exclusion of documents without passages
"""

from __future__ import annotations

import math

import pytest

from passage_search.core.query_engine.keyword_search import KeywordSearch
from passage_search.core.settings import settings_from_mapping
from passage_search.core.types import Document, Passage, count_words


def _doc(doc_id: str, text: str, title: str = "Notes", url: str = "") -> Document:
    passage = Passage(
        id=f"{doc_id}-p000",
        text=text,
        word_count=count_words(text),
        position=0,
        quality=0.5,
    )
    return Document(
        id=doc_id,
        url=url or f"https://{doc_id}.example.com/page",
        title=title,
        raw_text=text,
        passages=[passage],
    )


FILLER = _doc("filler", "python cooking recipes tutorial basics")


# ============================================================================
# Query handling
# ============================================================================


def test_stop_word_query_returns_nothing():
    corpus = [_doc("a", "react hooks guide"), FILLER]
    assert KeywordSearch().search("the and of with", corpus) == []


def test_empty_corpus_returns_nothing():
    assert KeywordSearch().search("react", []) == []


def test_search_is_deterministic():
    corpus = [
        _doc("a", "react hooks and state management"),
        _doc("b", "vue composition api and state"),
        FILLER,
    ]
    search = KeywordSearch()

    first = search.search("react state", corpus)
    second = search.search("react state", corpus)

    assert [(c.document_id, c.score) for c in first] == [
        (c.document_id, c.score) for c in second
    ]
    assert first[0].document_id == "a"
    assert first[0].matched_terms == ["react", "state"]


def test_k_limits_results():
    corpus = [_doc(str(i), f"react topic number{i}") for i in range(5)] + [FILLER]
    assert len(KeywordSearch().search("react", corpus, k=2)) == 2


def test_min_score_filters_everything_when_high():
    corpus = [_doc("a", "react hooks guide"), FILLER]
    assert KeywordSearch().search("react", corpus, min_score=100.0) == []


# ============================================================================
# IDF
# ============================================================================


def test_idf_rarer_terms_weigh_more():
    corpus = [
        _doc("a", "react hooks guide"),
        _doc("b", "vue hooks guide"),
        _doc("c", "svelte stores guide"),
    ]
    idf = KeywordSearch().idf("react hooks guide missing", corpus)

    assert idf["react"] == pytest.approx(math.log(3))
    assert idf["hooks"] == pytest.approx(math.log(1.5))
    assert idf["react"] > idf["hooks"]
    assert idf["guide"] == 0.0
    assert idf["missing"] == 0.0


def test_term_in_every_document_scores_nothing():
    corpus = [_doc("a", "react guide"), _doc("b", "vue guide")]
    assert KeywordSearch().search("guide", corpus) == []


def test_markup_in_raw_text_is_not_searchable():
    doc = Document(
        id="markup",
        url="https://markup.example.com/",
        title="Notes",
        raw_text='<span class="hooks">cooking</span>',
        passages=[Passage(id="m-p000", text="cooking", word_count=1, position=0, quality=0.5)],
    )
    assert KeywordSearch().search("hooks", [doc, FILLER]) == []


def test_documents_without_passages_are_ignored():
    unchunked = Document(
        id="raw", url="https://raw.example.com/", title="React", raw_text="react react react"
    )
    corpus = [unchunked, _doc("a", "react hooks guide"), FILLER]

    results = KeywordSearch().search("react", corpus)

    assert [c.document_id for c in results] == ["a"]
    # two searchable documents, so N = 2
    assert KeywordSearch().idf("react", corpus)["react"] == pytest.approx(math.log(2))


# ============================================================================
# Bonuses
# ============================================================================


def _phrase_pair() -> tuple[Document, Document]:
    in_order = _doc("ordered", "redux state management library guide")
    shuffled = _doc("shuffled", "redux management state library guide")
    return in_order, shuffled


@pytest.mark.parametrize("query", ["state management", '"state management"'])
def test_exact_phrase_doubles_score(query):
    in_order, shuffled = _phrase_pair()
    results = KeywordSearch().search(query, [in_order, shuffled, FILLER])
    scores = {c.document_id: c.score for c in results}

    assert scores["ordered"] == pytest.approx(2.0 * scores["shuffled"])
    assert results[0].document_id == "ordered"


def test_domain_in_query_multiplies_score():
    doc = _doc("docs", "hooks reference", url="https://react.dev/learn")
    corpus = [doc, FILLER]
    query = "hooks react.dev"

    with_bonus = KeywordSearch().search(query, corpus)
    without_bonus = KeywordSearch(
        settings_from_mapping({"keyword": {"domain_bonus": 1.0}})
    ).search(query, corpus)

    assert with_bonus[0].score == pytest.approx(1.5 * without_bonus[0].score)


def test_title_matches_weigh_more_than_body_matches():
    titled = _doc("titled", "generic words about frameworks", title="Hooks")
    body = _doc("body", "generic words about hooks", title="Frameworks")

    results = KeywordSearch().search("hooks", [body, titled, FILLER])

    assert [c.document_id for c in results] == ["titled", "body"]


# ============================================================================
# Ordering
# ============================================================================


def test_equal_scores_keep_corpus_order():
    twin_a = _doc("twin-a", "react hooks guide", url="https://same.example.com/")
    twin_b = _doc("twin-b", "react hooks guide", url="https://same.example.com/")

    forward = KeywordSearch().search("react", [twin_a, twin_b, FILLER])
    backward = KeywordSearch().search("react", [twin_b, twin_a, FILLER])

    assert forward[0].score == forward[1].score
    assert [c.document_id for c in forward] == ["twin-a", "twin-b"]
    assert [c.document_id for c in backward] == ["twin-b", "twin-a"]
