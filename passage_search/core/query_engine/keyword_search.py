"""TF-IDF keyword scoring over a corpus snapshot.

No index is persisted: term statistics are rebuilt for every query, which is
acceptable for a personal-scale corpus (cost is O(documents x query terms)).

Per document four fields are scored, each with its own weight::

    score(doc) = sum_terms sum_fields tf(term, field) * idf(term) * weight(field)
    tf  = occurrences / field token count
    idf = ln(N / df)

The raw score is then multiplied by stackable bonuses for an exact phrase
match (title or passage text) and for the document's domain appearing in
the query.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Sequence

from passage_search.core.settings import KeywordSettings
from passage_search.core.types import Document, RankedCandidate
from passage_search.core.text_processing import (
    extract_domain,
    is_exact_phrase_match,
    strip_markup,
    tokenize,
)
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)

FIELD_NAMES: tuple[str, ...] = ("title", "passages", "url", "content")


@dataclass(frozen=True)
class _FieldStats:
    counts: Counter
    length: int


class KeywordSearch:
    """Lexical scorer with field weights and phrase/domain bonuses."""

    def __init__(self, settings: Any | None = None) -> None:
        keyword_settings = getattr(settings, "keyword", None)
        if not isinstance(keyword_settings, KeywordSettings):
            keyword_settings = KeywordSettings()
        self.config = keyword_settings

    @property
    def field_weights(self) -> dict[str, float]:
        return {
            "title": self.config.title_weight,
            "passages": self.config.passage_weight,
            "url": self.config.url_weight,
            "content": self.config.content_weight,
        }

    def search(
        self,
        query: str,
        corpus: Sequence[Document],
        k: int = 10,
        min_score: float | None = None,
    ) -> list[RankedCandidate]:
        """Rank ``corpus`` against ``query``.

        Args:
            query: Raw query text; quoted queries request an exact phrase.
            corpus: Documents to score; only searchable ones participate.
            k: Maximum number of candidates to return.
            min_score: Scores below this are discarded (default from settings).

        Returns:
            Candidates sorted by score descending; ties keep corpus order.
            An all-stop-word query yields an empty list.
        """

        terms = list(dict.fromkeys(tokenize(query)))
        if not terms or k <= 0:
            return []

        threshold = self.config.min_score if min_score is None else float(min_score)
        documents = [doc for doc in corpus if doc.is_searchable]
        if not documents:
            return []

        field_stats = [self._document_fields(doc) for doc in documents]
        idf = self._idf(terms, field_stats)
        weights = self.field_weights
        query_lower = query.lower()

        candidates: list[RankedCandidate] = []
        for doc, fields in zip(documents, field_stats):
            score = 0.0
            matched: list[str] = []
            for term in terms:
                term_idf = idf[term]
                found = False
                for name in FIELD_NAMES:
                    stats = fields[name]
                    occurrences = stats.counts.get(term, 0)
                    if occurrences == 0:
                        continue
                    found = True
                    score += (occurrences / stats.length) * term_idf * weights[name]
                if found:
                    matched.append(term)

            if score <= 0.0:
                continue
            score *= self._bonus(query, query_lower, doc)
            if score < threshold:
                continue
            candidates.append(RankedCandidate(document=doc, score=score, matched_terms=matched))

        # sorted() is stable, so equal scores keep corpus order
        candidates = sorted(candidates, key=lambda c: -c.score)[:k]
        logger.debug(
            "Keyword search for %r: %d terms, %d/%d documents matched",
            query,
            len(terms),
            len(candidates),
            len(documents),
        )
        return candidates

    def idf(self, query: str, corpus: Sequence[Document]) -> dict[str, float]:
        """Inverse document frequency of each query term over ``corpus``."""

        terms = list(dict.fromkeys(tokenize(query)))
        documents = [doc for doc in corpus if doc.is_searchable]
        return self._idf(terms, [self._document_fields(doc) for doc in documents])

    def _document_fields(self, doc: Document) -> dict[str, _FieldStats]:
        body = strip_markup(doc.raw_text[: self.config.max_content_length])
        field_tokens = {
            "title": tokenize(doc.title),
            "passages": tokenize(doc.passage_text),
            "url": tokenize(doc.url),
            "content": tokenize(body),
        }
        return {
            name: _FieldStats(counts=Counter(tokens), length=len(tokens))
            for name, tokens in field_tokens.items()
        }

    @staticmethod
    def _idf(terms: list[str], field_stats: list[dict[str, _FieldStats]]) -> dict[str, float]:
        total = len(field_stats)
        idf: dict[str, float] = {}
        for term in terms:
            df = sum(
                1
                for fields in field_stats
                if any(term in stats.counts for stats in fields.values())
            )
            idf[term] = math.log(total / df) if df > 0 else 0.0
        return idf

    def _bonus(self, query: str, query_lower: str, doc: Document) -> float:
        multiplier = 1.0
        if is_exact_phrase_match(query, doc.title) or is_exact_phrase_match(
            query, doc.passage_text
        ):
            multiplier *= self.config.exact_phrase_bonus
        domain = extract_domain(doc.url)
        if domain and domain in query_lower:
            multiplier *= self.config.domain_bonus
        return multiplier
