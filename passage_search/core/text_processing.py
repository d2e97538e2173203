"""Shared text helpers for tokenizing queries and documents."""

from __future__ import annotations

import re
from urllib.parse import urlparse

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "can", "this", "that", "these", "those", "it",
        "its", "if", "then", "than", "so", "just", "about", "into", "through",
        "during", "before", "after", "above", "below", "between", "under", "over",
        "not", "no", "yes", "all", "any", "both", "each", "few", "more", "most",
        "some", "such", "only", "own", "same", "other", "also", "when", "where",
        "who", "which", "what", "how", "why", "there", "here", "out", "up", "down",
    }
)

MIN_TERM_LENGTH = 3

# dots survive so that tokens like "react.useeffect" or "node.js" stay intact
_NON_TERM_RE = re.compile(r"[^a-z0-9.\s]")


def tokenize(text: str) -> list[str]:
    """Split ``text`` into lowercase search terms without stop words."""

    if not text:
        return []
    cleaned = _NON_TERM_RE.sub(" ", text.lower())
    terms: list[str] = []
    for raw in cleaned.split():
        term = raw.strip(".")
        if len(term) < MIN_TERM_LENGTH or term in STOP_WORDS:
            continue
        terms.append(term)
    return terms


_MARKUP_RE = re.compile(r"<[^>]+>")


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def strip_markup(text: str) -> str:
    """Drop tags from raw page text so markup never counts as body terms."""

    return _MARKUP_RE.sub(" ", text) if "<" in text else text


def extract_domain(url: str) -> str:
    """Hostname of ``url`` with a leading ``www.`` removed, or "" if unparsable."""

    if not url:
        return ""
    try:
        hostname = urlparse(url).hostname or ""
    except ValueError:
        return ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def phrase_of(query: str) -> str:
    """The literal phrase a query asks for: the interior of a quoted query, else the query."""

    normalized = query.lower().strip()
    if len(normalized) >= 2 and normalized.startswith('"') and normalized.endswith('"'):
        return normalized[1:-1].strip()
    return normalized


def is_exact_phrase_match(query: str, text: str) -> bool:
    phrase = phrase_of(query)
    if not phrase or not text:
        return False
    return phrase in text.lower()
