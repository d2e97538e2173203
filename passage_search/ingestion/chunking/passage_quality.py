"""Heuristic passage quality score in [0, 1]."""

from __future__ import annotations

import re

BASE_SCORE = 0.5

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_CONNECTIVE_RE = re.compile(
    r"\b(because|however|therefore|although|meanwhile|furthermore|moreover)\b",
    flags=re.IGNORECASE,
)


def passage_quality(text: str) -> float:
    """Score prose-likeness of ``text``.

    Medium length, several sentences and discourse connectives raise the
    score; a low unique-word ratio (menus, repeated boilerplate) lowers it.
    """

    words = text.split()
    word_count = len(words)
    if word_count == 0:
        return 0.0

    score = BASE_SCORE
    if 10 <= word_count <= 100:
        score += 0.2
    elif word_count > 100:
        score += 0.1

    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if len(s.strip()) > 10]
    if len(sentences) >= 2:
        score += 0.1

    if _CONNECTIVE_RE.search(text):
        score += 0.1

    unique_words = {w.lower() for w in words}
    if len(unique_words) < word_count * 0.3:
        score -= 0.2

    return max(0.0, min(1.0, round(score, 6)))
