"""Weighted Reciprocal Rank Fusion and confidence classification."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from passage_search.core.settings import FusionSettings
from passage_search.core.types import Confidence
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RRF_K = 60


@dataclass
class FusedEntry:
    """Fused score of one item plus the per-list data that produced it."""

    item_id: str
    score: float = 0.0
    ranks: dict[int, int] = field(default_factory=dict)
    contributions: dict[int, float] = field(default_factory=dict)

    @property
    def best_rank(self) -> int | float:
        return min(self.ranks.values()) if self.ranks else math.inf

    def rank_in(self, list_index: int) -> int | float:
        return self.ranks.get(list_index, math.inf)


def normalize_weights(weights: Sequence[float] | None, list_count: int) -> list[float]:
    """Scale ``weights`` to sum to 1, or fall back to a uniform split.

    A missing vector means uniform. A vector of the wrong length, with a
    negative or non-finite entry, or summing to zero is replaced by the
    uniform split and a warning is logged; fusion itself never fails.
    """

    if list_count <= 0:
        return []
    uniform = [1.0 / list_count] * list_count
    if weights is None:
        return uniform

    values: list[float] = []
    for weight in weights:
        try:
            values.append(float(weight))
        except (TypeError, ValueError):
            values = []
            break

    total = sum(values) if values else 0.0
    if (
        len(values) != list_count
        or any(not math.isfinite(v) or v < 0.0 for v in values)
        or not math.isfinite(total)
        or total <= 0.0
    ):
        logger.warning(
            "Invalid fusion weights %r for %d lists, using uniform weights",
            list(weights),
            list_count,
        )
        return uniform
    return [v / total for v in values]


def weighted_rrf_fusion(
    ranked_lists: Sequence[Sequence[str]],
    weights: Sequence[float] | None = None,
    k: int = DEFAULT_RRF_K,
) -> list[FusedEntry]:
    """Fuse ranked id lists with ``score(d) = sum_i w_i / (k + rank_i(d))``.

    Ranks are 1-based; an id absent from a list contributes nothing from it,
    and repeated ids count at their first (best) rank only. Output order is
    fused score descending, then best rank, then rank in the first list,
    then id, so it never depends on dict iteration order.
    """

    normalized = normalize_weights(weights, len(ranked_lists))
    bucket: dict[str, FusedEntry] = {}

    for list_index, ranked in enumerate(ranked_lists):
        weight = normalized[list_index]
        for rank, item_id in enumerate(ranked, start=1):
            key = str(item_id)
            entry = bucket.get(key)
            if entry is None:
                entry = bucket[key] = FusedEntry(item_id=key)
            if list_index in entry.ranks:
                continue
            contribution = weight / (k + rank)
            entry.ranks[list_index] = rank
            entry.contributions[list_index] = contribution
            entry.score += contribution

    fused = list(bucket.values())
    fused.sort(key=lambda e: (-e.score, e.best_rank, e.rank_in(0), e.item_id))
    return fused


def classify_confidence(
    similarity: float | None,
    keyword_score: float | None = None,
    thresholds: Any | None = None,
) -> Confidence:
    """Coarse trust band for a result; informational only, never used for ranking."""

    config = thresholds if isinstance(thresholds, FusionSettings) else FusionSettings()
    keyword_match = keyword_score is not None and keyword_score > 0.0

    if similarity is not None:
        if similarity >= config.high_confidence:
            return "high"
        if similarity >= config.medium_confidence:
            return "high" if keyword_match else "medium"
    if keyword_score is not None and keyword_score > config.strong_keyword_score:
        return "medium"
    return "low"
