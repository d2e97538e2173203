"""
Query Engine Module.

This package contains the search and retrieval components:
- Keyword scoring (TF-IDF over a corpus snapshot)
- Vector scoring (dot product on unit vectors)
- Result fusion (weighted RRF) and confidence bands
- Hybrid search orchestration with a query cache
- Diversity-constrained passage retrieval
"""

from passage_search.core.query_engine.fusion import (
    FusedEntry,
    classify_confidence,
    normalize_weights,
    weighted_rrf_fusion,
)
from passage_search.core.query_engine.hybrid_search import HybridSearch
from passage_search.core.query_engine.keyword_search import KeywordSearch
from passage_search.core.query_engine.passage_retriever import (
    PassageRetriever,
    group_by_document,
    select_diverse,
    unique_sources,
)
from passage_search.core.query_engine.query_cache import QueryCache
from passage_search.core.query_engine.vector_search import VectorSearch, dot, score_passages

__all__ = [
    "KeywordSearch",
    "VectorSearch",
    "dot",
    "score_passages",
    "FusedEntry",
    "weighted_rrf_fusion",
    "normalize_weights",
    "classify_confidence",
    "HybridSearch",
    "QueryCache",
    "PassageRetriever",
    "select_diverse",
    "group_by_document",
    "unique_sources",
]
