"""
Core Layer - Core engine logic.

This package contains:
- Configuration management (settings.py)
- Core data types (types.py) - shared contracts for all stages
- Text processing helpers
- Query engine
- Response (context) building
- Trace collection
"""

from passage_search.core.types import Document, Passage, RetrievedPassage, SearchResult

__all__ = ["Document", "Passage", "RetrievedPassage", "SearchResult"]
