"""
Response Module.

This package contains response building components:
- Context builder (source-labelled passage blocks)
"""

from passage_search.core.response.context_builder import (
    SourceBlock,
    build_context,
    build_source_blocks,
    format_time_ago,
)

__all__ = ["SourceBlock", "build_context", "build_source_blocks", "format_time_ago"]
