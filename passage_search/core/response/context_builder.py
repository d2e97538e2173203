"""Render retrieved passages as a source-labelled context block.

One block per source document, in retrieval order::

    [Source 1] React Hooks Guide [High Quality]
    URL: https://example.com/react-hooks
    Visited: 2 days ago | Visited 3 times | Last accessed: 5 hours ago | Time on page: 4 min
    [★★★] passage text...

Recency and frequency values come straight from the document fields; only
the human-readable deltas are computed here.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Sequence

from passage_search.core.query_engine.passage_retriever import group_by_document
from passage_search.core.types import RetrievedPassage

DEFAULT_MAX_CONTEXT_LENGTH = 8000
# a truncated source is only emitted when this much room remains for its passages
MIN_TRUNCATED_SPACE = 200


def quality_label(quality: float) -> str:
    if quality >= 0.7:
        return "[High Quality]"
    if quality >= 0.4:
        return "[Medium Quality]"
    return "[Lower Quality]"


def star_label(quality: float) -> str:
    if quality >= 0.7:
        return "[★★★]"
    if quality >= 0.4:
        return "[★★]"
    return "[★]"


def format_time_ago(ms: float) -> str:
    seconds = int(max(ms, 0) // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "just now"


@dataclass
class SourceBlock:
    """All retrieved passages of one document, labelled ``[Source N]``."""

    label: str
    document_id: str
    url: str
    title: str
    passages: list[RetrievedPassage] = field(default_factory=list)
    timestamp: int = 0
    visit_count: int = 1
    last_accessed: int = 0
    dwell_time: float = 0.0

    def header(self) -> str:
        return f"{self.label} {self.title} {quality_label(self.passages[0].passage.quality)}\n"

    def metadata(self, now_ms: int) -> str:
        parts: list[str] = []
        if self.timestamp:
            parts.append(f"Visited: {format_time_ago(now_ms - self.timestamp)}")
        if self.visit_count > 1:
            parts.append(f"Visited {self.visit_count} times")
        if self.last_accessed:
            parts.append(f"Last accessed: {format_time_ago(now_ms - self.last_accessed)}")
        if self.dwell_time > 60:
            parts.append(f"Time on page: {round(self.dwell_time / 60)} min")
        return " | ".join(parts) + "\n" if parts else ""

    def body(self) -> str:
        texts = [f"{star_label(p.passage.quality)} {p.passage.text.strip()}" for p in self.passages]
        return "\n\n".join(texts) + "\n\n"


def build_source_blocks(passages: Sequence[RetrievedPassage]) -> list[SourceBlock]:
    blocks: list[SourceBlock] = []
    for index, (doc_id, items) in enumerate(group_by_document(passages).items(), start=1):
        first = items[0]
        blocks.append(
            SourceBlock(
                label=f"[Source {index}]",
                document_id=doc_id,
                url=first.document_url,
                title=first.document_title,
                passages=list(items),
                timestamp=first.timestamp,
                visit_count=first.visit_count,
                last_accessed=first.last_accessed,
                dwell_time=first.dwell_time,
            )
        )
    return blocks


def build_context(
    passages: Sequence[RetrievedPassage],
    max_length: int = DEFAULT_MAX_CONTEXT_LENGTH,
    now_ms: int | None = None,
) -> str:
    """Join source blocks until ``max_length`` characters.

    The first block that does not fit is cut short (with ``...``) when more
    than ``MIN_TRUNCATED_SPACE`` characters remain after its header lines;
    otherwise it is dropped. Nothing after it is emitted.
    """

    now = int(time.time() * 1000) if now_ms is None else now_ms
    context = ""
    for block in build_source_blocks(passages):
        header = block.header() + f"URL: {block.url}\n" + block.metadata(now)
        body = block.body()
        if len(context) + len(header) + len(body) > max_length:
            remaining = max_length - len(context) - len(header)
            if remaining > MIN_TRUNCATED_SPACE:
                context += header + body[: remaining - 20] + "...\n\n"
            break
        context += header + body
    return context
