"""Core data types and contracts for the engine.

These types are shared across chunking, scoring, fusion, retrieval and the
engine boundary.

Rules:
- a passage's word_count always equals the whitespace token count of its text
- passage quality is fixed at creation (frozen dataclass)
- passage positions are strictly increasing within a document
- types are JSON-serializable via to_dict()/from_dict()
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal, Mapping

SearchMode = Literal["semantic", "keyword", "hybrid"]
Confidence = Literal["high", "medium", "low"]
EmbeddingRole = Literal["query", "document"]

SEARCH_MODES: tuple[str, ...] = ("semantic", "keyword", "hybrid")


def count_words(text: str) -> int:
    return len(text.split())


@dataclass(frozen=True)
class ElementInfo:
    """Source block an HTML passage was cut from."""

    tag_name: str
    class_name: str = ""
    element_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"tag_name": self.tag_name, "class_name": self.class_name, "id": self.element_id}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ElementInfo":
        return cls(
            tag_name=str(data.get("tag_name", "")),
            class_name=str(data.get("class_name", "")),
            element_id=str(data.get("id", "")),
        )


@dataclass(frozen=True)
class Passage:
    """A bounded, contiguous span of document text; the atomic retrieval unit."""

    id: str
    text: str
    word_count: int
    position: int
    quality: float
    embedding: tuple[float, ...] | None = None
    element: ElementInfo | None = None

    def __post_init__(self) -> None:
        if self.word_count != count_words(self.text):
            raise ValueError(
                f"Passage '{self.id}' word_count {self.word_count} does not match its text"
            )
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"Passage '{self.id}' quality must be within [0, 1]")
        if self.position < 0:
            raise ValueError(f"Passage '{self.id}' position must be non-negative")
        if self.embedding is not None and not isinstance(self.embedding, tuple):
            object.__setattr__(self, "embedding", tuple(float(v) for v in self.embedding))

    def with_embedding(self, embedding: list[float] | tuple[float, ...] | None) -> "Passage":
        """Return a copy carrying ``embedding``; quality and position are unchanged."""

        return replace(self, embedding=tuple(embedding) if embedding is not None else None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "word_count": self.word_count,
            "position": self.position,
            "quality": self.quality,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "element": self.element.to_dict() if self.element is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Passage":
        text = str(data.get("text", ""))
        embedding = data.get("embedding")
        element = data.get("element")
        return cls(
            id=str(data.get("id", "")),
            text=text,
            word_count=int(data.get("word_count", count_words(text))),
            position=int(data.get("position", 0)),
            quality=float(data.get("quality", 0.5)),
            embedding=tuple(float(v) for v in embedding) if embedding is not None else None,
            element=ElementInfo.from_dict(element) if isinstance(element, Mapping) else None,
        )


@dataclass
class Document:
    """A previously seen page together with its passages.

    Recency/frequency fields (timestamp, last_accessed in ms since epoch,
    dwell_time in seconds, visit_count) are owned by the store and passed
    through untouched.
    """

    id: str
    url: str
    title: str
    raw_text: str = ""
    passages: list[Passage] = field(default_factory=list)
    timestamp: int = 0
    dwell_time: float = 0.0
    last_accessed: int = 0
    visit_count: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Document id must be a non-empty string")
        previous = -1
        for passage in self.passages:
            if passage.position <= previous:
                raise ValueError(
                    f"Document '{self.id}' passage positions must be strictly increasing"
                )
            previous = passage.position

    @property
    def is_searchable(self) -> bool:
        return len(self.passages) > 0

    @property
    def passage_text(self) -> str:
        return " ".join(p.text for p in self.passages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "raw_text": self.raw_text,
            "passages": [p.to_dict() for p in self.passages],
            "timestamp": self.timestamp,
            "dwell_time": self.dwell_time,
            "last_accessed": self.last_accessed,
            "visit_count": self.visit_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":
        return cls(
            id=str(data.get("id", "")),
            url=str(data.get("url", "")),
            title=str(data.get("title", "")),
            raw_text=str(data.get("raw_text", "")),
            passages=[Passage.from_dict(p) for p in data.get("passages", [])],
            timestamp=int(data.get("timestamp", 0)),
            dwell_time=float(data.get("dwell_time", 0.0)),
            last_accessed=int(data.get("last_accessed", 0)),
            visit_count=int(data.get("visit_count", 1)),
        )


@dataclass
class RankedCandidate:
    """Lexical scorer output for one document."""

    document: Document
    score: float
    matched_terms: list[str] = field(default_factory=list)

    @property
    def document_id(self) -> str:
        return self.document.id


@dataclass
class VectorCandidate:
    """Vector scorer output for one document (best passage wins)."""

    document: Document
    similarity: float
    top_passage: Passage | None = None

    @property
    def document_id(self) -> str:
        return self.document.id


@dataclass
class SearchResult:
    """One ranked document returned by the fusion engine."""

    document: Document
    similarity: float
    relevance_score: float
    search_mode: str
    confidence: Confidence
    keyword_score: float | None = None
    matched_terms: list[str] | None = None
    top_passage_snippet: str | None = None
    fusion_score: float | None = None
    source_scores: dict[str, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document.id,
            "url": self.document.url,
            "title": self.document.title,
            "similarity": self.similarity,
            "relevance_score": self.relevance_score,
            "keyword_score": self.keyword_score,
            "matched_terms": list(self.matched_terms) if self.matched_terms is not None else None,
            "top_passage_snippet": self.top_passage_snippet,
            "fusion_score": self.fusion_score,
            "source_scores": dict(self.source_scores) if self.source_scores is not None else None,
            "search_mode": self.search_mode,
            "confidence": self.confidence,
        }


@dataclass
class RetrievedPassage:
    """A passage selected for context assembly, with its source metadata."""

    passage: Passage
    document_id: str
    document_url: str
    document_title: str
    similarity: float
    combined_score: float
    timestamp: int = 0
    visit_count: int = 1
    last_accessed: int = 0
    dwell_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "passage": {
                "id": self.passage.id,
                "text": self.passage.text,
                "position": self.passage.position,
                "quality": self.passage.quality,
            },
            "document_id": self.document_id,
            "document_url": self.document_url,
            "document_title": self.document_title,
            "similarity": self.similarity,
            "combined_score": self.combined_score,
            "timestamp": self.timestamp,
            "visit_count": self.visit_count,
            "last_accessed": self.last_accessed,
            "dwell_time": self.dwell_time,
        }
