"""Tagged request/response messages for the engine boundary.

Every request payload is a JSON object with a ``type`` tag selecting the
variant; fields are validated here, so the engine only ever sees typed
requests. Unknown tags and malformed fields raise ``EngineError``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from passage_search.core.query_engine.passage_retriever import unique_sources
from passage_search.core.types import SEARCH_MODES, Passage, RetrievedPassage, SearchResult
from passage_search.server.errors import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    UNKNOWN_REQUEST_TYPE,
    EngineError,
)


@dataclass(frozen=True)
class SearchRequest:
    query: str
    mode: str = "hybrid"
    k: int | None = None
    alpha: float | None = None


@dataclass(frozen=True)
class RetrieveRequest:
    query: str
    top_k: int | None = None
    min_similarity: float | None = None
    max_per_document: int | None = None
    max_per_domain: int | None = None
    quality_weight: float | None = None


@dataclass(frozen=True)
class ChunkRequest:
    document_id: str
    raw_text: str


@dataclass(frozen=True)
class SimilarRequest:
    """Documents closest to a stored document."""

    document_id: str
    k: int | None = None


@dataclass(frozen=True)
class ContextRequest:
    """Retrieve passages and render them as a context block."""

    retrieve: RetrieveRequest
    max_length: int | None = None


EngineRequest = Union[SearchRequest, RetrieveRequest, ChunkRequest, SimilarRequest, ContextRequest]


@dataclass
class SearchResponse:
    results: list[SearchResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "search", "results": [r.to_dict() for r in self.results]}


@dataclass
class RetrieveResponse:
    passages: list[RetrievedPassage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "retrieve",
            "passages": [p.to_dict() for p in self.passages],
            "sources": unique_sources(self.passages),
        }


@dataclass
class ChunkResponse:
    document_id: str
    passages: list[Passage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "chunk",
            "document_id": self.document_id,
            "passages": [p.to_dict() for p in self.passages],
        }


@dataclass
class SimilarResponse:
    document_id: str
    results: list[SearchResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "similar",
            "document_id": self.document_id,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ContextResponse:
    context: str
    passages: list[RetrievedPassage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "context",
            "context": self.context,
            "sources": unique_sources(self.passages),
        }


EngineResponse = Union[
    SearchResponse, RetrieveResponse, ChunkResponse, SimilarResponse, ContextResponse
]


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise EngineError(INVALID_PARAMS, f"{key} must be a non-empty string")
    return value


def _optional_positive_int(payload: Mapping[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise EngineError(INVALID_PARAMS, f"{key} must be a positive integer")
    return value


def _optional_float(
    payload: Mapping[str, Any], key: str, lower: float | None = None, upper: float | None = None
) -> float | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise EngineError(INVALID_PARAMS, f"{key} must be a finite number")
    if (lower is not None and value < lower) or (upper is not None and value > upper):
        raise EngineError(INVALID_PARAMS, f"{key} must be within [{lower}, {upper}]")
    return float(value)


def _parse_search(payload: Mapping[str, Any]) -> SearchRequest:
    mode = payload.get("mode", "hybrid")
    if mode not in SEARCH_MODES:
        raise EngineError(INVALID_PARAMS, f"mode must be one of {', '.join(SEARCH_MODES)}")
    return SearchRequest(
        query=_require_str(payload, "query"),
        mode=mode,
        k=_optional_positive_int(payload, "k"),
        alpha=_optional_float(payload, "alpha", 0.0, 1.0),
    )


def _parse_retrieve(payload: Mapping[str, Any]) -> RetrieveRequest:
    return RetrieveRequest(
        query=_require_str(payload, "query"),
        top_k=_optional_positive_int(payload, "top_k"),
        min_similarity=_optional_float(payload, "min_similarity"),
        max_per_document=_optional_positive_int(payload, "max_per_document"),
        max_per_domain=_optional_positive_int(payload, "max_per_domain"),
        quality_weight=_optional_float(payload, "quality_weight", 0.0, 1.0),
    )


def _parse_chunk(payload: Mapping[str, Any]) -> ChunkRequest:
    raw_text = payload.get("raw_text")
    if not isinstance(raw_text, str):
        raise EngineError(INVALID_PARAMS, "raw_text must be a string")
    return ChunkRequest(document_id=_require_str(payload, "document_id"), raw_text=raw_text)


def _parse_similar(payload: Mapping[str, Any]) -> SimilarRequest:
    return SimilarRequest(
        document_id=_require_str(payload, "document_id"),
        k=_optional_positive_int(payload, "k"),
    )


def _parse_context(payload: Mapping[str, Any]) -> ContextRequest:
    return ContextRequest(
        retrieve=_parse_retrieve(payload),
        max_length=_optional_positive_int(payload, "max_length"),
    )


_PARSERS = {
    "search": _parse_search,
    "retrieve": _parse_retrieve,
    "chunk": _parse_chunk,
    "similar": _parse_similar,
    "context": _parse_context,
}


def parse_request(payload: Any) -> EngineRequest:
    """Validate a decoded JSON payload into one request variant."""

    if not isinstance(payload, Mapping):
        raise EngineError(INVALID_REQUEST, "Request must be a JSON object")
    request_type = payload.get("type")
    if not isinstance(request_type, str):
        raise EngineError(INVALID_REQUEST, "Missing or invalid request type")
    parser = _PARSERS.get(request_type)
    if parser is None:
        raise EngineError(UNKNOWN_REQUEST_TYPE, f"Unknown request type: {request_type}")
    return parser(payload)
