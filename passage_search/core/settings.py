"""Settings loading and validation.

This module provides a minimal, type-safe configuration loader for the engine.

Design principles:
- Every section and field is optional; omitted values fall back to defaults
- Fail-fast: malformed values raise a readable error that includes the field path
- No side effects: this module only parses/validates configuration; no network/IO init
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml


class SettingsError(ValueError):
    """Raised when settings are missing or invalid."""


DEFAULT_CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    "main",
    '[role="main"]',
    '[role="article"]',
    ".article-content",
    ".post-content",
    ".entry-content",
    ".content-body",
    ".article-body",
    "#content",
    "#main-content",
    ".main-content",
)


@dataclass(frozen=True)
class EmbeddingSettings:
    provider: str = "ollama"
    model: str = "embeddinggemma"
    dimensions: int | None = None
    base_url: str | None = None
    api_key: str | None = None
    timeout: float = 60.0
    query_prefix: str = "task: search result | query: "
    document_prefix: str = "title: none | text: "


@dataclass(frozen=True)
class ChunkerSettings:
    max_words_per_passage: int = 200
    max_passages: int = 30
    min_word_count: int = 5
    min_content_chars: int = 200
    overshoot_ratio: float = 1.2
    aggregate_siblings: bool = True
    prefer_semantic_boundaries: bool = True
    min_boundary_fraction: float = 0.7
    content_selectors: tuple[str, ...] = DEFAULT_CONTENT_SELECTORS


@dataclass(frozen=True)
class KeywordSettings:
    title_weight: float = 3.0
    passage_weight: float = 2.0
    url_weight: float = 1.5
    content_weight: float = 1.0
    max_content_length: int = 2000
    min_score: float = 0.01
    exact_phrase_bonus: float = 2.0
    domain_bonus: float = 1.5


@dataclass(frozen=True)
class FusionSettings:
    rrf_k: int = 60
    alpha: float = 0.9
    oversample: int = 3
    default_k: int = 10
    semantic_min_similarity: float = 0.0
    high_confidence: float = 0.68
    medium_confidence: float = 0.58
    strong_keyword_score: float = 0.5


@dataclass(frozen=True)
class RetrievalSettings:
    top_k: int = 10
    min_similarity: float = 0.58
    max_per_document: int = 3
    max_per_domain: int = 2
    quality_weight: float = 0.3
    max_context_length: int = 8000


@dataclass(frozen=True)
class CacheSettings:
    enabled: bool = True
    max_size: int = 100
    ttl_seconds: float = 300.0


@dataclass(frozen=True)
class ObservabilitySettings:
    log_level: str = "INFO"
    trace_enabled: bool = False
    trace_file: str = "./logs/traces.jsonl"


@dataclass(frozen=True)
class Settings:
    embedding: EmbeddingSettings = field(default_factory=EmbeddingSettings)
    chunker: ChunkerSettings = field(default_factory=ChunkerSettings)
    keyword: KeywordSettings = field(default_factory=KeywordSettings)
    fusion: FusionSettings = field(default_factory=FusionSettings)
    retrieval: RetrievalSettings = field(default_factory=RetrievalSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)


def _optional_section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SettingsError(f"Invalid section type: {key}")
    return value


def _as_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"Invalid value for {path}: expected non-empty string")
    return value


def _as_optional_str(value: Any, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_int(value: Any, path: str, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SettingsError(f"Invalid value for {path}: expected int")
    if minimum is not None and value < minimum:
        raise SettingsError(f"Invalid value for {path}: expected >= {minimum}")
    return value


def _as_optional_int(value: Any, path: str) -> int | None:
    if value is None:
        return None
    return _as_int(value, path, minimum=1)


def _as_bool(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise SettingsError(f"Invalid value for {path}: expected bool")
    return value


def _as_float(value: Any, path: str, minimum: float | None = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"Invalid value for {path}: expected float")
    result = float(value)
    if not math.isfinite(result):
        raise SettingsError(f"Invalid value for {path}: expected finite number")
    if minimum is not None and result < minimum:
        raise SettingsError(f"Invalid value for {path}: expected >= {minimum}")
    return result


def _as_fraction(value: Any, path: str) -> float:
    result = _as_float(value, path)
    if not 0.0 <= result <= 1.0:
        raise SettingsError(f"Invalid value for {path}: expected value in [0, 1]")
    return result


def _as_str_list(value: Any, path: str) -> list[str]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise SettingsError(f"Invalid value for {path}: expected list[str]")
    out: list[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise SettingsError(f"Invalid value for {path}[{i}]: expected str")
        out.append(item)
    return out


def _parse_embedding(raw: Mapping[str, Any]) -> EmbeddingSettings:
    d = EmbeddingSettings()
    return EmbeddingSettings(
        provider=_as_str(raw.get("provider", d.provider), "embedding.provider"),
        model=_as_str(raw.get("model", d.model), "embedding.model"),
        dimensions=_as_optional_int(raw.get("dimensions", d.dimensions), "embedding.dimensions"),
        base_url=_as_optional_str(raw.get("base_url", d.base_url), "embedding.base_url"),
        api_key=_as_optional_str(raw.get("api_key", d.api_key), "embedding.api_key"),
        timeout=_as_float(raw.get("timeout", d.timeout), "embedding.timeout", minimum=0.0),
        # prefixes may legitimately be empty strings
        query_prefix=str(raw.get("query_prefix", d.query_prefix) or ""),
        document_prefix=str(raw.get("document_prefix", d.document_prefix) or ""),
    )


def _parse_chunker(raw: Mapping[str, Any]) -> ChunkerSettings:
    d = ChunkerSettings()
    selectors = raw.get("content_selectors")
    return ChunkerSettings(
        max_words_per_passage=_as_int(
            raw.get("max_words_per_passage", d.max_words_per_passage),
            "chunker.max_words_per_passage",
            minimum=1,
        ),
        max_passages=_as_int(raw.get("max_passages", d.max_passages), "chunker.max_passages", 1),
        min_word_count=_as_int(
            raw.get("min_word_count", d.min_word_count), "chunker.min_word_count", minimum=1
        ),
        min_content_chars=_as_int(
            raw.get("min_content_chars", d.min_content_chars), "chunker.min_content_chars", 0
        ),
        overshoot_ratio=_as_float(
            raw.get("overshoot_ratio", d.overshoot_ratio), "chunker.overshoot_ratio", minimum=1.0
        ),
        aggregate_siblings=_as_bool(
            raw.get("aggregate_siblings", d.aggregate_siblings), "chunker.aggregate_siblings"
        ),
        prefer_semantic_boundaries=_as_bool(
            raw.get("prefer_semantic_boundaries", d.prefer_semantic_boundaries),
            "chunker.prefer_semantic_boundaries",
        ),
        min_boundary_fraction=_as_fraction(
            raw.get("min_boundary_fraction", d.min_boundary_fraction),
            "chunker.min_boundary_fraction",
        ),
        content_selectors=(
            tuple(_as_str_list(selectors, "chunker.content_selectors"))
            if selectors is not None
            else d.content_selectors
        ),
    )


def _parse_keyword(raw: Mapping[str, Any]) -> KeywordSettings:
    d = KeywordSettings()
    return KeywordSettings(
        title_weight=_as_float(raw.get("title_weight", d.title_weight), "keyword.title_weight", 0.0),
        passage_weight=_as_float(
            raw.get("passage_weight", d.passage_weight), "keyword.passage_weight", 0.0
        ),
        url_weight=_as_float(raw.get("url_weight", d.url_weight), "keyword.url_weight", 0.0),
        content_weight=_as_float(
            raw.get("content_weight", d.content_weight), "keyword.content_weight", 0.0
        ),
        max_content_length=_as_int(
            raw.get("max_content_length", d.max_content_length), "keyword.max_content_length", 0
        ),
        min_score=_as_float(raw.get("min_score", d.min_score), "keyword.min_score", 0.0),
        exact_phrase_bonus=_as_float(
            raw.get("exact_phrase_bonus", d.exact_phrase_bonus), "keyword.exact_phrase_bonus", 0.0
        ),
        domain_bonus=_as_float(
            raw.get("domain_bonus", d.domain_bonus), "keyword.domain_bonus", 0.0
        ),
    )


def _parse_fusion(raw: Mapping[str, Any]) -> FusionSettings:
    d = FusionSettings()
    return FusionSettings(
        rrf_k=_as_int(raw.get("rrf_k", d.rrf_k), "fusion.rrf_k", minimum=0),
        alpha=_as_fraction(raw.get("alpha", d.alpha), "fusion.alpha"),
        oversample=_as_int(raw.get("oversample", d.oversample), "fusion.oversample", minimum=1),
        default_k=_as_int(raw.get("default_k", d.default_k), "fusion.default_k", minimum=1),
        semantic_min_similarity=_as_float(
            raw.get("semantic_min_similarity", d.semantic_min_similarity),
            "fusion.semantic_min_similarity",
        ),
        high_confidence=_as_float(
            raw.get("high_confidence", d.high_confidence), "fusion.high_confidence"
        ),
        medium_confidence=_as_float(
            raw.get("medium_confidence", d.medium_confidence), "fusion.medium_confidence"
        ),
        strong_keyword_score=_as_float(
            raw.get("strong_keyword_score", d.strong_keyword_score), "fusion.strong_keyword_score"
        ),
    )


def _parse_retrieval(raw: Mapping[str, Any]) -> RetrievalSettings:
    d = RetrievalSettings()
    return RetrievalSettings(
        top_k=_as_int(raw.get("top_k", d.top_k), "retrieval.top_k", minimum=1),
        min_similarity=_as_float(
            raw.get("min_similarity", d.min_similarity), "retrieval.min_similarity"
        ),
        max_per_document=_as_int(
            raw.get("max_per_document", d.max_per_document), "retrieval.max_per_document", 1
        ),
        max_per_domain=_as_int(
            raw.get("max_per_domain", d.max_per_domain), "retrieval.max_per_domain", 1
        ),
        quality_weight=_as_fraction(
            raw.get("quality_weight", d.quality_weight), "retrieval.quality_weight"
        ),
        max_context_length=_as_int(
            raw.get("max_context_length", d.max_context_length), "retrieval.max_context_length", 0
        ),
    )


def _parse_cache(raw: Mapping[str, Any]) -> CacheSettings:
    d = CacheSettings()
    return CacheSettings(
        enabled=_as_bool(raw.get("enabled", d.enabled), "cache.enabled"),
        max_size=_as_int(raw.get("max_size", d.max_size), "cache.max_size", minimum=1),
        ttl_seconds=_as_float(raw.get("ttl_seconds", d.ttl_seconds), "cache.ttl_seconds", 0.0),
    )


def _parse_observability(raw: Mapping[str, Any]) -> ObservabilitySettings:
    d = ObservabilitySettings()
    return ObservabilitySettings(
        log_level=_as_str(raw.get("log_level", d.log_level), "observability.log_level"),
        trace_enabled=_as_bool(
            raw.get("trace_enabled", d.trace_enabled), "observability.trace_enabled"
        ),
        trace_file=_as_str(raw.get("trace_file", d.trace_file), "observability.trace_file"),
    )


def validate_settings(settings: Settings) -> None:
    """Validate cross-field invariants."""

    if settings.fusion.medium_confidence > settings.fusion.high_confidence:
        raise SettingsError(
            "Invalid value for fusion.medium_confidence: must not exceed fusion.high_confidence"
        )
    if settings.chunker.min_word_count > settings.chunker.max_words_per_passage:
        raise SettingsError(
            "Invalid value for chunker.min_word_count: must not exceed "
            "chunker.max_words_per_passage"
        )


def settings_from_mapping(raw: Mapping[str, Any]) -> Settings:
    """Build settings from an already-parsed mapping."""

    if not isinstance(raw, Mapping):
        raise SettingsError("Invalid settings root: expected mapping")

    settings = Settings(
        embedding=_parse_embedding(_optional_section(raw, "embedding")),
        chunker=_parse_chunker(_optional_section(raw, "chunker")),
        keyword=_parse_keyword(_optional_section(raw, "keyword")),
        fusion=_parse_fusion(_optional_section(raw, "fusion")),
        retrieval=_parse_retrieval(_optional_section(raw, "retrieval")),
        cache=_parse_cache(_optional_section(raw, "cache")),
        observability=_parse_observability(_optional_section(raw, "observability")),
    )
    validate_settings(settings)
    return settings


def default_settings() -> Settings:
    """Return the all-defaults configuration."""

    return settings_from_mapping({})


def load_settings(path: str | Path) -> Settings:
    """Load settings from a YAML file."""

    settings_path = Path(path)
    if not settings_path.exists():
        raise SettingsError(f"Settings file not found: {settings_path}")

    try:
        raw_obj = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in settings file: {settings_path}") from e

    if raw_obj is None:
        raw_obj = {}
    if not isinstance(raw_obj, Mapping):
        raise SettingsError(f"Invalid settings root: expected mapping in {settings_path}")

    return settings_from_mapping(raw_obj)
