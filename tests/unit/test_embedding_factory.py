"""Embedding base class, OpenAI provider and factory unit tests.

Goals:
1. ``BaseEmbedding`` validates input, applies role prefixes and normalizes.
2. ``OpenAIEmbedding`` talks to an injected client and maps SDK errors.
3. ``EmbeddingFactory`` creates providers from settings and reports
   missing/unknown providers and constructor failures readably.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import openai
import pytest

from passage_search.core.settings import settings_from_mapping
from passage_search.core.trace.trace_context import TraceContext
from passage_search.libs.embedding import (
    BaseEmbedding,
    EmbeddingError,
    EmbeddingFactory,
    OllamaEmbedding,
    OpenAIEmbedding,
    OpenAIEmbeddingError,
)


class FakeEmbedding(BaseEmbedding):
    """Returns deterministic vectors and records the texts it was sent."""

    def __init__(self, settings: Any = None, dimension: int = 3, **kwargs: Any) -> None:
        self.settings = settings
        self.dimension = dimension
        self.sent: list[list[str]] = []

    async def _request_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
        self.sent.append(list(texts))
        return [[float(i + 1)] + [0.0] * (self.dimension - 1) for i in range(len(texts))]

    def get_dimension(self) -> int:
        return self.dimension


class FakeEmbeddingsEndpoint:
    def __init__(self, vectors: list[list[float]] | None = None, error: Exception | None = None):
        self.vectors = vectors or []
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **request: Any) -> Any:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        # returned out of order on purpose
        items = [
            SimpleNamespace(index=i, embedding=vector) for i, vector in enumerate(self.vectors)
        ]
        return SimpleNamespace(data=list(reversed(items)))


def _openai_settings(**embedding: Any):
    return settings_from_mapping({"embedding": {"provider": "openai", **embedding}})


@pytest.fixture
def restore_registry():
    saved = dict(EmbeddingFactory._PROVIDERS)
    yield
    EmbeddingFactory._PROVIDERS.clear()
    EmbeddingFactory._PROVIDERS.update(saved)


class TestBaseEmbedding:
    def test_validate_texts(self) -> None:
        embedding = FakeEmbedding()
        embedding.validate_texts(["hello", "world"])

        with pytest.raises(ValueError, match="cannot be empty"):
            embedding.validate_texts([])
        with pytest.raises(ValueError, match="not a string"):
            embedding.validate_texts(["valid", 123])  # type: ignore[list-item]
        with pytest.raises(ValueError, match="empty or whitespace-only"):
            embedding.validate_texts(["valid", "   "])

    def test_role_prefixes(self) -> None:
        embedding = FakeEmbedding()

        asyncio.run(embedding.embed("react hooks"))
        asyncio.run(embedding.embed_batch(["a page"], role="document"))

        assert embedding.sent == [
            ["task: search result | query: react hooks"],
            ["title: none | text: a page"],
        ]

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown embedding role"):
            asyncio.run(FakeEmbedding().embed("x", role="summary"))  # type: ignore[arg-type]

    def test_vectors_are_normalized(self) -> None:
        vectors = asyncio.run(FakeEmbedding().embed_batch(["a", "b"]))

        assert vectors == [[1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]

    def test_trace_records_embedding_stage(self) -> None:
        trace = TraceContext()

        asyncio.run(FakeEmbedding().embed_batch(["a", "b"], role="document", trace=trace))

        assert trace.get_stage_data("embedding") == {
            "provider": "FakeEmbedding",
            "role": "document",
            "count": 2,
        }

    def test_default_dimension_is_unknown(self) -> None:
        class MinimalEmbedding(BaseEmbedding):
            async def _request_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
                return [[1.0] for _ in texts]

        assert MinimalEmbedding().get_dimension() is None


class TestOpenAIEmbedding:
    def test_requires_api_key_without_client(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ValueError, match="API key not provided"):
            OpenAIEmbedding(_openai_settings())

    def test_ollama_default_model_is_replaced(self) -> None:
        embedding = OpenAIEmbedding(_openai_settings(), client=MagicMock())

        assert embedding.model == "text-embedding-3-small"
        assert embedding.get_dimension() == 1536

    def test_request_and_index_ordering(self) -> None:
        endpoint = FakeEmbeddingsEndpoint(vectors=[[3.0, 4.0], [0.0, 5.0]])
        client = SimpleNamespace(embeddings=endpoint)
        embedding = OpenAIEmbedding(
            _openai_settings(model="text-embedding-3-large", dimensions=2), client=client
        )

        vectors = asyncio.run(embedding.embed_batch(["first", "second"], role="document"))

        assert endpoint.calls == [
            {
                "model": "text-embedding-3-large",
                "input": ["title: none | text: first", "title: none | text: second"],
                "dimensions": 2,
            }
        ]
        assert vectors[0] == pytest.approx([0.6, 0.8])
        assert vectors[1] == pytest.approx([0.0, 1.0])

    def test_sdk_errors_are_wrapped(self) -> None:
        endpoint = FakeEmbeddingsEndpoint(error=openai.OpenAIError("quota exceeded"))
        embedding = OpenAIEmbedding(_openai_settings(), client=SimpleNamespace(embeddings=endpoint))

        with pytest.raises(OpenAIEmbeddingError, match="quota exceeded") as excinfo:
            asyncio.run(embedding.embed("hello"))
        assert isinstance(excinfo.value, EmbeddingError)


class TestEmbeddingFactory:
    def test_default_providers_registered(self) -> None:
        assert {"ollama", "openai"} <= set(EmbeddingFactory.list_providers())

    def test_create_from_settings(self) -> None:
        settings = settings_from_mapping({"embedding": {"provider": "Ollama"}})

        assert isinstance(EmbeddingFactory.create(settings), OllamaEmbedding)

    def test_create_passes_overrides(self) -> None:
        client = MagicMock()
        embedding = EmbeddingFactory.create(_openai_settings(), client=client)

        assert isinstance(embedding, OpenAIEmbedding)
        assert embedding._client is client

    def test_register_is_case_insensitive(self, restore_registry) -> None:
        EmbeddingFactory.register_provider("  Fake ", FakeEmbedding)

        assert "fake" in EmbeddingFactory.list_providers()

    def test_register_rejects_non_embedding_class(self, restore_registry) -> None:
        class NotAnEmbedding:
            pass

        with pytest.raises(ValueError, match="must inherit from BaseEmbedding"):
            EmbeddingFactory.register_provider("invalid", NotAnEmbedding)  # type: ignore[arg-type]

    def test_missing_provider(self) -> None:
        settings = MagicMock()
        settings.embedding.provider = "  "

        with pytest.raises(ValueError, match="Missing required configuration"):
            EmbeddingFactory.create(settings)

    def test_unknown_provider_lists_available(self) -> None:
        settings = MagicMock()
        settings.embedding.provider = "does-not-exist"

        with pytest.raises(ValueError, match="Available providers: .*ollama"):
            EmbeddingFactory.create(settings)

    def test_constructor_failure_is_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(RuntimeError, match="Failed to instantiate Embedding provider 'openai'"):
            EmbeddingFactory.create(_openai_settings())
