"""Ollama embedding provider (HTTP ``/api/embed`` via httpx)."""

from __future__ import annotations

import os
from typing import Any

import httpx

from passage_search.libs.embedding.base_embedding import BaseEmbedding, EmbeddingError


class OllamaEmbeddingError(EmbeddingError):
    """Raised when the Ollama embeddings call fails."""


class OllamaEmbedding(BaseEmbedding):
    """Ollama embedding provider."""

    DEFAULT_MODEL = "embeddinggemma"
    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_TIMEOUT = 60.0
    DEFAULT_DIMENSION = 768

    @staticmethod
    def _as_optional_str(value: Any) -> str | None:
        if isinstance(value, str):
            cleaned = value.strip()
            return cleaned if cleaned else None
        return None

    @staticmethod
    def _as_optional_int(value: Any) -> int | None:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def __init__(
        self,
        settings: Any,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        self.settings = settings
        embedding_settings = getattr(settings, "embedding", None)
        self._configure_prefixes(embedding_settings)

        self.model = (
            self._as_optional_str(getattr(embedding_settings, "model", None)) or self.DEFAULT_MODEL
        )
        configured_dimension = self._as_optional_int(
            getattr(embedding_settings, "dimensions", None)
        )
        self.dimension = configured_dimension or self.DEFAULT_DIMENSION

        settings_base_url = self._as_optional_str(getattr(embedding_settings, "base_url", None))
        configured_base_url = base_url or os.environ.get("OLLAMA_BASE_URL") or settings_base_url
        self.base_url = str(configured_base_url or self.DEFAULT_BASE_URL).rstrip("/")

        settings_timeout = getattr(embedding_settings, "timeout", None)
        if timeout is None and isinstance(settings_timeout, (int, float)):
            timeout = float(settings_timeout)
        self.timeout = float(timeout if timeout is not None else self.DEFAULT_TIMEOUT)

        # injectable for tests (httpx.MockTransport)
        self._transport = transport

    async def _request_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
        model_name = str(kwargs.get("model", self.model))
        payload: dict[str, Any] = {"model": model_name, "input": texts}
        endpoint = f"{self.base_url}/api/embed"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(endpoint, json=payload)
        except httpx.TimeoutException as error:
            raise OllamaEmbeddingError(
                f"[Ollama] Request timed out after {self.timeout:.0f} seconds"
            ) from error
        except httpx.ConnectError as error:
            raise OllamaEmbeddingError(
                "[Ollama] Connection failed. Please make sure Ollama is running (`ollama serve`)"
            ) from error
        except httpx.RequestError as error:
            raise OllamaEmbeddingError(f"[Ollama] API request failed: {error}") from error

        try:
            data = response.json()
        except ValueError as error:
            raise OllamaEmbeddingError("[Ollama] Unexpected response format") from error

        if response.status_code >= 400:
            error_message = "Unknown error"
            if isinstance(data, dict) and isinstance(data.get("error"), str):
                error_message = data["error"]
            elif response.text:
                error_message = response.text
            raise OllamaEmbeddingError(
                f"[Ollama] API error (HTTP {response.status_code}): {error_message}"
            )

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list) or not all(isinstance(v, list) for v in embeddings):
            raise OllamaEmbeddingError("[Ollama] Response is missing 'embeddings'")
        return [[float(x) for x in vector] for vector in embeddings]

    def get_dimension(self) -> int | None:
        return self.dimension
