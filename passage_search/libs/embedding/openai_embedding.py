"""OpenAI embedding provider (official ``openai`` async client).

Also works against OpenAI-compatible gateways through ``embedding.base_url``.
"""

from __future__ import annotations

import os
from typing import Any

import openai

from passage_search.libs.embedding.base_embedding import BaseEmbedding, EmbeddingError


class OpenAIEmbeddingError(EmbeddingError):
    """Raised when the OpenAI embeddings call fails."""


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI embedding provider."""

    DEFAULT_MODEL = "text-embedding-3-small"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_TIMEOUT = 60.0

    MODEL_DIMENSIONS: dict[str, int] = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    @staticmethod
    def _as_optional_str(value: Any) -> str | None:
        if isinstance(value, str):
            cleaned = value.strip()
            return cleaned if cleaned else None
        return None

    def __init__(
        self,
        settings: Any,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: Any | None = None,
        **kwargs: Any,
    ) -> None:
        """Create the provider.

        Args:
            settings: Settings object; reads ``settings.embedding.*``.
            api_key: Explicit key; wins over settings and ``OPENAI_API_KEY``.
            base_url: OpenAI-compatible gateway URL.
            timeout: Request timeout in seconds.
            client: Pre-built ``openai.AsyncOpenAI`` (tests inject a fake here).
        """

        self.settings = settings
        embedding_settings = getattr(settings, "embedding", None)
        self._configure_prefixes(embedding_settings)

        model_value = self._as_optional_str(getattr(embedding_settings, "model", None))
        # the settings default targets Ollama; fall back to an OpenAI model name
        if model_value is None or model_value == "embeddinggemma":
            model_value = self.DEFAULT_MODEL
        self.model = model_value

        dimensions_value = getattr(embedding_settings, "dimensions", None)
        self.dimensions = int(dimensions_value) if isinstance(dimensions_value, int) else None

        settings_base_url = self._as_optional_str(getattr(embedding_settings, "base_url", None))
        self.base_url = str(base_url or settings_base_url or self.DEFAULT_BASE_URL).rstrip("/")

        settings_timeout = getattr(embedding_settings, "timeout", None)
        if timeout is None and isinstance(settings_timeout, (int, float)):
            timeout = float(settings_timeout)
        self.timeout = float(timeout if timeout is not None else self.DEFAULT_TIMEOUT)

        if client is not None:
            self._client = client
            self.api_key = api_key
            return

        settings_api_key = self._as_optional_str(getattr(embedding_settings, "api_key", None))
        api_key_value = api_key or settings_api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key_value:
            raise ValueError("OpenAI API key not provided")
        self.api_key = str(api_key_value)
        self._client = openai.AsyncOpenAI(
            api_key=self.api_key, base_url=self.base_url, timeout=self.timeout
        )

    async def _request_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
        request: dict[str, Any] = {"model": str(kwargs.get("model", self.model)), "input": texts}
        dimensions = kwargs.get("dimensions", self.dimensions)
        if dimensions is not None:
            request["dimensions"] = int(dimensions)

        try:
            response = await self._client.embeddings.create(**request)
        except openai.OpenAIError as error:
            raise OpenAIEmbeddingError(f"OpenAI Embeddings API call failed: {error}") from error

        # the API may return items out of order; "index" is authoritative
        items = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in items]

    def get_dimension(self) -> int | None:
        if self.dimensions is not None:
            return self.dimensions
        return self.MODEL_DIMENSIONS.get(self.model)
