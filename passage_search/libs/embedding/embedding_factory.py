"""Registry-based factory for embedding providers.

Usage::

    EmbeddingFactory.register_provider("ollama", OllamaEmbedding)
    embedding = EmbeddingFactory.create(settings)
"""

from __future__ import annotations

from typing import Any

from passage_search.libs.embedding.base_embedding import BaseEmbedding


class EmbeddingFactory:
    """Maps ``settings.embedding.provider`` names to provider classes."""

    _PROVIDERS: dict[str, type[BaseEmbedding]] = {}

    @classmethod
    def register_provider(cls, provider_name: str, provider_class: type[BaseEmbedding]) -> None:
        """Register ``provider_class`` under a case-insensitive name."""

        normalized_name = provider_name.strip().lower()
        if not normalized_name:
            raise ValueError("Provider name cannot be empty")
        if not issubclass(provider_class, BaseEmbedding):
            raise ValueError("Provider class must inherit from BaseEmbedding")
        cls._PROVIDERS[normalized_name] = provider_class

    @classmethod
    def create(cls, settings: Any, **overrides: Any) -> BaseEmbedding:
        """Instantiate the configured provider.

        ``overrides`` are passed to the provider constructor (tests use them to
        inject transports/clients). A missing or unknown provider name raises
        ``ValueError``; a constructor failure is wrapped in ``RuntimeError``.
        """

        embedding_settings = getattr(settings, "embedding", None)
        provider_raw = getattr(embedding_settings, "provider", None)
        if not isinstance(provider_raw, str) or not provider_raw.strip():
            raise ValueError(
                "Missing required configuration: settings.embedding.provider. "
                "Please set it in settings.yaml"
            )

        provider_name = provider_raw.strip().lower()
        provider_class = cls._PROVIDERS.get(provider_name)
        if provider_class is None:
            available = ", ".join(cls.list_providers()) or "none"
            raise ValueError(
                f"Unsupported Embedding provider: '{provider_raw}'. Available providers: {available}"
            )

        try:
            return provider_class(settings, **overrides)
        except Exception as error:  # noqa: BLE001 - surface any init failure uniformly
            raise RuntimeError(
                f"Failed to instantiate Embedding provider '{provider_name}': {error}"
            ) from error

    @classmethod
    def list_providers(cls) -> list[str]:
        return sorted(cls._PROVIDERS.keys())
