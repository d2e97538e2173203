"""Embedding providers."""

from passage_search.libs.embedding.base_embedding import BaseEmbedding, EmbeddingError
from passage_search.libs.embedding.embedding_factory import EmbeddingFactory
from passage_search.libs.embedding.ollama_embedding import OllamaEmbedding, OllamaEmbeddingError
from passage_search.libs.embedding.openai_embedding import OpenAIEmbedding, OpenAIEmbeddingError

# default providers are registered on import
if "ollama" not in EmbeddingFactory._PROVIDERS:
    EmbeddingFactory.register_provider("ollama", OllamaEmbedding)
if "openai" not in EmbeddingFactory._PROVIDERS:
    EmbeddingFactory.register_provider("openai", OpenAIEmbedding)

__all__ = [
    "BaseEmbedding",
    "EmbeddingError",
    "EmbeddingFactory",
    "OllamaEmbedding",
    "OllamaEmbeddingError",
    "OpenAIEmbedding",
    "OpenAIEmbeddingError",
]
