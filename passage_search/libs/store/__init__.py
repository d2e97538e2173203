"""Corpus store implementations."""

from passage_search.libs.store.base_corpus_store import BaseCorpusStore
from passage_search.libs.store.memory_store import InMemoryCorpusStore, JsonCorpusStore

__all__ = ["BaseCorpusStore", "InMemoryCorpusStore", "JsonCorpusStore"]
