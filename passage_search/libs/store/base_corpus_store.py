"""Read-only corpus store contract consumed by the engine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from passage_search.core.types import Document


class BaseCorpusStore(ABC):
    """Supplies fully materialized document snapshots.

    ``get_all_documents`` must return a stable list for the duration of one
    query: the lexical and vector branches of a hybrid search both score the
    same snapshot, so later corpus mutations must not leak into it.
    """

    @abstractmethod
    async def get_all_documents(self) -> list[Document]:
        """Return every stored document (no pagination)."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return one document, or None if unknown."""
