"""In-process corpus stores: a mutable in-memory store and a JSON export loader."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Iterable

from passage_search.core.types import Document
from passage_search.libs.store.base_corpus_store import BaseCorpusStore
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)


class InMemoryCorpusStore(BaseCorpusStore):
    """Documents kept in insertion order; every read returns a snapshot copy."""

    def __init__(self, documents: Iterable[Document] | None = None) -> None:
        self._documents: dict[str, Document] = {}
        for document in documents or []:
            self.add(document)

    def add(self, document: Document) -> None:
        """Insert or wholesale-replace a document (re-visits replace, never patch)."""

        self._documents[document.id] = copy.deepcopy(document)

    def remove(self, document_id: str) -> bool:
        return self._documents.pop(document_id, None) is not None

    def clear(self) -> None:
        self._documents.clear()

    async def get_all_documents(self) -> list[Document]:
        return [copy.deepcopy(doc) for doc in self._documents.values()]

    async def get_document(self, document_id: str) -> Document | None:
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    def __len__(self) -> int:
        return len(self._documents)


class JsonCorpusStore(InMemoryCorpusStore):
    """Corpus loaded from a JSON export.

    Accepted layouts: a list of documents, or ``{"documents": [...]}``; each
    document follows ``Document.to_dict()``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(self._load(self.path))

    @staticmethod
    def _load(path: Path) -> list[Document]:
        if not path.exists():
            raise FileNotFoundError(f"Corpus file not found: {path}")
        try:
            raw: Any = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as error:
            raise ValueError(f"Invalid JSON in corpus file: {path}") from error

        if isinstance(raw, dict):
            raw = raw.get("documents", [])
        if not isinstance(raw, list):
            raise ValueError(f"Invalid corpus root in {path}: expected a list of documents")

        documents = [Document.from_dict(item) for item in raw if isinstance(item, dict)]
        logger.info("Loaded %d documents from %s", len(documents), path)
        return documents

    def save(self, path: str | Path | None = None) -> Path:
        target = Path(path) if path is not None else self.path
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = {"documents": [doc.to_dict() for doc in self._documents.values()]}
        target.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        return target
