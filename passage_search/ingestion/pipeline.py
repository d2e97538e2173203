"""Ingestion pipeline: raw page -> passages -> passage embeddings -> store."""

from __future__ import annotations

import hashlib
import time
from pathlib import Path
from typing import Any

from passage_search.core.types import Document
from passage_search.ingestion.chunking.passage_chunker import PassageChunker
from passage_search.libs.embedding import BaseEmbedding, EmbeddingFactory
from passage_search.libs.store.memory_store import InMemoryCorpusStore
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)


def document_id_for(url: str, raw_text: str) -> str:
    """Stable id: the URL when present, else the content, hashed."""

    source = url or raw_text
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]


class IngestionPipeline:
    """Chunks a document, embeds its passages and stores it wholesale."""

    def __init__(
        self,
        settings: Any,
        embedding: BaseEmbedding | None = None,
        chunker: PassageChunker | None = None,
        store: InMemoryCorpusStore | None = None,
    ) -> None:
        self.settings = settings
        self.chunker = chunker or PassageChunker(settings)
        self._embedding = embedding
        self.store = store

    @property
    def embedding(self) -> BaseEmbedding:
        if self._embedding is None:
            self._embedding = EmbeddingFactory.create(self.settings)
        return self._embedding

    async def ingest(self, document: Document, embed: bool = True) -> Document:
        """Rebuild ``document``'s passages (and embeddings) and store it.

        A document that yields no passages is returned unchanged and not
        stored; it would never be searchable.
        """

        passages = self.chunker.chunk(document)
        if not passages:
            logger.warning("Document %s produced no passages; skipped", document.id)
            return document

        if embed:
            vectors = await self.embedding.embed_batch(
                [p.text for p in passages], role="document"
            )
            passages = [p.with_embedding(v) for p, v in zip(passages, vectors)]

        ingested = Document(
            id=document.id,
            url=document.url,
            title=document.title,
            raw_text=document.raw_text,
            passages=passages,
            timestamp=document.timestamp or int(time.time() * 1000),
            dwell_time=document.dwell_time,
            last_accessed=document.last_accessed,
            visit_count=document.visit_count,
        )
        if self.store is not None:
            self.store.add(ingested)
        logger.info(
            "Ingested document %s (%d passages, embedded=%s)", ingested.id, len(passages), embed
        )
        return ingested

    async def ingest_file(
        self,
        path: str | Path,
        url: str = "",
        title: str | None = None,
        embed: bool = True,
    ) -> Document:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        raw_text = file_path.read_text(encoding="utf-8")
        document = Document(
            id=document_id_for(url or file_path.resolve().as_uri(), raw_text),
            url=url or file_path.resolve().as_uri(),
            title=title or file_path.stem,
            raw_text=raw_text,
        )
        return await self.ingest(document, embed=embed)
