"""Engine server: typed request dispatch plus a stdio JSON-lines transport."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, TextIO

from passage_search.core.query_engine.hybrid_search import HybridSearch
from passage_search.core.query_engine.passage_retriever import PassageRetriever
from passage_search.core.query_engine.query_cache import QueryCache
from passage_search.core.response.context_builder import build_context
from passage_search.core.settings import Settings
from passage_search.core.trace.trace_context import new_trace
from passage_search.core.types import Document, RetrievedPassage
from passage_search.ingestion.chunking.passage_chunker import PassageChunker
from passage_search.libs.embedding import BaseEmbedding, EmbeddingError, EmbeddingFactory
from passage_search.libs.store.base_corpus_store import BaseCorpusStore
from passage_search.observability.logger import get_logger
from passage_search.server.errors import (
    EMBEDDING_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    PARSE_ERROR,
    UNKNOWN_REQUEST_TYPE,
    EngineError,
)
from passage_search.server.messages import (
    ChunkRequest,
    ChunkResponse,
    ContextRequest,
    ContextResponse,
    EngineRequest,
    EngineResponse,
    RetrieveRequest,
    RetrieveResponse,
    SearchRequest,
    SearchResponse,
    SimilarRequest,
    SimilarResponse,
    parse_request,
)


class EngineServer:
    """In-process engine facade; one handler per request variant."""

    def __init__(
        self,
        settings: Settings,
        store: BaseCorpusStore,
        embedding: BaseEmbedding | None = None,
        chunker: PassageChunker | None = None,
    ) -> None:
        self.settings = settings
        self.logger = get_logger("server")
        self.store = store
        self.embedding = embedding or EmbeddingFactory.create(settings)
        self.chunker = chunker or PassageChunker(settings)
        self.hybrid_search = HybridSearch(
            store, self.embedding, settings, cache=QueryCache.from_settings(settings)
        )
        self.retriever = PassageRetriever(store, self.embedding, settings)

        self._handlers: dict[type, Callable[[Any], Awaitable[EngineResponse]]] = {
            SearchRequest: self._search,
            RetrieveRequest: self._retrieve,
            ChunkRequest: self._chunk,
            SimilarRequest: self._similar,
            ContextRequest: self._context,
        }

    async def _search(self, request: SearchRequest) -> SearchResponse:
        trace = new_trace(self.settings, "search", request.query)
        results = await self.hybrid_search.search(
            request.query, mode=request.mode, k=request.k, alpha=request.alpha, trace=trace
        )
        if trace is not None:
            trace.finish()
        return SearchResponse(results=results)

    async def _retrieve_passages(
        self, request: RetrieveRequest, operation: str
    ) -> list[RetrievedPassage]:
        trace = new_trace(self.settings, operation, request.query)
        passages = await self.retriever.retrieve(
            request.query,
            top_k=request.top_k,
            min_similarity=request.min_similarity,
            max_per_document=request.max_per_document,
            max_per_domain=request.max_per_domain,
            quality_weight=request.quality_weight,
            trace=trace,
        )
        if trace is not None:
            trace.finish()
        return passages

    async def _retrieve(self, request: RetrieveRequest) -> RetrieveResponse:
        return RetrieveResponse(passages=await self._retrieve_passages(request, "retrieve"))

    async def _chunk(self, request: ChunkRequest) -> ChunkResponse:
        document = Document(id=request.document_id, url="", title="", raw_text=request.raw_text)
        return ChunkResponse(document_id=request.document_id, passages=self.chunker.chunk(document))

    async def _similar(self, request: SimilarRequest) -> SimilarResponse:
        try:
            results = await self.hybrid_search.find_similar(request.document_id, k=request.k)
        except LookupError as e:
            raise EngineError(INVALID_PARAMS, str(e), {"document_id": request.document_id}) from e
        return SimilarResponse(document_id=request.document_id, results=results)

    async def _context(self, request: ContextRequest) -> ContextResponse:
        passages = await self._retrieve_passages(request.retrieve, "context")
        max_length = request.max_length or self.settings.retrieval.max_context_length
        return ContextResponse(context=build_context(passages, max_length), passages=passages)

    async def handle(self, request: EngineRequest) -> EngineResponse:
        handler = self._handlers.get(type(request))
        if handler is None:
            raise EngineError(UNKNOWN_REQUEST_TYPE, f"Unsupported request: {type(request).__name__}")
        return await handler(request)

    async def handle_payload(self, payload: Any) -> dict[str, Any]:
        """Parse, dispatch and wrap the outcome as ``{"id", "result"}`` or ``{"id", "error"}``."""

        request_id = payload.get("id") if isinstance(payload, dict) else None
        try:
            response = await self.handle(parse_request(payload))
            return {"id": request_id, "result": response.to_dict()}
        except EngineError as e:
            return {"id": request_id, "error": e.to_dict()}
        except EmbeddingError as e:
            self.logger.error("Embedding provider failed: %s", e)
            return {"id": request_id, "error": {"code": EMBEDDING_ERROR, "message": str(e)}}
        except Exception as e:  # noqa: BLE001
            self.logger.exception("Unhandled error while serving request")
            return {"id": request_id, "error": {"code": INTERNAL_ERROR, "message": str(e)}}

    def serve_stdio(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        source = stdin or sys.stdin
        sink = stdout or sys.stdout
        for raw in source:
            raw = raw.strip()
            if not raw:
                continue
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                response: dict[str, Any] = {
                    "id": None,
                    "error": {"code": PARSE_ERROR, "message": "Parse error"},
                }
            else:
                response = asyncio.run(self.handle_payload(payload))

            sink.write(json.dumps(response, ensure_ascii=False) + "\n")
            sink.flush()
