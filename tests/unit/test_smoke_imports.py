"""Smoke tests for package imports.

This module verifies that all key packages can be imported successfully.
It serves as a basic sanity check for the project structure.
"""

import pytest


@pytest.mark.unit
class TestSmokeImports:
    """Smoke tests to verify all key packages are importable."""

    def test_import_package(self) -> None:
        import passage_search
        assert passage_search.__version__

    def test_import_core(self) -> None:
        from passage_search import core
        assert core is not None

    def test_import_core_query_engine(self) -> None:
        """The query engine exposes search, fusion and retrieval."""
        from passage_search.core import query_engine
        assert query_engine.HybridSearch is not None
        assert query_engine.PassageRetriever is not None
        assert query_engine.weighted_rrf_fusion is not None

    def test_import_core_response(self) -> None:
        from passage_search.core import response
        assert response.build_context is not None

    def test_import_core_trace(self) -> None:
        from passage_search.core import trace
        assert trace.TraceContext is not None

    def test_import_chunking(self) -> None:
        """Test that the chunking modules can be imported."""
        from passage_search.ingestion.chunking import passage_chunker, passage_quality
        assert passage_chunker.PassageChunker is not None
        assert passage_quality.passage_quality is not None

    def test_import_ingestion_pipeline(self) -> None:
        from passage_search.ingestion import pipeline
        assert pipeline.IngestionPipeline is not None

    def test_import_embedding_providers(self) -> None:
        from passage_search.libs import embedding
        assert {"ollama", "openai"} <= set(embedding.EmbeddingFactory.list_providers())

    def test_import_store(self) -> None:
        from passage_search.libs import store
        assert store is not None

    def test_import_server(self) -> None:
        from passage_search import server
        assert server.EngineServer is not None

    def test_import_observability(self) -> None:
        from passage_search.observability import logger
        assert logger.get_logger is not None
