"""CLI entry for ingestion: chunk (and embed) an HTML/text file into a JSON corpus."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from passage_search.core.settings import SettingsError, load_settings
from passage_search.ingestion.pipeline import IngestionPipeline
from passage_search.libs.embedding import EmbeddingError
from passage_search.libs.store import JsonCorpusStore
from passage_search.observability.logger import configure_logging, get_logger


def main() -> None:
    parser = argparse.ArgumentParser(description="Chunk an HTML or text file into passages")
    parser.add_argument("file", help="Path to an HTML or plain-text file")
    parser.add_argument("--url", default="", help="Source URL of the page")
    parser.add_argument("--title", default=None, help="Page title (default: file name)")
    parser.add_argument("--corpus", default=None, help="JSON corpus to add the document to")
    parser.add_argument("--no-embed", action="store_true", help="Skip passage embeddings")
    parser.add_argument("--settings", default="config/settings.yaml", help="Settings file path")
    args = parser.parse_args()

    logger = get_logger("ingest")
    try:
        settings = load_settings(args.settings)
    except SettingsError as e:
        logger.error(str(e))
        raise SystemExit(1) from e
    configure_logging(settings)

    store = None
    if args.corpus:
        corpus_path = Path(args.corpus)
        if not corpus_path.exists():
            corpus_path.parent.mkdir(parents=True, exist_ok=True)
            corpus_path.write_text('{"documents": []}', encoding="utf-8")
        store = JsonCorpusStore(corpus_path)

    pipeline = IngestionPipeline(settings, store=store)
    try:
        document = asyncio.run(
            pipeline.ingest_file(args.file, url=args.url, title=args.title, embed=not args.no_embed)
        )
    except EmbeddingError as e:
        logger.error(str(e))
        raise SystemExit(2) from e

    if store is not None:
        store.save()
        logger.info("Saved corpus to %s (%d documents)", store.path, len(store))
    print(json.dumps(document.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
