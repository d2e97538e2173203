"""Application entrypoint.

Queries a JSON corpus from the command line, or serves JSON-lines requests
over stdio with ``--serve-stdio``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from passage_search.core.settings import SettingsError, load_settings
from passage_search.libs.store import JsonCorpusStore
from passage_search.observability.logger import configure_logging, get_logger
from passage_search.server import EngineServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Hybrid passage search over a JSON corpus")
    parser.add_argument("--settings", default="config/settings.yaml", help="Settings file path")
    parser.add_argument("--corpus", required=True, help="JSON corpus file")
    parser.add_argument("--query", default=None, help="Query text")
    parser.add_argument(
        "--type",
        dest="request_type",
        default="search",
        choices=("search", "retrieve", "context"),
        help="Request kind for --query",
    )
    parser.add_argument("--mode", default="hybrid", choices=("semantic", "keyword", "hybrid"))
    parser.add_argument("-k", type=int, default=None, help="Number of results")
    parser.add_argument("--serve-stdio", action="store_true", help="Serve JSON lines on stdio")
    args = parser.parse_args()

    logger = get_logger("main")
    try:
        settings = load_settings(args.settings)
    except SettingsError as e:
        logger.error(str(e))
        raise SystemExit(1) from e
    configure_logging(settings)

    store = JsonCorpusStore(args.corpus)
    logger.info(
        "Settings loaded (embedding=%s/%s, documents=%d)",
        settings.embedding.provider,
        settings.embedding.model,
        len(store),
    )
    server = EngineServer(settings, store)

    if args.serve_stdio:
        logger.info("Serving requests on stdio")
        server.serve_stdio()
        return

    if not args.query:
        parser.error("--query is required unless --serve-stdio is given")

    payload: dict[str, object] = {"type": args.request_type, "query": args.query}
    if args.request_type == "search":
        payload["mode"] = args.mode
        if args.k is not None:
            payload["k"] = args.k
    elif args.k is not None:
        payload["top_k"] = args.k

    response = asyncio.run(server.handle_payload(payload))
    print(json.dumps(response, ensure_ascii=False, indent=2))
    if "error" in response:
        raise SystemExit(2)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(130)
