from passage_search.server.errors import EngineError
from passage_search.server.messages import (
    ChunkRequest,
    ContextRequest,
    RetrieveRequest,
    SearchRequest,
    parse_request,
)
from passage_search.server.server import EngineServer

__all__ = [
    "EngineError",
    "EngineServer",
    "SearchRequest",
    "RetrieveRequest",
    "ChunkRequest",
    "ContextRequest",
    "parse_request",
]
