"""Trace context for observability across search and retrieval stages."""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class TraceContext:
    """Records per-stage data for one query and optionally persists it.

    Attributes:
        trace_id: Unique identifier for this trace
        started_at: Wall-clock time the trace was created
        stages: Data recorded by each stage, keyed by stage name
        query: Query text being served
        operation: Engine operation ("search", "retrieve", ...)
        log_file: Optional JSONL file that finish() appends to
    """

    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=datetime.now)
    stages: Dict[str, Any] = field(default_factory=dict)
    query: str | None = None
    operation: str | None = None
    log_file: str | None = None
    _started_monotonic: float = field(default_factory=time.perf_counter, repr=False)

    def record_stage(self, stage_name: str, data: Dict[str, Any]) -> None:
        """Record data for a stage, stamped with elapsed milliseconds since start.

        Args:
            stage_name: Stage name (e.g. "keyword_search", "fusion")
            data: Stage-specific data to record
        """
        elapsed_ms = (time.perf_counter() - self._started_monotonic) * 1000.0
        self.stages[stage_name] = {"elapsed_ms": round(elapsed_ms, 3), "data": data}

    def get_stage_data(self, stage_name: str) -> Optional[Dict[str, Any]]:
        stage = self.stages.get(stage_name)
        return stage["data"] if stage is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "started_at": self.started_at.isoformat(),
            "total_latency_ms": round((time.perf_counter() - self._started_monotonic) * 1000.0, 3),
            "operation": self.operation,
            "query": self.query,
            "stages": self.stages,
        }

    def finish(self) -> Dict[str, Any]:
        payload = self.to_dict()
        if self.log_file:
            path = Path(self.log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        return payload


def new_trace(settings: Any, operation: str, query: str) -> TraceContext | None:
    """Create a trace when ``settings.observability.trace_enabled`` is on."""

    observability = getattr(settings, "observability", None)
    if not getattr(observability, "trace_enabled", False):
        return None
    return TraceContext(
        query=query,
        operation=operation,
        log_file=getattr(observability, "trace_file", None),
    )
