"""
Trace Module.

This package contains tracing components:
- Trace context
"""

from passage_search.core.trace.trace_context import TraceContext, new_trace

__all__ = ["TraceContext", "new_trace"]
