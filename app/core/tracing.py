"""
Trace context: one named correlation span around a whole workflow run.

Observability only. The span is bound to a ContextVar so code awaited inside
the run (LLM calls, guardrails) can read the workflow id without it being
passed around, and it is closed exactly once on every exit path.
"""

import logging
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class Trace:
    name: str
    workflow_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    trace_id: str = field(default_factory=lambda: f"trace_{uuid.uuid4().hex}")
    started_at: float = field(default_factory=time.monotonic)
    outcome: str = ""
    closed: bool = False

    def set_outcome(self, outcome: str) -> None:
        self.outcome = outcome

    def request_metadata(self) -> dict[str, str]:
        """String metadata suitable for attaching to outbound API requests."""
        out = {str(k): str(v) for k, v in self.metadata.items()}
        out["workflow_id"] = self.workflow_id
        out["trace_id"] = self.trace_id
        return out


_current_trace: ContextVar[Trace | None] = ContextVar("current_trace", default=None)


def current_trace() -> Trace | None:
    return _current_trace.get()


def current_trace_id() -> str:
    active = _current_trace.get()
    return active.trace_id if active else "-"


@contextmanager
def trace(name: str, workflow_id: str, metadata: dict[str, Any] | None = None) -> Iterator[Trace]:
    """Open a span for the duration of the ``with`` block."""
    span = Trace(name=name, workflow_id=workflow_id, metadata=dict(metadata or {}))
    token = _current_trace.set(span)
    logger.info("[trace:start] name=%r workflow_id=%s trace_id=%s", name, workflow_id, span.trace_id)
    try:
        yield span
    except BaseException as exc:
        if not span.outcome:
            span.outcome = f"error:{type(exc).__name__}"
        raise
    finally:
        span.closed = True
        _current_trace.reset(token)
        elapsed_ms = (time.monotonic() - span.started_at) * 1000
        logger.info(
            "[trace:end] name=%r trace_id=%s outcome=%s elapsed_ms=%.1f",
            name,
            span.trace_id,
            span.outcome or "done",
            elapsed_ms,
        )
