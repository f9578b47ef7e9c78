"""
Tracer used around storage operations.

get_tracer() hands out an OpenTelemetry-backed tracer once init_tracing()
has installed an SDK provider, and a NoOpTracer in every other case, so
the orchestrator can open spans unconditionally.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import StatusCode

from pulse_docstore.observability.config import get_config

_STATUS_CODES = {"ok": StatusCode.OK, "error": StatusCode.ERROR}


class SpanProtocol(Protocol):
    def set_attribute(self, key: str, value: Any) -> None: ...

    def set_status(self, status: str, description: str | None = None) -> None: ...

    def record_exception(self, exception: BaseException) -> None: ...


class TracerProtocol(Protocol):
    def start_span(
        self, name: str, attributes: dict[str, Any] | None = None
    ) -> Iterator[SpanProtocol]: ...


# ---------------------------------------------------------------------------
# DISABLED TRACING
# ---------------------------------------------------------------------------


class NoOpSpan:
    """Accepts every span call and records nothing."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_status(self, status: str, description: str | None = None) -> None:
        pass

    def record_exception(self, exception: BaseException) -> None:
        pass


class NoOpTracer:
    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[NoOpSpan]:
        yield NoOpSpan()


# ---------------------------------------------------------------------------
# OPENTELEMETRY
# ---------------------------------------------------------------------------


class OTelSpan:
    """Adapts an OTel span to SpanProtocol ("ok"/"error" status strings)."""

    def __init__(self, span: Any):
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, value)

    def set_status(self, status: str, description: str | None = None) -> None:
        self._span.set_status(_STATUS_CODES.get(status, StatusCode.ERROR), description)

    def record_exception(self, exception: BaseException) -> None:
        self._span.record_exception(exception)


class OTelTracer:
    def __init__(self, tracer: Any):
        self._tracer = tracer

    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[OTelSpan]:
        with self._tracer.start_as_current_span(name, attributes=attributes) as span:
            yield OTelSpan(span)


_tracer: TracerProtocol | None = None


def get_tracer() -> TracerProtocol:
    """Process-wide tracer, chosen on first use."""
    global _tracer
    if _tracer is None:
        config = get_config()
        installed = isinstance(trace.get_tracer_provider(), TracerProvider)
        if config.enabled and installed:
            _tracer = OTelTracer(trace.get_tracer(config.service_name))
        else:
            _tracer = NoOpTracer()
    return _tracer


def reset_tracer() -> None:
    """Forget the cached tracer (init_tracing and tests call this)."""
    global _tracer
    _tracer = None
