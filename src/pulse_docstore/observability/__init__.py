"""
Observability Module - OpenTelemetry tracing for storage operations.

USAGE:
------
# At application startup:
from pulse_docstore.observability import init_tracing

init_tracing()  # Installs a tracer provider if PULSE_TRACING_ENABLED=true

# In code that needs tracing:
from pulse_docstore.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("storage.search", attributes={"storage.top_k": 5}) as span:
    # ... do work ...
    span.set_attribute("storage.backend", "remote")
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from pulse_docstore.observability.attributes import (
    STORAGE_BACKEND,
    STORAGE_CHUNK_COUNT,
    STORAGE_FALLBACK,
    STORAGE_FILE_NAME,
    STORAGE_OPERATION,
    STORAGE_RESULT_COUNT,
    STORAGE_TOP_K,
    STORAGE_USER_ID,
    storage_operation_attributes,
)
from pulse_docstore.observability.config import (
    TracingConfig,
    get_config,
    reset_config,
)
from pulse_docstore.observability.tracer import (
    NoOpSpan,
    NoOpTracer,
    SpanProtocol,
    TracerProtocol,
    get_tracer,
    reset_tracer,
)

logger = logging.getLogger(__name__)

_tracing_initialized = False


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Install an OpenTelemetry tracer provider.

    Call once at application startup. Spans go to the OTLP endpoint when
    one is configured, otherwise to the console.

    Returns:
        True if tracing was initialized, False if disabled or failed
    """
    global _tracing_initialized
    if _tracing_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    try:
        if config.collector_endpoint:
            exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
            logger.info(f"Exporting spans to {config.collector_endpoint}")
        else:
            exporter = ConsoleSpanExporter()
            logger.info("Exporting spans to console")

        provider = TracerProvider(resource=Resource.create({"service.name": config.service_name}))
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}")
        return False

    reset_tracer()
    _tracing_initialized = True
    return True


def shutdown_tracing() -> None:
    """Flush and shut down the tracer provider."""
    global _tracing_initialized

    if not _tracing_initialized:
        return

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        try:
            provider.shutdown()
        except Exception as e:
            logger.warning(f"Error shutting down tracing: {e}")

    reset_tracer()
    reset_config()
    _tracing_initialized = False


__all__ = [
    # Initialization
    "init_tracing",
    "shutdown_tracing",
    # Config
    "TracingConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "STORAGE_BACKEND",
    "STORAGE_CHUNK_COUNT",
    "STORAGE_FALLBACK",
    "STORAGE_FILE_NAME",
    "STORAGE_OPERATION",
    "STORAGE_RESULT_COUNT",
    "STORAGE_TOP_K",
    "STORAGE_USER_ID",
    "storage_operation_attributes",
]
