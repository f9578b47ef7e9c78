"""
Tracing Configuration

Loads OpenTelemetry settings from environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Environment Variables:
        PULSE_TRACING_ENABLED: Enable tracing (default: false)
        PULSE_TRACING_SERVICE_NAME: Service name on exported spans (default: pulse-docstore)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP collector (console exporter if empty)
    """

    enabled: bool = False
    service_name: str = "pulse-docstore"
    collector_endpoint: str | None = None

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("PULSE_TRACING_ENABLED", "false").lower() in ("true", "1", "yes"),
            service_name=os.environ.get("PULSE_TRACING_SERVICE_NAME", "pulse-docstore"),
            collector_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
        )


# Global config singleton
_config: TracingConfig | None = None


def get_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
