"""Public telemetry helpers for the Battleship server."""

from __future__ import annotations

from .config import TelemetryConfig, init_telemetry, load_telemetry_config, shutdown_telemetry
from .events import EventSink, LoggingEventSink, get_event_sink
from .logger import get_logger, init_logging
from .metrics import get_meter, init_metrics, record_metric
from .tracer import get_tracer, init_tracing

__all__ = [
    "EventSink",
    "LoggingEventSink",
    "TelemetryConfig",
    "get_event_sink",
    "get_logger",
    "get_meter",
    "get_tracer",
    "init_logging",
    "init_metrics",
    "init_telemetry",
    "init_tracing",
    "load_telemetry_config",
    "record_metric",
    "shutdown_telemetry",
]
