"""Tracing helpers built on OpenTelemetry."""

from __future__ import annotations

import sys
import threading
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Tracer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import TelemetryConfig


_TRACERS: dict[str, Tracer] = {}
_TRACERS_LOCK = threading.Lock()
_TRACER_PROVIDER: TracerProvider | None = None


def get_tracer(name: str = "battleship_server") -> Tracer:
    """Return the tracer for ``name``, one per instrumentation scope.

    Before ``init_tracing`` runs this is the API proxy tracer, which starts
    recording once a provider is installed.
    """
    with _TRACERS_LOCK:
        tracer = _TRACERS.get(name)
        if tracer is None:
            source = _TRACER_PROVIDER.get_tracer if _TRACER_PROVIDER is not None else trace.get_tracer
            tracer = source(name)
            _TRACERS[name] = tracer
        return tracer


def init_tracing(config: TelemetryConfig) -> Tracer:
    """Install a TracerProvider for the service and return its root tracer.

    Without an OTLP endpoint, spans go to stderr so stdout stays free for
    command output.
    """
    global _TRACER_PROVIDER

    attributes = {
        "service.name": config.service_name,
        "service.namespace": config.service_namespace,
    }
    attributes.update(config.resource_attributes)
    provider = TracerProvider(resource=Resource.create(attributes))

    if config.otlp_traces_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.otlp_traces_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    else:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))

    trace.set_tracer_provider(provider)
    with _TRACERS_LOCK:
        _TRACER_PROVIDER = provider
        _TRACERS.clear()
    return get_tracer(config.service_name)


def shutdown_tracing() -> None:
    """Flush pending spans and release the provider installed by ``init_tracing``."""
    global _TRACER_PROVIDER
    with _TRACERS_LOCK:
        provider, _TRACER_PROVIDER = _TRACER_PROVIDER, None
        _TRACERS.clear()
    if provider is None:
        return
    provider.force_flush()
    provider.shutdown()
