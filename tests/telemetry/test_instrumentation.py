"""Telemetry instrumentation unit tests."""

from __future__ import annotations

import logging
import sys
from unittest.mock import MagicMock

import pytest
from battleship_server.engine import board as board_module
from battleship_server.engine.board import Board
from battleship_server.engine.position import Position
from battleship_server.engine.ship import Ship
from battleship_server.telemetry import config as telemetry_config_module
from battleship_server.telemetry import logger as logger_module
from battleship_server.telemetry import metrics as metrics_module
from battleship_server.telemetry import tracer as tracer_module
from battleship_server.telemetry.config import TelemetryConfig
from battleship_server.telemetry.events import LoggingEventSink, get_event_sink

OTEL_ENV = [
    "BATTLESHIP_SERVER_ENABLE_TRACING",
    "BATTLESHIP_SERVER_ENABLE_METRICS",
    "BATTLESHIP_SERVER_ENABLE_LOGGING",
    "BATTLESHIP_SERVER_LOG_LEVEL",
    "OTEL_TRACES_ENABLED",
    "OTEL_METRICS_ENABLED",
    "OTEL_LOGS_ENABLED",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
    "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
    "OTEL_SERVICE_NAME",
    "OTEL_SERVICE_NAMESPACE",
    "OTEL_RESOURCE_ATTRIBUTES",
]


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.attributes: dict[str, object] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, key, value):
        self.attributes[key] = value


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []
        self.spans: list[DummySpan] = []

    def start_as_current_span(self, name: str):
        span = DummySpan(self.span_names, name)
        self.spans.append(span)
        return span


def reset_singletons() -> None:
    tracer_module._TRACERS.clear()
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METER = None
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}
    logger_module._LOGGER = None


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in OTEL_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_lazy_init_tracer_and_meter(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()
    assert tracer_module.get_tracer("a") is not tracer_module.get_tracer("b")

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    root = tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert root is provider_instance.get_tracer.return_value
    tracer_module.get_tracer("battleship_server.engine.board")
    provider_instance.get_tracer.assert_any_call("battleship_server.engine.board")

    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module._METER is meter_provider.get_meter.return_value
    reset_singletons()


def test_record_metric_reuses_counters(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    meter = MagicMock()
    monkeypatch.setattr(metrics_module, "get_meter", lambda *_: meter)

    metrics_module.record_metric("battleship_server_attacks", 1, {"outcome": "hit"})
    metrics_module.record_metric("battleship_server_attacks", 1, {"outcome": "miss"})

    meter.create_counter.assert_called_once_with("battleship_server_attacks", unit="1")
    counter = meter.create_counter.return_value
    assert counter.add.call_count == 2
    reset_singletons()


def test_logging_init_without_exporter() -> None:
    reset_singletons()
    logger = logger_module.get_logger()
    assert logger_module.init_logging(TelemetryConfig(log_level="warning")) is logger
    assert logger.level == logging.WARNING
    logger.setLevel(logging.INFO)
    reset_singletons()


def test_logging_init_with_exporter(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    exporter = MagicMock()
    install = MagicMock()
    monkeypatch.setattr(logger_module, "OTLPLogExporter", exporter)
    monkeypatch.setattr(logger_module, "LoggerProvider", MagicMock())
    monkeypatch.setattr(logger_module, "LoggingHandler", MagicMock())
    monkeypatch.setattr(logger_module, "set_logger_provider", MagicMock())
    monkeypatch.setattr(logger_module, "_install_otlp_handler", install)

    logger_module.init_logging(
        TelemetryConfig(enable_logging=True, otlp_logs_endpoint="http://collector:4317")
    )

    exporter.assert_called_once_with(endpoint="http://collector:4317", insecure=True)
    install.assert_called_once()
    reset_singletons()


def test_init_telemetry_only_logs_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == ["lo"]


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig(enable_tracing=True, enable_metrics=True))
    assert calls == ["tr", "me", "lo"]


def test_from_env_reads_endpoints_and_attributes(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    clean_env.setenv("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "http://logs:4317")
    clean_env.setenv("OTEL_SERVICE_NAME", "fleet")
    clean_env.setenv("OTEL_RESOURCE_ATTRIBUTES", "env=test, region = eu ,broken")
    clean_env.setenv("BATTLESHIP_SERVER_LOG_LEVEL", "debug")

    config = TelemetryConfig.from_env()

    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_metrics_endpoint == "http://collector:4317/v1/metrics"
    assert config.otlp_logs_endpoint == "http://logs:4317"
    assert config.enable_tracing and config.enable_metrics and config.enable_logging
    assert config.service_name == "fleet"
    assert config.resource_attributes == {"env": "test", "region": "eu"}
    assert config.log_level == "DEBUG"
    assert TelemetryConfig.from_env(log_level="ERROR").log_level == "ERROR"


def test_from_env_flags_without_endpoints(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("BATTLESHIP_SERVER_ENABLE_TRACING", "yes")
    clean_env.setenv("OTEL_METRICS_ENABLED", "0")

    config = TelemetryConfig.from_env()

    assert config.enable_tracing is True
    assert config.enable_metrics is False
    assert config.enable_logging is False
    assert config.otlp_traces_endpoint is None


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(cls, **overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(TelemetryConfig, "from_env", classmethod(fake_from_env))

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_logging_event_sink_passes_fields_as_extra(caplog: pytest.LogCaptureFixture) -> None:
    sink = get_event_sink("battleship_server.tests")
    assert isinstance(sink, LoggingEventSink)

    with caplog.at_level(logging.INFO, logger="battleship_server.tests"):
        sink.info("attack_hit", board_id="b1", x=2, y=3)
        sink.warning("board_not_found", board_id="b2")

    hit, missing = caplog.records
    assert (hit.levelno, hit.getMessage(), hit.x, hit.y) == (logging.INFO, "attack_hit", 2, 3)
    assert (missing.levelno, missing.board_id) == (logging.WARNING, "b2")


def test_board_emits_spans_and_metrics(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    metric_calls: list[tuple[str, float, dict | None]] = []
    monkeypatch.setattr(board_module, "tracer", tracer)
    monkeypatch.setattr(
        board_module,
        "record_metric",
        lambda name, value=1, attrs=None: metric_calls.append((name, value, attrs)),
    )

    board = Board(10, events=MagicMock())
    board.place_ship(Ship([Position(0, 0)]))
    board.place_ship(Ship([Position(0, 0)]))
    board.apply_attack(Position(0, 0))
    board.apply_attack(Position(0, 0))

    assert tracer.span_names == [
        "board.place_ship",
        "board.place_ship",
        "board.apply_attack",
        "board.apply_attack",
    ]
    assert tracer.spans[1].attributes["placement.result"] == "overlap"
    assert tracer.spans[2].attributes["attack.outcome"] == "sunk"
    assert metric_calls == [
        ("battleship_server_ship_placements", 1, {"result": "ok"}),
        ("battleship_server_ship_placements", 1, {"result": "overlap"}),
        ("battleship_server_attacks", 1, {"outcome": "sunk"}),
        ("battleship_server_attacks", 1, {"outcome": "repeat"}),
    ]


def test_shutdown_flushes_installed_providers() -> None:
    reset_singletons()
    tracer_provider = MagicMock()
    meter_provider = MagicMock()
    tracer_module._TRACER_PROVIDER = tracer_provider
    metrics_module._METER_PROVIDER = meter_provider

    telemetry_config_module.shutdown_telemetry()
    telemetry_config_module.shutdown_telemetry()

    tracer_provider.force_flush.assert_called_once()
    tracer_provider.shutdown.assert_called_once()
    meter_provider.shutdown.assert_called_once()
    assert tracer_module._TRACER_PROVIDER is None
    assert metrics_module._METER_PROVIDER is None


def test_console_spans_go_to_stderr(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    console = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock())
    monkeypatch.setattr(tracer_module, "SimpleSpanProcessor", MagicMock())
    monkeypatch.setattr(tracer_module, "ConsoleSpanExporter", console)
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())

    tracer_module.init_tracing(TelemetryConfig(enable_tracing=True))

    console.assert_called_once_with(out=sys.stderr)
    reset_singletons()
