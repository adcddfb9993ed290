"""Telemetry instrumentation unit tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from battleboard.engine import board as board_module
from battleboard.engine.board import Board
from battleboard.engine.config import GameConfig, ShipSpec
from battleboard.engine.geometry import Direction, Point
from battleboard.telemetry import config as telemetry_config_module
from battleboard.telemetry import logger as logger_module
from battleboard.telemetry import metrics as metrics_module
from battleboard.telemetry import tracer as tracer_module
from battleboard.telemetry.config import TelemetryConfig

OTEL_ENV_VARS = (
    "BATTLEBOARD_ENABLE_TRACING",
    "BATTLEBOARD_ENABLE_METRICS",
    "BATTLEBOARD_ENABLE_LOGGING",
    "OTEL_TRACES_ENABLED",
    "OTEL_METRICS_ENABLED",
    "OTEL_LOGS_ENABLED",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
    "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
    "OTEL_METRIC_EXPORT_INTERVAL",
    "OTEL_SERVICE_NAME",
    "OTEL_SERVICE_NAMESPACE",
    "OTEL_RESOURCE_ATTRIBUTES",
)


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
    tracer_module._TRACER = None
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METER = None
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}
    logger_module._LOGGERS.clear()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in OTEL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def make_board() -> Board:
    config = GameConfig(n_rows=3, n_cols=3, ships=[ShipSpec(length=2, symbol="A", name="Alpha")])
    return Board(config, owner="player1")


def test_lazy_init_tracer(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert tracer_module._TRACER is provider_instance.get_tracer.return_value

    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(metrics_module, "PeriodicExportingMetricReader", MagicMock())
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module._METER is meter_provider.get_meter.return_value
    reset_singletons()


def test_get_logger_is_cached_per_name() -> None:
    reset_singletons()
    assert logger_module.get_logger("battleboard") is logger_module.get_logger("battleboard")
    assert logger_module.get_logger("other") is not logger_module.get_logger("battleboard")


def test_init_telemetry_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == []


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))

    config = TelemetryConfig(enable_tracing=True, enable_logging=True)
    telemetry_config_module.init_telemetry(config)
    assert calls == ["tr", "lo"]


def test_from_env_derives_endpoints(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    clean_env.setenv("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "http://logs:4317")
    clean_env.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment.environment=test,broken")
    clean_env.setenv("OTEL_SERVICE_NAME", "fleet")

    config = TelemetryConfig.from_env()
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_metrics_endpoint == "http://collector:4317/v1/metrics"
    assert config.otlp_logs_endpoint == "http://logs:4317"
    assert config.enable_tracing and config.enable_metrics and config.enable_logging
    assert config.resource_dict() == {
        "service.name": "fleet",
        "service.namespace": "game",
        "deployment.environment": "test",
    }


def test_from_env_flags_without_endpoints(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("BATTLEBOARD_ENABLE_TRACING", "yes")
    clean_env.setenv("OTEL_METRICS_ENABLED", "0")

    config = TelemetryConfig.from_env()
    assert config.enable_tracing
    assert not config.enable_metrics
    assert not config.enable_logging
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


def test_record_board_metric_reuses_counters(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    meter = MagicMock()
    monkeypatch.setattr(metrics_module, "get_meter", lambda *_: meter)

    metrics_module.record_board_metric("battleboard_rounds_total", 1, {"owner": "player1"})
    metrics_module.record_board_metric("battleboard_rounds_total", 2)

    meter.create_counter.assert_called_once_with("battleboard_rounds_total", unit="1")
    counter = meter.create_counter.return_value
    assert counter.add.call_count == 2
    counter.add.assert_called_with(2, attributes={})
    reset_singletons()


def test_board_operations_emit_spans(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    monkeypatch.setattr(board_module, "tracer", tracer)

    board = make_board()
    board.clear()
    board.block()
    board.unblock()
    board.place_ship(Point(0, 0), 0, Direction.HORIZONTAL)
    board.remove_ship(Point(0, 0), 0, Direction.HORIZONTAL)
    board.attack(Point(1, 1))

    assert tracer.span_names == [
        "board.clear",
        "board.block",
        "board.unblock",
        "board.place_ship",
        "board.remove_ship",
        "board.attack",
    ]
    assert tracer.spans[-1].attributes["shot.outcome"] == "miss"
    assert tracer.spans[-1].attributes["board.owner"] == "player1"


def test_attack_counter_outcomes(monkeypatch: pytest.MonkeyPatch) -> None:
    counter = MagicMock()
    monkeypatch.setattr(board_module, "ATTACK_COUNTER", counter)

    board = make_board()
    board.place_ship(Point(0, 0), 0, Direction.HORIZONTAL)
    board.attack(Point(0, 0))
    board.attack(Point(0, 0))
    board.attack(Point(0, 1))
    board.attack(Point(2, 2))

    outcomes = [call.kwargs["attributes"]["outcome"] for call in counter.add.call_args_list]
    assert outcomes == ["hit", "rejected", "destroyed", "miss"]


def test_placement_counter_reports_reason(monkeypatch: pytest.MonkeyPatch) -> None:
    counter = MagicMock()
    monkeypatch.setattr(board_module, "PLACEMENT_COUNTER", counter)

    board = make_board()
    board.place_ship(Point(0, 0), 0, Direction.HORIZONTAL)
    board.place_ship(Point(1, 0), 0, Direction.HORIZONTAL)

    results = [call.kwargs["attributes"] for call in counter.add.call_args_list]
    assert results[0]["result"] == "success"
    assert results[1] == {"result": "failed", "reason": "already_placed", "owner": "player1"}
