"""
Unit Tests: Configuration and Observability

Tests:
    - SessionConfig environment loading and validation
    - JSON log formatting with context propagation
    - Counter/Gauge semantics and Prometheus export
"""

import io
import json
import logging
import sys

import pytest

from sessioncore.core.config import SessionConfig
from sessioncore.core.errors import ConfigError, ErrorCode
from sessioncore.core.sync import PoisonPolicy
from sessioncore.observability.logging import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    setup_logging,
    setup_logging_from_config,
)
from sessioncore.observability.metrics import MetricsCollector


ENV_VARS = (
    "SESSIONCORE_DEFAULT_TTL_SECONDS",
    "SESSIONCORE_COMPRESSION_THRESHOLD_BYTES",
    "SESSIONCORE_POISON_POLICY",
    "SESSIONCORE_LOG_LEVEL",
    "SESSIONCORE_LOG_JSON",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSessionConfig:
    """Tests for configuration loading."""

    def test_defaults(self, clean_env):
        config = SessionConfig.from_env().unwrap()
        assert config == SessionConfig()
        assert config.default_ttl_seconds is None
        assert config.poison_policy is PoisonPolicy.DEGRADE

    def test_env_overrides(self, clean_env):
        clean_env.setenv("SESSIONCORE_DEFAULT_TTL_SECONDS", "1800")
        clean_env.setenv("SESSIONCORE_COMPRESSION_THRESHOLD_BYTES", "64")
        clean_env.setenv("SESSIONCORE_POISON_POLICY", "RAISE")
        clean_env.setenv("SESSIONCORE_LOG_LEVEL", "debug")
        clean_env.setenv("SESSIONCORE_LOG_JSON", "no")

        config = SessionConfig.from_env().unwrap()
        assert config.default_ttl_seconds == 1800.0
        assert config.compression_threshold_bytes == 64
        assert config.poison_policy is PoisonPolicy.RAISE
        assert config.log_level == "DEBUG"
        assert config.log_json is False

    @pytest.mark.parametrize("name, value, field_name", [
        ("SESSIONCORE_DEFAULT_TTL_SECONDS", "soon", "default_ttl_seconds"),
        ("SESSIONCORE_DEFAULT_TTL_SECONDS", "-5", "default_ttl_seconds"),
        ("SESSIONCORE_COMPRESSION_THRESHOLD_BYTES", "1.5k", "compression_threshold_bytes"),
        ("SESSIONCORE_POISON_POLICY", "ignore", "poison_policy"),
        ("SESSIONCORE_LOG_JSON", "maybe", "log_json"),
        ("SESSIONCORE_LOG_LEVEL", "LOUD", "log_level"),
    ])
    def test_malformed_env(self, clean_env, name, value, field_name):
        clean_env.setenv(name, value)
        result = SessionConfig.from_env()
        assert result.is_err()
        assert isinstance(result.error, ConfigError)
        assert result.error.code is ErrorCode.INTERNAL_CONFIGURATION_ERROR
        assert result.error.context["field"] == field_name

    def test_validate(self):
        assert SessionConfig(default_ttl_seconds=60).validate().is_ok()
        assert SessionConfig(default_ttl_seconds=0).validate().is_err()
        assert SessionConfig(compression_threshold_bytes=-1).validate().is_err()

    def test_immutable(self):
        config = SessionConfig()
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"


class TestStructuredLogging:
    """Tests for JSON log output."""

    @pytest.fixture
    def stream(self):
        buffer = io.StringIO()
        setup_logging(LogLevel.DEBUG, json_output=True, stream=buffer)
        yield buffer
        logging.getLogger("sessioncore").handlers.clear()

    def _lines(self, stream):
        return [json.loads(line) for line in stream.getvalue().splitlines()]

    def test_fields_are_emitted(self, stream):
        StructuredLogger("sessioncore.test").info("Session saved", session_id="abc")

        (record,) = self._lines(stream)
        assert record["message"] == "Session saved"
        assert record["level"] == "INFO"
        assert record["logger"] == "sessioncore.test"
        assert record["session_id"] == "abc"
        assert "@timestamp" in record

    def test_context_propagation(self, stream):
        logger = StructuredLogger("sessioncore.test")
        with logger.context(request_id="req-1"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = self._lines(stream)
        assert inside["request_id"] == "req-1"
        assert "request_id" not in outside

    def test_with_extra(self, stream):
        child = StructuredLogger("sessioncore.test").with_extra(component="store")
        child.warning("slow save", duration_ms=12)

        (record,) = self._lines(stream)
        assert record["component"] == "store"
        assert record["duration_ms"] == 12

    def test_level_filtering(self):
        buffer = io.StringIO()
        setup_logging(LogLevel.WARNING, json_output=True, stream=buffer)
        try:
            logger = StructuredLogger("sessioncore.test")
            logger.info("hidden")
            logger.error("shown")
        finally:
            logging.getLogger("sessioncore").handlers.clear()
        assert "hidden" not in buffer.getvalue()
        assert "shown" in buffer.getvalue()

    def test_formatter_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.getLogger("x").makeRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exception"]

    def test_setup_from_config(self):
        buffer = io.StringIO()
        setup_logging_from_config(SessionConfig(log_level="ERROR", log_json=False), buffer)
        try:
            logger = StructuredLogger("sessioncore.test")
            logger.warning("hidden")
            logger.error("plain text")
        finally:
            logging.getLogger("sessioncore").handlers.clear()
        output = buffer.getvalue()
        assert "hidden" not in output
        assert "| ERROR    | sessioncore.test | plain text" in output

    def test_log_level_from_name(self):
        assert LogLevel.from_name(" warning ") is LogLevel.WARNING


class TestMetrics:
    """Tests for the metrics registry."""

    def test_counter(self):
        collector = MetricsCollector()
        ops = collector.counter("ops_total", ["operation"], "Operations")
        ops.inc(operation="save")
        ops.inc(2, operation="save")
        ops.inc(operation="load")

        assert ops.get(operation="save") == 3
        assert ops.get(operation="load") == 1
        assert ops.get(operation="delete") == 0
        with pytest.raises(ValueError):
            ops.inc(-1, operation="save")

    def test_gauge(self):
        gauge = MetricsCollector().gauge("live")
        gauge.set(5)
        gauge.inc()
        gauge.dec(3)
        assert gauge.get() == 3

    def test_get_or_create(self):
        collector = MetricsCollector()
        assert collector.counter("a") is collector.counter("a")
        assert collector.gauge("b") is collector.gauge("b")

    def test_singleton(self):
        assert MetricsCollector.get_instance() is MetricsCollector.get_instance()

    def test_prometheus_export(self):
        collector = MetricsCollector()
        collector.counter("ops_total", ["operation"], "Operations").inc(operation="save")
        collector.gauge("live").set(2)

        text = collector.export_prometheus()
        assert "# HELP ops_total Operations" in text
        assert "# TYPE ops_total counter" in text
        assert 'ops_total{operation="save"} 1.0' in text
        assert "# TYPE live gauge" in text
        assert "live 2" in text
