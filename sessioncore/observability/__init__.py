"""
Observability module: Metrics and structured logging.
"""

from sessioncore.observability.metrics import MetricsCollector, Counter, Gauge
from sessioncore.observability.logging import (
    StructuredLogger,
    JsonFormatter,
    LogLevel,
    setup_logging,
    setup_logging_from_config,
)

__all__ = [
    "MetricsCollector",
    "Counter",
    "Gauge",
    "StructuredLogger",
    "JsonFormatter",
    "LogLevel",
    "setup_logging",
    "setup_logging_from_config",
]
