"""
Metrics: Prometheus-Compatible Counters and Gauges

Provides thread-safe metrics with label dimensions for the session
store layer (operation counts, live session gauge). Export is plain
Prometheus text format; no server is started here.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence


@dataclass(frozen=True)
class MetricLabels:
    """Immutable label set for metric dimensions."""
    labels: tuple[tuple[str, str], ...]

    @classmethod
    def from_dict(cls, d: dict[str, str]) -> MetricLabels:
        return cls(labels=tuple(sorted(d.items())))

    def to_dict(self) -> dict[str, str]:
        return dict(self.labels)


class _LabelledMetric:
    __slots__ = ("_name", "_help", "_label_names", "_values", "_lock")

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> None:
        self._name = name
        self._help = help_text
        self._label_names = tuple(label_names)
        self._values: dict[MetricLabels, float] = defaultdict(float)
        self._lock = threading.Lock()

    def get(self, **labels: str) -> float:
        """Get current value."""
        key = self._make_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def _make_key(self, labels: dict[str, str]) -> MetricLabels:
        filtered = {k: labels.get(k, "") for k in self._label_names}
        return MetricLabels.from_dict(filtered)

    def collect(self) -> list[tuple[dict[str, str], float]]:
        """Snapshot of all label combinations."""
        with self._lock:
            return [(key.to_dict(), value) for key, value in self._values.items()]

    @property
    def name(self) -> str:
        return self._name

    @property
    def help_text(self) -> str:
        return self._help


class Counter(_LabelledMetric):
    """
    Monotonically increasing counter metric.

    Usage:
        saves = Counter("session_store_operations_total", ["operation", "outcome"])
        saves.inc(operation="save", outcome="ok")
    """

    __slots__ = ()

    def inc(self, value: float = 1.0, **labels: str) -> None:
        if value < 0:
            raise ValueError("Counter can only increase")
        key = self._make_key(labels)
        with self._lock:
            self._values[key] += value


class Gauge(_LabelledMetric):
    """Gauge metric that can go up and down."""

    __slots__ = ()

    def set(self, value: float, **labels: str) -> None:
        key = self._make_key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1.0, **labels: str) -> None:
        key = self._make_key(labels)
        with self._lock:
            self._values[key] += value

    def dec(self, value: float = 1.0, **labels: str) -> None:
        self.inc(-value, **labels)


class MetricsCollector:
    """
    Central registry for all metrics.

    Usage:
        collector = MetricsCollector()
        ops = collector.counter("session_store_operations_total", ["operation"])

        # Export to Prometheus
        output = collector.export_prometheus()
    """

    __slots__ = ("_counters", "_gauges", "_lock")

    _instance: Optional[MetricsCollector] = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> MetricsCollector:
        """Get process-wide instance."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def counter(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> Counter:
        """Get or create counter."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, label_names, help_text)
            return self._counters[name]

    def gauge(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> Gauge:
        """Get or create gauge."""
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = Gauge(name, label_names, help_text)
            return self._gauges[name]

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus text format."""
        with self._lock:
            families: list[tuple[str, _LabelledMetric]] = [
                *(("counter", c) for c in self._counters.values()),
                *(("gauge", g) for g in self._gauges.values()),
            ]

        lines: list[str] = []
        for kind, metric in families:
            if metric.help_text:
                lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {kind}")
            for labels, value in metric.collect():
                lines.append(f"{metric.name}{self._format_labels(labels)} {value}")

        return "\n".join(lines)

    def snapshot(self) -> dict[str, Any]:
        """All current values keyed by metric name, for tests and debugging."""
        with self._lock:
            metrics = [*self._counters.values(), *self._gauges.values()]
        return {m.name: m.collect() for m in metrics}

    @staticmethod
    def _format_labels(labels: dict[str, str]) -> str:
        if not labels:
            return ""
        pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"
