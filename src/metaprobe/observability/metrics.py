"""
Defines and manages Prometheus metrics for the application.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test reloads, multiple services in one process)
# must not raise a duplicate registration error.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        # Counters register under their `_total` suffixed name as well
        for registered in (name, f"{name}_total"):
            existing = _PROM_REGISTRY._names_to_collectors.get(registered)
            if existing is not None:
                return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "fetch_total": Counter(
            "metaprobe_fetch_total",
            "Extraction attempts by strategy and outcome",
            ["method", "outcome"],
        ),
        "fetch_latency_seconds": Histogram(
            "metaprobe_fetch_latency_seconds",
            "Wall-clock time of a single extraction attempt",
            ["method"],
            buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
        ),
        "cache_lookups_total": Counter(
            "metaprobe_cache_lookups_total",
            "Cache lookups by result",
            ["result"],
        ),
        "render_fallbacks_total": Counter(
            "metaprobe_render_fallbacks_total",
            "Static extractions that fell back to rendering",
        ),
        "render_pages_in_flight": Gauge(
            "metaprobe_render_pages_in_flight",
            "Browser pages currently open",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def increment(name: str, value: float = 1.0, labels: Dict[str, Any] | None = None) -> None:
    """Increment a counter metric."""
    metric = METRICS.get(name)
    if metric is None:
        return
    if labels is not None:
        metric.labels(**labels).inc(value)
    else:
        metric.inc(value)


def observe(name: str, value: float, labels: Dict[str, Any] | None = None) -> None:
    """Observe a histogram metric."""
    metric = METRICS.get(name)
    if metric is None:
        return
    if labels is not None:
        metric.labels(**labels).observe(value)
    else:
        metric.observe(value)


def start_metrics_server(port: int) -> None:
    """Expose METRICS over HTTP for Prometheus scraping."""
    start_http_server(port)
