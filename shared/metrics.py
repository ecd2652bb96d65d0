"""
Shared metrics configuration for the YApi MCP Access Layer.
"""

from typing import Dict, Any, Optional
import time
from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, start_http_server


class MetricsCollector:
    """Centralized metrics collector for a service.

    Each collector owns its registry unless one is passed in, so several
    clients (or test cases) can coexist in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["yapi_requests_total"] = Counter(
            "yapi_requests_total",
            "Total requests issued to the YApi platform",
            ["endpoint", "outcome"],
            registry=self.registry
        )

        self._metrics["yapi_request_duration_seconds"] = Histogram(
            "yapi_request_duration_seconds",
            "YApi request duration in seconds",
            ["endpoint"],
            registry=self.registry
        )

        self._metrics["yapi_cache_lookups_total"] = Counter(
            "yapi_cache_lookups_total",
            "Read-cache lookups by namespace and result",
            ["namespace", "result"],
            registry=self.registry
        )

        self._metrics["yapi_logins_total"] = Counter(
            "yapi_logins_total",
            "Credential-mode login attempts",
            ["status"],
            registry=self.registry
        )

        self._metrics["tool_calls_total"] = Counter(
            "tool_calls_total",
            "Tool invocations by outcome",
            ["tool", "status"],
            registry=self.registry
        )

    def get_sample_value(self, name: str, **labels) -> float:
        """Current value of a sample, 0.0 when it has never been recorded."""
        value = self.registry.get_sample_value(name, labels)
        return value if value is not None else 0.0

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        start_http_server(port, registry=self.registry)

    @contextmanager
    def time_operation(self, operation_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            if operation_name in self._metrics:
                self._metrics[operation_name].labels(**labels).observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
