"""
Process-wide HTTP request metrics.
One RequestMetrics instance is built per application and shared by the
recording middleware and the /metrics endpoint.
"""
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    Info,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

# Paths excluded from request metrics and tracing
IGNORED_PATHS = frozenset({"/health", "/metrics"})

LABELS = ("method", "route", "status_code")

DURATION_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST


class RequestMetrics:
    """Duration histogram and request counter keyed by {method, route, status_code}."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        GCCollector(registry=self.registry)

        self.target_info = Info("target", "Target metadata", registry=self.registry)
        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            LABELS,
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )
        self.requests_total = Counter(
            "http_requests",
            "Total HTTP requests",
            LABELS,
            registry=self.registry,
        )

    def describe_service(self, name: str, version: str, environment: str, namespace: str) -> None:
        self.target_info.info(
            {
                "service_name": name,
                "service_version": version,
                "service_namespace": namespace,
                "deployment_environment": environment,
            }
        )

    def observe(self, method: str, route: str, status_code: int, duration_seconds: float) -> None:
        labels = {"method": method, "route": route, "status_code": str(status_code)}
        self.request_duration.labels(**labels).observe(duration_seconds)
        self.requests_total.labels(**labels).inc()

    def render(self) -> bytes:
        """Prometheus text exposition of every metric in this registry."""
        return generate_latest(self.registry)
