"""Metrics collection for the hybrid search services.

Provides a thin convenience wrapper around ``prometheus_client`` so the search
API and the backfill job record HTTP, search, embedding, and backfill metrics
consistently.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per service (can be injected for testing)
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for search services.

    Parameters
    - service_name: Logical name used for scoping
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.search_requests = Counter(
            'search_requests_total',
            'Total search requests',
            ['path'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'search_duration_seconds',
            'Search duration',
            ['path'],
            registry=self.registry
        )

        self.search_failures = Counter(
            'search_failures_total',
            'Failed search requests',
            ['path', 'reason'],
            registry=self.registry
        )

        self.embedding_requests = Counter(
            'embedding_requests_total',
            'Total embedding provider requests',
            ['model_name', 'status'],
            registry=self.registry
        )

        self.embedding_duration = Histogram(
            'embedding_duration_seconds',
            'Embedding provider round-trip duration',
            ['model_name'],
            registry=self.registry
        )

        self.backfill_items = Counter(
            'backfill_items_total',
            'Documents processed by the embedding backfill job',
            ['status'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_search(self, path: str, duration: float) -> None:
        """Record a completed search on the ``fulltext`` or ``semantic`` path."""
        self.search_requests.labels(path=path).inc()
        self.search_duration.labels(path=path).observe(duration)

    def record_search_failure(self, path: str, reason: str) -> None:
        """Record a failed search; ``reason`` is ``datastore`` or ``embedding``."""
        self.search_failures.labels(path=path, reason=reason).inc()

    def record_embedding(
        self,
        model_name: str,
        duration: float,
        status: str = "success"
    ) -> None:
        """Record an embedding provider round-trip."""
        self.embedding_requests.labels(model_name=model_name, status=status).inc()
        self.embedding_duration.labels(model_name=model_name).observe(duration)

    def record_backfill_item(self, status: str) -> None:
        """Record one backfill item as ``updated`` or ``failed``."""
        self.backfill_items.labels(status=status).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create metrics collector for a service.

    Returns a process-wide singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
