"""
Prometheus metrics collection.

In-memory counters, Prometheus handles storage.
"""

import time

import structlog
from prometheus_client import Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for MeteorStack.
    """

    def __init__(self) -> None:
        # Service info
        self.service_info = Info(
            "meteorstack_service",
            "MeteorStack service information"
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "meteorstack",
        })

        # Request metrics
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"]
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        # Admission metrics
        self.rate_limit_rejections_total = Counter(
            "rate_limit_rejections_total",
            "Requests rejected by a rate limit gate",
            ["gate"]
        )

        self.tracked_callers = Gauge(
            "rate_limit_tracked_callers",
            "Caller keys currently held by the rate limiter"
        )

        # Dataset metrics
        self.dataset_loads_total = Counter(
            "dataset_loads_total",
            "Dataset loads from the remote store",
            ["outcome"]
        )

        self.dataset_load_duration = Histogram(
            "dataset_load_duration_seconds",
            "Dataset load duration in seconds",
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
        )

        self.dataset_records = Gauge(
            "dataset_records",
            "Records held by the dataset cache"
        )

        # Query metrics
        self.search_results = Histogram(
            "search_results_count",
            "Number of records returned per search",
            buckets=[0, 1, 5, 10, 25, 50, 100, 300, 1000]
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds"
        )

        self._start_time = time.monotonic()

    def record_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float
    ) -> None:
        """Record HTTP request metrics."""
        self.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration_seconds)

        self.uptime_seconds.set(time.monotonic() - self._start_time)

    def record_rate_limit_rejection(self, gate: str) -> None:
        self.rate_limit_rejections_total.labels(gate=gate).inc()

    def update_tracked_callers(self, count: int) -> None:
        self.tracked_callers.set(count)

    def record_dataset_load(self, outcome: str, duration_seconds: float, records: int) -> None:
        """Record a dataset load attempt."""
        self.dataset_loads_total.labels(outcome=outcome).inc()
        self.dataset_load_duration.observe(duration_seconds)
        if outcome == "success":
            self.dataset_records.set(records)

    def record_search(self, results_count: int) -> None:
        self.search_results.observe(results_count)
