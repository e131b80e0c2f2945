"""PrometheusMetrics — MetricsPort implementation backed by prometheus_client."""

from __future__ import annotations

import logging
import socket
from datetime import datetime
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, ProcessCollector

if TYPE_CHECKING:
    from image_cleanup.domain.ports import MetricsPort

logger = logging.getLogger(__name__)

NAMESPACE = "image_cleanup"


class PrometheusMetrics:
    """Cleanup and HTTP metrics registered on a private CollectorRegistry.

    Every series carries a ``hostname`` label so scrapes from many hosts can
    be aggregated. The registry is exposed for the /metrics endpoint.
    """

    if TYPE_CHECKING:
        _protocol_check: MetricsPort

    def __init__(self, registry: CollectorRegistry | None = None, hostname: str | None = None) -> None:
        self._registry = registry if registry is not None else CollectorRegistry()
        self._hostname = hostname or _local_hostname()

        self._images_removed = Counter(
            "removed", "The total number of images removed", ["hostname"], namespace=NAMESPACE, registry=self._registry
        )
        self._images_skipped = Counter(
            "skipped", "The total number of images skipped", ["hostname"], namespace=NAMESPACE, registry=self._registry
        )
        self._cleanup_errors = Counter(
            "errors", "The total number of cleanup errors", ["hostname"], namespace=NAMESPACE, registry=self._registry
        )
        self._cleanup_duration = Histogram(
            "duration_seconds",
            "Time spent running image cleanup",
            ["hostname"],
            namespace=NAMESPACE,
            registry=self._registry,
        )
        self._last_cleanup_time = Gauge(
            "last_run_timestamp",
            "Timestamp of the last cleanup run",
            ["hostname"],
            namespace=NAMESPACE,
            registry=self._registry,
        )
        self._http_requests = Counter(
            "http_requests",
            "Total number of HTTP requests",
            ["hostname", "code", "method", "path"],
            namespace=NAMESPACE,
            registry=self._registry,
        )
        self._http_timeouts = Counter(
            "http_request_timeouts",
            "Total number of HTTP request timeouts",
            ["hostname", "method", "path"],
            namespace=NAMESPACE,
            registry=self._registry,
        )
        self._http_errors = Counter(
            "http_request_errors",
            "Total number of HTTP request errors",
            ["hostname", "code", "method", "path", "error_type"],
            namespace=NAMESPACE,
            registry=self._registry,
        )
        ProcessCollector(registry=self._registry)

        logger.info("Prometheus metrics initialized (hostname=%s)", self._hostname)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def hostname(self) -> str:
        return self._hostname

    def inc_images_removed(self) -> None:
        self._images_removed.labels(hostname=self._hostname).inc()

    def inc_images_skipped(self) -> None:
        self._images_skipped.labels(hostname=self._hostname).inc()

    def inc_cleanup_errors(self) -> None:
        self._cleanup_errors.labels(hostname=self._hostname).inc()

    def observe_cleanup_duration(self, seconds: float) -> None:
        self._cleanup_duration.labels(hostname=self._hostname).observe(seconds)

    def set_last_cleanup_time(self, timestamp: datetime) -> None:
        self._last_cleanup_time.labels(hostname=self._hostname).set(timestamp.timestamp())

    def inc_http_requests(self, path: str, method: str, status: int) -> None:
        self._http_requests.labels(hostname=self._hostname, code=str(status), method=method, path=path).inc()

    def inc_http_timeout(self, path: str, method: str) -> None:
        self._http_timeouts.labels(hostname=self._hostname, method=method, path=path).inc()

    def inc_http_error(self, path: str, method: str, status: int, error_type: str) -> None:
        self._http_errors.labels(
            hostname=self._hostname, code=str(status), method=method, path=path, error_type=error_type
        ).inc()


def _local_hostname() -> str:
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        logger.exception("Failed to get hostname for metrics labels")
        return "unknown"
