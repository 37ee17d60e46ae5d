"""Prometheus metrics for processor instances."""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from prometheus_client.registry import REGISTRY, CollectorRegistry

ITEMS_PROCESSED = Counter(
    "queuepool_items_processed_total",
    "Items dequeued by worker loops",
    ["processor"],
)
HANDLER_FAILURES = Counter(
    "queuepool_handler_failures_total",
    "Handler invocations that raised",
    ["processor"],
)
ACTIVE_WORKERS = Gauge(
    "queuepool_active_workers",
    "Workers currently executing a handler",
    ["processor"],
)
PENDING_ITEMS = Gauge(
    "queuepool_pending_items",
    "Items waiting in the queue",
    ["processor"],
)
HANDLER_LATENCY = Histogram(
    "queuepool_handler_duration_seconds",
    "Handler duration in seconds",
    ["processor"],
)


class ProcessorMetrics:
    """Metric children bound to one processor name."""

    def __init__(self, processor: str, enabled: bool = True) -> None:
        self.enabled = enabled
        self._processed = ITEMS_PROCESSED.labels(processor=processor)
        self._failures = HANDLER_FAILURES.labels(processor=processor)
        self._active = ACTIVE_WORKERS.labels(processor=processor)
        self._pending = PENDING_ITEMS.labels(processor=processor)
        self._latency = HANDLER_LATENCY.labels(processor=processor)

    def item_dequeued(self, pending: int) -> None:
        if self.enabled:
            self._processed.inc()
            self._pending.set(pending)

    def pending_changed(self, pending: int) -> None:
        if self.enabled:
            self._pending.set(pending)

    def handler_started(self) -> None:
        if self.enabled:
            self._active.inc()

    def handler_finished(self, duration: float, failed: bool) -> None:
        if not self.enabled:
            return
        self._active.dec()
        self._latency.observe(duration)
        if failed:
            self._failures.inc()


def render_metrics(registry: CollectorRegistry = REGISTRY) -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    return generate_latest(registry), CONTENT_TYPE_LATEST
