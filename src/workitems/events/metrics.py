"""Prometheus metrics for work item observability.

Metrics Defined:
- work_items_bulk_transition_batch_size: Histogram of distinct ids per
  bulk transition
- work_items_bulk_transition_updated_total: Counter of items transitioned
  by bulk operations
- work_items_bulk_transition_rejected_total: Counter of items rejected by
  bulk operations
- work_items_status_transitions_total: Counter of single-item transitions
- work_items_created_total: Counter of created work items

All bulk metrics are labelled by target_status. The MetricsEventEmitter
updates them from service events; generate_metrics_output() renders the
registry for the /metrics endpoint.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.workitems.events.emitter import EventEmitter
from src.workitems.events.models import EventType, WorkItemEvent


logger = logging.getLogger(__name__)


# Bucket boundaries for the batch size histogram, in items
DEFAULT_BATCH_SIZE_BUCKETS = (1, 2, 5, 10, 25, 50, 100, 250, 500, 1000)


class WorkItemMetrics:
    """Container for all work item Prometheus metrics.

    Pass a custom CollectorRegistry to isolate metrics in tests.

    Example:
        >>> metrics = WorkItemMetrics(registry=CollectorRegistry())
        >>> metrics.record_bulk_transition(
        ...     batch_size=3, updated_count=2, rejected_count=1,
        ...     target_status="Done",
        ... )
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.bulk_transition_batch_size = Histogram(
            "work_items_bulk_transition_batch_size",
            "Number of work items requested in each bulk transition",
            labelnames=["target_status"],
            buckets=DEFAULT_BATCH_SIZE_BUCKETS,
            registry=self.registry,
        )

        self.bulk_transition_updated_total = Counter(
            "work_items_bulk_transition_updated_total",
            "Number of work items transitioned by bulk operations",
            labelnames=["target_status"],
            registry=self.registry,
        )

        self.bulk_transition_rejected_total = Counter(
            "work_items_bulk_transition_rejected_total",
            "Number of work items rejected by bulk operations",
            labelnames=["target_status"],
            registry=self.registry,
        )

        self.status_transitions_total = Counter(
            "work_items_status_transitions_total",
            "Number of single work item status transitions",
            labelnames=["from_status", "to_status"],
            registry=self.registry,
        )

        self.created_total = Counter(
            "work_items_created_total",
            "Number of work items created",
            labelnames=["priority"],
            registry=self.registry,
        )

    def record_bulk_transition(
        self,
        batch_size: int,
        updated_count: int,
        rejected_count: int,
        target_status: str,
    ) -> None:
        """Record the outcome of one bulk transition."""
        self.bulk_transition_batch_size.labels(
            target_status=target_status,
        ).observe(batch_size)
        self.bulk_transition_updated_total.labels(
            target_status=target_status,
        ).inc(updated_count)
        self.bulk_transition_rejected_total.labels(
            target_status=target_status,
        ).inc(rejected_count)

    def record_status_transition(self, from_status: str, to_status: str) -> None:
        self.status_transitions_total.labels(
            from_status=from_status,
            to_status=to_status,
        ).inc()

    def record_created(self, priority: str) -> None:
        self.created_total.labels(priority=priority).inc()


# Shared instance for the default registry, used by MetricsEventEmitter
# and generate_metrics_output()
_default_metrics: Optional[WorkItemMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> WorkItemMetrics:
    """Get the shared metrics instance, or a new one for a custom registry."""
    global _default_metrics

    if registry is not None:
        return WorkItemMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = WorkItemMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Render metrics in Prometheus text format for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    Handles:
    - CREATED: Increments work_items_created_total
    - STATUS_TRANSITION: Increments work_items_status_transitions_total
    - BULK_TRANSITION: Records batch size, updated and rejected counts

    Example:
        >>> emitter = MetricsEventEmitter()
        >>> await emitter.emit(event)
    """

    def __init__(
        self,
        metrics: Optional[WorkItemMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        if metrics is not None:
            self._metrics = metrics
        else:
            self._metrics = get_metrics(registry)

    @property
    def metrics(self) -> WorkItemMetrics:
        return self._metrics

    async def emit(self, event: WorkItemEvent) -> None:
        try:
            details = event.details
            if event.event_type == EventType.BULK_TRANSITION:
                self._metrics.record_bulk_transition(
                    batch_size=int(details.get("batch_size", 0)),
                    updated_count=int(details.get("updated_count", 0)),
                    rejected_count=int(details.get("rejected_count", 0)),
                    target_status=str(details.get("target_status", "unknown")),
                )
            elif event.event_type == EventType.STATUS_TRANSITION:
                self._metrics.record_status_transition(
                    from_status=str(details.get("from_status", "unknown")),
                    to_status=str(details.get("to_status", "unknown")),
                )
            elif event.event_type == EventType.CREATED:
                self._metrics.record_created(
                    priority=str(details.get("priority", "unknown")),
                )
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={
                    "event_type": event.event_type.value,
                    "tenant_id": str(event.tenant_id),
                    "error": str(e),
                },
            )
