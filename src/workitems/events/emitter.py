"""Event emitters for work item observability.

WorkItemService publishes a WorkItemEvent after every successful mutation
through the EventEmitter interface defined here:

- LoggingEventEmitter: writes the event as a log record with the event
  fields attached as extra attributes
- CompositeEventEmitter: fans an event out to several sinks
- NullEventEmitter: used when no emitter is configured

The Prometheus sink (MetricsEventEmitter) lives in metrics.py.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional

from src.workitems.events.models import WorkItemEvent


logger = logging.getLogger(__name__)


class EventSinkType(str, Enum):
    """Sinks selectable through the WORKITEMS_EVENT_SINKS setting."""

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Destination for work item events.

    emit() runs inline with the request that produced the event, so
    implementations should return quickly.
    """

    @abstractmethod
    async def emit(self, event: WorkItemEvent) -> None:
        pass

    async def close(self) -> None:
        """Release sink resources; called once at shutdown."""


class LoggingEventEmitter(EventEmitter):
    """Writes each event as an INFO record.

    The fields of WorkItemEvent.to_log_dict() become attributes of the
    log record, so a JSON formatter can emit them as structured fields.

    Example:
        >>> await LoggingEventEmitter().emit(event)
        # INFO - Work item event: bulk_transition for tenant 6f1c...
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger

    async def emit(self, event: WorkItemEvent) -> None:
        self._logger.info(
            "Work item event: %s for tenant %s",
            event.event_type.value,
            event.tenant_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Delivers each event to every child emitter concurrently.

    A child that raises is logged and skipped; the remaining children
    still receive the event. A cancelled child is re-raised once every
    child has finished.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = list(emitters or [])

    def add_emitter(self, emitter: EventEmitter) -> None:
        self._emitters.append(emitter)

    @property
    def emitters(self) -> List[EventEmitter]:
        return list(self._emitters)

    async def emit(self, event: WorkItemEvent) -> None:
        results = await asyncio.gather(
            *(emitter.emit(event) for emitter in self._emitters),
            return_exceptions=True,
        )
        cancelled: Optional[asyncio.CancelledError] = None
        for emitter, result in zip(self._emitters, results):
            if isinstance(result, asyncio.CancelledError):
                cancelled = cancelled or result
            elif isinstance(result, BaseException):
                logger.error(
                    "Event sink %s failed: %s",
                    type(emitter).__name__,
                    result,
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "tenant_id": str(event.tenant_id),
                    },
                )
        if cancelled is not None:
            raise cancelled

    async def close(self) -> None:
        results = await asyncio.gather(
            *(emitter.close() for emitter in self._emitters),
            return_exceptions=True,
        )
        cancelled: Optional[asyncio.CancelledError] = None
        for emitter, result in zip(self._emitters, results):
            if isinstance(result, asyncio.CancelledError):
                cancelled = cancelled or result
            elif isinstance(result, BaseException):
                logger.error(
                    "Failed to close event sink %s: %s",
                    type(emitter).__name__,
                    result,
                )
        if cancelled is not None:
            raise cancelled


class NullEventEmitter(EventEmitter):
    async def emit(self, event: WorkItemEvent) -> None:
        return None


def _metrics_emitter(logger_name: Optional[str]) -> EventEmitter:
    # metrics.py imports EventEmitter from this module
    from src.workitems.events.metrics import MetricsEventEmitter

    return MetricsEventEmitter()


_SINK_FACTORIES: Dict[EventSinkType, Callable[[Optional[str]], EventEmitter]] = {
    EventSinkType.LOGGING: LoggingEventEmitter,
    EventSinkType.METRICS: _metrics_emitter,
}


def create_event_emitter(
    sink_types: Optional[List[EventSinkType]] = None,
    logger_name: Optional[str] = None,
) -> EventEmitter:
    """Build the emitter for the configured sinks.

    No sinks means logging only. A single sink is returned as is; several
    sinks are wrapped in a CompositeEventEmitter. Repeated sink types are
    created once.

    Example:
        >>> emitter = create_event_emitter(
        ...     [EventSinkType.LOGGING, EventSinkType.METRICS]
        ... )
        >>> isinstance(emitter, CompositeEventEmitter)
        True
    """
    emitters = [
        _SINK_FACTORIES[sink_type](logger_name)
        for sink_type in dict.fromkeys(sink_types or [EventSinkType.LOGGING])
    ]

    if len(emitters) == 1:
        return emitters[0]
    return CompositeEventEmitter(emitters)
