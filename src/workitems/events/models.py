"""Work item event models for observability.

This module defines the data models for events emitted by the work item
service:
- EventType: Enum of all event types
- WorkItemEvent: Structured event with tenant, timestamp and details

Events are published through an EventEmitter (see emitter.py) so that the
service never depends on a specific telemetry backend.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict
from uuid import UUID

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the work item service.

    Attributes:
        CREATED: A work item was created.
        STATUS_TRANSITION: A single work item changed status.
        BULK_TRANSITION: A bulk transition completed.
    """

    CREATED = "created"
    STATUS_TRANSITION = "status_transition"
    BULK_TRANSITION = "bulk_transition"


class WorkItemEvent(BaseModel):
    """Structured event emitted by the work item service.

    Details Field Conventions:
        For CREATED events:
            - work_item_id: Id of the new work item
            - priority: Work item priority

        For STATUS_TRANSITION events:
            - work_item_id: Id of the work item
            - from_status: Previous status
            - to_status: New status

        For BULK_TRANSITION events:
            - batch_size: Number of distinct ids requested
            - updated_count: Number of items transitioned
            - rejected_count: Number of items rejected
            - target_status: Requested status
            - correlation_id: Correlation token of the request

    Example:
        >>> event = WorkItemEvent(
        ...     event_type=EventType.BULK_TRANSITION,
        ...     tenant_id=tenant_id,
        ...     details={
        ...         "batch_size": 2,
        ...         "updated_count": 1,
        ...         "rejected_count": 1,
        ...         "target_status": "Blocked",
        ...     },
        ... )
    """

    event_type: EventType = Field(
        ...,
        description="The category of event being emitted",
    )

    tenant_id: UUID = Field(
        ...,
        description="Tenant the event belongs to",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert event to a flat dictionary for structured logging.

        Example:
            >>> event.to_log_dict()["event_type"]
            'bulk_transition'
        """
        return {
            "event_type": self.event_type.value,
            "tenant_id": str(self.tenant_id),
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
