"""Work item state machine and domain entities.

This module defines the domain core of the work item tracker:
- WorkItemStatus: Enum of lifecycle statuses
- WorkItemPriority: Ordered enum of priorities
- VALID_TRANSITIONS: Map defining allowed status transitions
- WorkItem: The entity the state machine operates on
- Tenant: The isolation boundary every work item belongs to

The models use Pydantic, consistent with the command and event models in
service/models.py and events/models.py.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.workitems.errors import InvalidStateError, ValidationError


# Nil UUID, treated the same as a missing identifier
EMPTY_ID = UUID(int=0)


def is_empty_id(value: Optional[UUID]) -> bool:
    """Check whether an identifier is missing or the nil UUID."""
    return value is None or value == EMPTY_ID


def as_utc(value: datetime) -> datetime:
    """Read a naive timestamp as UTC; aware timestamps are returned as is."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WorkItemStatus(str, Enum):
    """Statuses a work item moves through.

    Status Flow:
        New → InProgress → Blocked → Done | Cancelled

    Any non-terminal status may move to any other status, including
    lateral moves such as Blocked → New. Done and Cancelled are terminal.

    Values are the member names; they are stored verbatim in the database.
    """

    NEW = "New"
    IN_PROGRESS = "InProgress"
    BLOCKED = "Blocked"
    DONE = "Done"
    CANCELLED = "Cancelled"


class WorkItemPriority(str, Enum):
    """Work item priority, ordered Low < Medium < High < Urgent."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"

    @property
    def rank(self) -> int:
        """Position of the priority in the ordering, starting at 0."""
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS: Dict[WorkItemPriority, int] = {
    priority: index for index, priority in enumerate(WorkItemPriority)
}


TERMINAL_STATUSES: FrozenSet[WorkItemStatus] = frozenset(
    {WorkItemStatus.DONE, WorkItemStatus.CANCELLED}
)


# Valid status transitions map
#
# Terminal statuses have no outgoing transitions. Every other status may
# move to any status, itself included; same-status requests are handled
# as idempotent no-ops by the service layer.
VALID_TRANSITIONS: Dict[WorkItemStatus, List[WorkItemStatus]] = {
    status: [] if status in TERMINAL_STATUSES else list(WorkItemStatus)
    for status in WorkItemStatus
}


def is_terminal_status(status: WorkItemStatus) -> bool:
    """Check if a status is terminal (Done or Cancelled).

    Example:
        >>> is_terminal_status(WorkItemStatus.DONE)
        True
        >>> is_terminal_status(WorkItemStatus.BLOCKED)
        False
    """
    return status in TERMINAL_STATUSES


def is_valid_transition(
    from_status: WorkItemStatus, to_status: WorkItemStatus
) -> bool:
    """Check if a status transition is allowed by VALID_TRANSITIONS.

    Example:
        >>> is_valid_transition(WorkItemStatus.NEW, WorkItemStatus.BLOCKED)
        True
        >>> is_valid_transition(WorkItemStatus.DONE, WorkItemStatus.NEW)
        False
    """
    return to_status in VALID_TRANSITIONS.get(from_status, [])


class Tenant(BaseModel):
    """Isolation boundary that owns work items.

    Attributes:
        id: Opaque unique tenant identifier.
        name: Display name, trimmed.
        is_active: Whether the tenant is active.
        created_at: When the tenant was created (UTC).
    """

    model_config = ConfigDict(validate_assignment=True)

    id: UUID = Field(..., frozen=True)
    name: str = Field(..., min_length=1, frozen=True)
    is_active: bool = True
    created_at: datetime = Field(..., frozen=True)

    @field_validator("created_at")
    @classmethod
    def created_at_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def create(cls, id: UUID, name: str, created_at: datetime) -> "Tenant":
        """Create a tenant, rejecting a nil id or a blank name.

        Raises:
            ValidationError: If id is empty or name is blank.
        """
        if is_empty_id(id):
            raise ValidationError("Tenant id is required.", field="id")
        if not name or not name.strip():
            raise ValidationError("Tenant name is required.", field="name")

        return cls(id=id, name=name.strip(), created_at=created_at)

    def deactivate(self) -> None:
        self.is_active = False


class WorkItem(BaseModel):
    """A unit of tracked work owned by exactly one tenant.

    Work items are created through WorkItem.create() and only change via
    update_status(). Identity, content and created_at are frozen; once the
    status is terminal the entity rejects every further transition, direct
    assignment of status included. Naive timestamps are read as UTC.

    Attributes:
        id: Unique, immutable work item identifier.
        tenant_id: Owning tenant, immutable.
        title: Non-blank, trimmed title.
        description: Trimmed description, or None when blank.
        status: Current lifecycle status.
        priority: Work item priority.
        created_at: When the work item was created (UTC).
        updated_at: When the status last changed (UTC).

    Example:
        >>> item = WorkItem.create(
        ...     id=uuid4(),
        ...     tenant_id=tenant_id,
        ...     title="Review telemetry spike",
        ...     description=None,
        ...     priority=WorkItemPriority.HIGH,
        ...     created_at=datetime.now(timezone.utc),
        ... )
        >>> item.status
        <WorkItemStatus.NEW: 'New'>
    """

    model_config = ConfigDict(validate_assignment=True)

    id: UUID = Field(..., frozen=True)
    tenant_id: UUID = Field(..., frozen=True)
    title: str = Field(..., min_length=1, frozen=True)
    description: Optional[str] = Field(default=None, frozen=True)
    status: WorkItemStatus = WorkItemStatus.NEW
    priority: WorkItemPriority = Field(default=WorkItemPriority.MEDIUM, frozen=True)
    created_at: datetime = Field(..., frozen=True)
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "status" and self.is_terminal:
            raise InvalidStateError(self.status, value)
        super().__setattr__(name, value)

    @classmethod
    def create(
        cls,
        id: UUID,
        tenant_id: UUID,
        title: str,
        description: Optional[str],
        priority: WorkItemPriority,
        created_at: datetime,
    ) -> "WorkItem":
        """Create a new work item in the New status.

        Args:
            id: Identifier for the new work item.
            tenant_id: Owning tenant.
            title: Title, trimmed before storing.
            description: Optional description; blank becomes None.
            priority: Work item priority.
            created_at: Creation timestamp, also used as updated_at.

        Returns:
            The new work item.

        Raises:
            ValidationError: If id or tenant_id is empty, or title is blank.
        """
        if is_empty_id(id):
            raise ValidationError("Work item id is required.", field="id")
        if is_empty_id(tenant_id):
            raise ValidationError("Tenant id is required.", field="tenant_id")
        if not title or not title.strip():
            raise ValidationError("Work item title is required.", field="title")

        return cls(
            id=id,
            tenant_id=tenant_id,
            title=title.strip(),
            description=description.strip()
            if description and description.strip()
            else None,
            status=WorkItemStatus.NEW,
            priority=priority,
            created_at=created_at,
            updated_at=created_at,
        )

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    def update_status(
        self, target_status: WorkItemStatus, updated_at: datetime
    ) -> None:
        """Move the work item to a new status.

        There is no same-status short-circuit here; the service layer
        handles idempotent no-ops before reaching the entity.

        Args:
            target_status: The status to move to.
            updated_at: Timestamp of the change.

        Raises:
            InvalidStateError: If the current status is terminal.
        """
        if not is_valid_transition(self.status, target_status):
            raise InvalidStateError(self.status, target_status)

        self.status = target_status
        # updated_at never moves backwards
        self.updated_at = max(self.updated_at, as_utc(updated_at))
