"""Commands, queries and result records for the work item service.

These are plain value types. They deliberately carry no field constraints
beyond types: policy checks (blank titles, page bounds, actor lengths)
belong to WorkItemService so that they surface as the service's own
ValidationError rather than as a Pydantic error.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.workitems.state.models import (
    WorkItemPriority,
    WorkItemStatus,
    is_terminal_status,
)


class CreateWorkItemCommand(BaseModel):
    """Request to create a work item.

    Attributes:
        title: Work item title; must not be blank.
        description: Optional description.
        priority: Work item priority, Medium when omitted.
        requested_by: Actor creating the item; defaults to "api".
    """

    title: str
    description: Optional[str] = None
    priority: WorkItemPriority = WorkItemPriority.MEDIUM
    requested_by: Optional[str] = None


class UpdateWorkItemStatusCommand(BaseModel):
    """Request to move a single work item to a new status."""

    target_status: WorkItemStatus
    updated_by: Optional[str] = None


class ListWorkItemsQuery(BaseModel):
    """Page request for listing a tenant's work items.

    Attributes:
        status: Optional status filter.
        page: 1-based page number.
        page_size: Number of items per page, between 1 and 200.
    """

    status: Optional[WorkItemStatus] = None
    page: int = 1
    page_size: int = 20


class BulkTransitionCommand(BaseModel):
    """Request to move many work items to one target status.

    Attributes:
        work_item_ids: Ids to transition; duplicates are ignored.
        target_status: The status every eligible item moves to.
        changed_by: Actor performing the change; defaults to "api".
        correlation_id: Opaque token for cross-system tracing. A fresh one
            is generated when omitted.
    """

    work_item_ids: List[UUID] = Field(default_factory=list)
    target_status: WorkItemStatus
    changed_by: Optional[str] = None
    correlation_id: Optional[str] = None


class WorkItemDto(BaseModel):
    """Persisted work item as returned by the repository.

    Attributes:
        id: Work item identifier.
        tenant_id: Owning tenant.
        title: Work item title.
        description: Optional description.
        status: Current status.
        priority: Work item priority.
        created_at: Creation timestamp (UTC).
        updated_at: Last status change timestamp (UTC).
        created_by: Actor that created the item.
        updated_by: Actor that last changed the item.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    status: WorkItemStatus
    priority: WorkItemPriority
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)


class WorkItemListResult(BaseModel):
    """One page of work items plus the total matching count."""

    items: List[WorkItemDto]
    page: int
    page_size: int
    total_count: int


class BulkTransitionResult(BaseModel):
    """Aggregate outcome of a bulk transition.

    updated_count + rejected_count equals the number of distinct ids in
    the request. Rejections include missing items, items of another
    tenant, terminal items and items already in the target status.
    """

    model_config = ConfigDict(frozen=True)

    updated_count: int = Field(..., ge=0)
    rejected_count: int = Field(..., ge=0)

    @property
    def total_count(self) -> int:
        return self.updated_count + self.rejected_count
