"""Request bodies accepted by the work item routes."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.workitems.service.models import (
    BulkTransitionCommand,
    CreateWorkItemCommand,
    UpdateWorkItemStatusCommand,
)
from src.workitems.state.models import WorkItemPriority, WorkItemStatus


class CreateWorkItemRequest(BaseModel):
    title: str = ""
    description: Optional[str] = None
    priority: WorkItemPriority = WorkItemPriority.MEDIUM
    requested_by: Optional[str] = None

    def to_command(self) -> CreateWorkItemCommand:
        return CreateWorkItemCommand(
            title=self.title,
            description=self.description,
            priority=self.priority,
            requested_by=self.requested_by,
        )


class UpdateWorkItemStatusRequest(BaseModel):
    status: WorkItemStatus
    updated_by: Optional[str] = None

    def to_command(self) -> UpdateWorkItemStatusCommand:
        return UpdateWorkItemStatusCommand(
            target_status=self.status,
            updated_by=self.updated_by,
        )


class BulkTransitionRequest(BaseModel):
    work_item_ids: List[UUID] = Field(default_factory=list)
    target_status: WorkItemStatus
    changed_by: Optional[str] = None
    correlation_id: Optional[str] = None

    def to_command(self) -> BulkTransitionCommand:
        return BulkTransitionCommand(
            work_item_ids=self.work_item_ids,
            target_status=self.target_status,
            changed_by=self.changed_by,
            correlation_id=self.correlation_id,
        )
