"""In-process work item repository.

Implements the WorkItemRepository protocol on top of a dictionary. It is
used for local development when no database URL is configured, and by the
test suite. Mutations are serialized by an asyncio.Lock, which gives the
bulk transition the same single-snapshot guarantee the PostgreSQL
implementation gets from row locks.
"""

import asyncio
from datetime import datetime, timezone
from typing import Collection, Dict, List, NamedTuple, Optional, Tuple
from uuid import UUID

from src.workitems.service.models import BulkTransitionResult, WorkItemDto
from src.workitems.state.models import (
    WorkItemPriority,
    WorkItemStatus,
    as_utc,
    is_terminal_status,
)


class TransitionRecord(NamedTuple):
    """Audit entry written for every applied status change."""

    tenant_id: UUID
    work_item_id: UUID
    from_status: WorkItemStatus
    to_status: WorkItemStatus
    changed_by: str
    changed_at: datetime
    correlation_id: Optional[str]


class InMemoryWorkItemRepository:
    """Dictionary-backed implementation of WorkItemRepository.

    Attributes:
        transitions: Audit trail of applied status changes, oldest first.
    """

    def __init__(self) -> None:
        self._items: Dict[Tuple[UUID, UUID], WorkItemDto] = {}
        self._lock = asyncio.Lock()
        self.transitions: List[TransitionRecord] = []

    async def create(
        self,
        tenant_id: UUID,
        id: UUID,
        title: str,
        description: Optional[str],
        priority: WorkItemPriority,
        created_by: str,
        created_at: datetime,
    ) -> WorkItemDto:
        item = WorkItemDto(
            id=id,
            tenant_id=tenant_id,
            title=title,
            description=description,
            status=WorkItemStatus.NEW,
            priority=priority,
            created_at=as_utc(created_at),
            updated_at=as_utc(created_at),
            created_by=created_by,
            updated_by=created_by,
        )
        async with self._lock:
            self._items[(tenant_id, id)] = item
        return item

    async def get_by_id(self, tenant_id: UUID, id: UUID) -> Optional[WorkItemDto]:
        return self._items.get((tenant_id, id))

    def _matching(
        self, tenant_id: UUID, status: Optional[WorkItemStatus]
    ) -> List[WorkItemDto]:
        return [
            item
            for (item_tenant, _), item in self._items.items()
            if item_tenant == tenant_id and (status is None or item.status == status)
        ]

    async def list(
        self,
        tenant_id: UUID,
        status: Optional[WorkItemStatus],
        offset: int,
        limit: int,
    ) -> List[WorkItemDto]:
        items = sorted(
            self._matching(tenant_id, status),
            key=lambda item: item.created_at,
            reverse=True,
        )
        return items[offset:offset + limit]

    async def count(self, tenant_id: UUID, status: Optional[WorkItemStatus]) -> int:
        return len(self._matching(tenant_id, status))

    def _apply(
        self,
        item: WorkItemDto,
        target_status: WorkItemStatus,
        changed_by: str,
        changed_at: datetime,
        correlation_id: Optional[str],
    ) -> WorkItemDto:
        changed_at = as_utc(changed_at)
        updated = item.model_copy(
            update={
                "status": target_status,
                "updated_at": max(item.updated_at, changed_at),
                "updated_by": changed_by,
            }
        )
        self._items[(item.tenant_id, item.id)] = updated
        self.transitions.append(
            TransitionRecord(
                tenant_id=item.tenant_id,
                work_item_id=item.id,
                from_status=item.status,
                to_status=target_status,
                changed_by=changed_by,
                changed_at=changed_at,
                correlation_id=correlation_id,
            )
        )
        return updated

    @staticmethod
    def _is_eligible(
        item: Optional[WorkItemDto], target_status: WorkItemStatus
    ) -> bool:
        return (
            item is not None
            and not is_terminal_status(item.status)
            and item.status != target_status
        )

    async def update_status(
        self,
        tenant_id: UUID,
        id: UUID,
        target_status: WorkItemStatus,
        updated_by: str,
        updated_at: datetime,
    ) -> Optional[WorkItemDto]:
        async with self._lock:
            item = self._items.get((tenant_id, id))
            if not self._is_eligible(item, target_status):
                return None
            return self._apply(item, target_status, updated_by, updated_at, None)

    async def bulk_transition(
        self,
        tenant_id: UUID,
        work_item_ids: Collection[UUID],
        target_status: WorkItemStatus,
        changed_by: str,
        correlation_id: str,
    ) -> BulkTransitionResult:
        distinct_ids = list(dict.fromkeys(work_item_ids))
        changed_at = datetime.now(timezone.utc)

        async with self._lock:
            updated_count = 0
            for work_item_id in distinct_ids:
                item = self._items.get((tenant_id, work_item_id))
                if self._is_eligible(item, target_status):
                    self._apply(
                        item, target_status, changed_by, changed_at, correlation_id
                    )
                    updated_count += 1

        return BulkTransitionResult(
            updated_count=updated_count,
            rejected_count=len(distinct_ids) - updated_count,
        )
