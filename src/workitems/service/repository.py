"""Repository contract the work item service depends on.

Any storage engine can back the service as long as it fulfils this
protocol. The PostgreSQL implementation is in persistence/postgres.py and
an in-process implementation is in persistence/memory.py.
"""

from datetime import datetime
from typing import Collection, List, Optional, Protocol, runtime_checkable
from uuid import UUID

from src.workitems.service.models import BulkTransitionResult, WorkItemDto
from src.workitems.state.models import WorkItemPriority, WorkItemStatus


@runtime_checkable
class WorkItemRepository(Protocol):
    """Protocol defining work item persistence.

    Every operation is scoped by tenant id: the tenant is part of the
    lookup key, never a post-filter. Implementations propagate storage
    failures; they never retry.
    """

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
        """Persist a new work item in the New status.

        Returns:
            The persisted work item.
        """
        ...

    async def get_by_id(self, tenant_id: UUID, id: UUID) -> Optional[WorkItemDto]:
        """Get a work item by tenant and id.

        Returns:
            The work item if found, None otherwise.
        """
        ...

    async def list(
        self,
        tenant_id: UUID,
        status: Optional[WorkItemStatus],
        offset: int,
        limit: int,
    ) -> List[WorkItemDto]:
        """List a slice of a tenant's work items, newest first.

        Args:
            tenant_id: Owning tenant.
            status: Optional status filter.
            offset: Number of matching items to skip.
            limit: Maximum number of items to return.
        """
        ...

    async def count(self, tenant_id: UUID, status: Optional[WorkItemStatus]) -> int:
        """Count a tenant's work items matching the same filter as list()."""
        ...

    async def update_status(
        self,
        tenant_id: UUID,
        id: UUID,
        target_status: WorkItemStatus,
        updated_by: str,
        updated_at: datetime,
    ) -> Optional[WorkItemDto]:
        """Conditionally move a work item to a new status.

        The update applies only if the stored row matches the tenant and
        id, its status is not terminal, and its status differs from the
        target.

        Returns:
            The updated work item, or None if the condition did not hold.
        """
        ...

    async def bulk_transition(
        self,
        tenant_id: UUID,
        work_item_ids: Collection[UUID],
        target_status: WorkItemStatus,
        changed_by: str,
        correlation_id: str,
    ) -> BulkTransitionResult:
        """Atomically move every eligible work item to the target status.

        An item is eligible iff it exists, belongs to the tenant, is not
        terminal and is not already in the target status. Eligibility and
        the update are evaluated against one consistent snapshot, so two
        concurrent calls never both count the same item as updated.

        Returns:
            Counts of updated and rejected items; they sum to the number
            of ids passed in.
        """
        ...
