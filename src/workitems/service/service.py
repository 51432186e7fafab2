"""Work item service implementation.

This module implements the WorkItemService class, the application-level
orchestrator for work items. It validates commands, applies policy and
delegates persistence to a WorkItemRepository.

Policy applied here:
- Tenant ids and work item ids must not be empty
- Actors default to "api" and may not exceed 100 characters
- Pages are 1-based with a page size between 1 and 200
- A single-item transition to the current status is an idempotent no-op
- Bulk transitions deduplicate ids and normalize the correlation id

The service holds no mutable shared state and is safe to call from
concurrent tasks. Repository failures propagate unchanged; nothing is
retried.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from src.workitems.errors import InvalidStateError, ValidationError
from src.workitems.events.emitter import EventEmitter, NullEventEmitter
from src.workitems.events.models import EventType, WorkItemEvent
from src.workitems.service.models import (
    BulkTransitionCommand,
    BulkTransitionResult,
    CreateWorkItemCommand,
    ListWorkItemsQuery,
    UpdateWorkItemStatusCommand,
    WorkItemDto,
    WorkItemListResult,
)
from src.workitems.service.repository import WorkItemRepository
from src.workitems.state.models import WorkItem, is_empty_id


logger = logging.getLogger(__name__)


MAX_PAGE_SIZE = 200
MAX_ACTOR_LENGTH = 100
MAX_CORRELATION_ID_LENGTH = 100
DEFAULT_ACTOR = "api"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_actor(actor: Optional[str], field: str) -> str:
    """Normalize an actor string.

    Blank or missing actors become DEFAULT_ACTOR; others are trimmed.

    Raises:
        ValidationError: If the trimmed actor exceeds MAX_ACTOR_LENGTH.

    Example:
        >>> normalize_actor(None, "requested_by")
        'api'
        >>> normalize_actor("  alice ", "requested_by")
        'alice'
    """
    normalized = actor.strip() if actor and actor.strip() else DEFAULT_ACTOR
    if len(normalized) > MAX_ACTOR_LENGTH:
        raise ValidationError(
            f"Actor value cannot exceed {MAX_ACTOR_LENGTH} characters.",
            field=field,
        )
    return normalized


def normalize_correlation_id(correlation_id: Optional[str]) -> str:
    """Normalize a correlation id.

    Blank or missing values are replaced by a fresh opaque token; any
    value is trimmed and truncated to MAX_CORRELATION_ID_LENGTH.
    """
    normalized = (
        correlation_id.strip()
        if correlation_id and correlation_id.strip()
        else uuid4().hex
    )
    return normalized[:MAX_CORRELATION_ID_LENGTH]


def _validate_tenant_id(tenant_id: UUID) -> None:
    if is_empty_id(tenant_id):
        raise ValidationError("Tenant id is required.", field="tenant_id")


def _validate_work_item_id(id: UUID) -> None:
    if is_empty_id(id):
        raise ValidationError("Work item id is required.", field="id")


class WorkItemService:
    """Application service for creating, reading, listing and
    transitioning work items.

    Every operation takes the tenant id as an explicit argument and
    validates it before touching the repository. Validation failures
    raise ValidationError, transitions out of a terminal status raise
    InvalidStateError, and a missing work item is reported as None.

    Attributes:
        repository: The work item repository.
        event_emitter: Receives events after successful mutations.

    Example:
        >>> service = WorkItemService(repository)
        >>> item = await service.create(
        ...     tenant_id,
        ...     CreateWorkItemCommand(
        ...         title="Review telemetry spike",
        ...         priority=WorkItemPriority.HIGH,
        ...     ),
        ... )
        >>> result = await service.bulk_transition(
        ...     tenant_id,
        ...     BulkTransitionCommand(
        ...         work_item_ids=[item.id],
        ...         target_status=WorkItemStatus.BLOCKED,
        ...     ),
        ... )
    """

    def __init__(
        self,
        repository: WorkItemRepository,
        event_emitter: Optional[EventEmitter] = None,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        """Initialize the service.

        Args:
            repository: The work item repository.
            event_emitter: Optional event emitter; events are discarded
                           when omitted.
            clock: Source of UTC timestamps.
            id_factory: Source of new work item ids.
        """
        self.repository = repository
        self.event_emitter = event_emitter or NullEventEmitter()
        self._clock = clock
        self._id_factory = id_factory

    async def create(
        self, tenant_id: UUID, command: CreateWorkItemCommand
    ) -> WorkItemDto:
        """Create a work item in the New status.

        Args:
            tenant_id: Owning tenant.
            command: Title, description, priority and requesting actor.

        Returns:
            The persisted work item.

        Raises:
            ValidationError: If the tenant id is empty, the title is blank,
                             or the actor is too long.
        """
        _validate_tenant_id(tenant_id)

        created_at = self._clock()
        actor = normalize_actor(command.requested_by, "requested_by")

        work_item = WorkItem.create(
            id=self._id_factory(),
            tenant_id=tenant_id,
            title=command.title,
            description=command.description,
            priority=command.priority,
            created_at=created_at,
        )

        created = await self.repository.create(
            tenant_id=tenant_id,
            id=work_item.id,
            title=work_item.title,
            description=work_item.description,
            priority=work_item.priority,
            created_by=actor,
            created_at=created_at,
        )

        logger.info(
            "Created work item",
            extra={
                "tenant_id": str(tenant_id),
                "work_item_id": str(created.id),
                "priority": created.priority.value,
            },
        )

        await self._emit(
            EventType.CREATED,
            tenant_id,
            {"work_item_id": str(created.id), "priority": created.priority.value},
        )

        return created

    async def get_by_id(self, tenant_id: UUID, id: UUID) -> Optional[WorkItemDto]:
        """Get a work item by id within a tenant.

        Returns:
            The work item, or None if the tenant has no such item.

        Raises:
            ValidationError: If either id is empty.
        """
        _validate_tenant_id(tenant_id)
        _validate_work_item_id(id)

        return await self.repository.get_by_id(tenant_id, id)

    async def list(
        self, tenant_id: UUID, query: ListWorkItemsQuery
    ) -> WorkItemListResult:
        """List one page of a tenant's work items.

        The page slice and the total count come from two independent
        repository calls and may disagree under concurrent writes.

        Raises:
            ValidationError: If page <= 0 or page_size is outside
                             [1, MAX_PAGE_SIZE].
        """
        _validate_tenant_id(tenant_id)

        if query.page <= 0:
            raise ValidationError("Page must be greater than zero.", field="page")

        if query.page_size <= 0 or query.page_size > MAX_PAGE_SIZE:
            raise ValidationError(
                f"PageSize must be between 1 and {MAX_PAGE_SIZE}.",
                field="page_size",
            )

        offset = (query.page - 1) * query.page_size

        items = await self.repository.list(
            tenant_id=tenant_id,
            status=query.status,
            offset=offset,
            limit=query.page_size,
        )

        total_count = await self.repository.count(
            tenant_id=tenant_id,
            status=query.status,
        )

        return WorkItemListResult(
            items=items,
            page=query.page,
            page_size=query.page_size,
            total_count=total_count,
        )

    async def update_status(
        self,
        tenant_id: UUID,
        id: UUID,
        command: UpdateWorkItemStatusCommand,
    ) -> Optional[WorkItemDto]:
        """Move a single work item to a new status.

        A request for the status the item already has returns the item
        unchanged without calling the repository's mutating path. When the
        conditional update affects no row (for example the item was
        transitioned concurrently) the current state is re-fetched and
        returned.

        Returns:
            The work item after the call, or None if it does not exist.

        Raises:
            ValidationError: If either id is empty or the actor is too long.
            InvalidStateError: If the work item is Done or Cancelled.
        """
        _validate_tenant_id(tenant_id)
        _validate_work_item_id(id)

        existing = await self.repository.get_by_id(tenant_id, id)
        if existing is None:
            return None

        if existing.is_terminal:
            raise InvalidStateError(existing.status, command.target_status)

        if existing.status == command.target_status:
            logger.debug(
                "Work item already in target status",
                extra={
                    "tenant_id": str(tenant_id),
                    "work_item_id": str(id),
                    "status": existing.status.value,
                },
            )
            return existing

        updated = await self.repository.update_status(
            tenant_id=tenant_id,
            id=id,
            target_status=command.target_status,
            updated_by=normalize_actor(command.updated_by, "updated_by"),
            updated_at=self._clock(),
        )

        if updated is None:
            logger.info(
                "Conditional status update affected no rows, re-fetching",
                extra={
                    "tenant_id": str(tenant_id),
                    "work_item_id": str(id),
                    "target_status": command.target_status.value,
                },
            )
            return await self.repository.get_by_id(tenant_id, id)

        await self._emit(
            EventType.STATUS_TRANSITION,
            tenant_id,
            {
                "work_item_id": str(id),
                "from_status": existing.status.value,
                "to_status": updated.status.value,
            },
        )

        return updated

    async def bulk_transition(
        self, tenant_id: UUID, command: BulkTransitionCommand
    ) -> BulkTransitionResult:
        """Move many work items to one status in a single atomic step.

        Ids are deduplicated before reaching the repository. Items that are
        missing, terminal or already in the target status count as
        rejected; unlike update_status(), same-status is not a success.

        Returns:
            Counts of updated and rejected items, unchanged from the
            repository.

        Raises:
            ValidationError: If the tenant id is empty, no ids are given,
                             any id is empty, or the actor is too long.
        """
        _validate_tenant_id(tenant_id)

        if not command.work_item_ids:
            raise ValidationError(
                "At least one work item id is required.",
                field="work_item_ids",
            )

        if any(is_empty_id(item_id) for item_id in command.work_item_ids):
            raise ValidationError(
                "Work item ids cannot include empty values.",
                field="work_item_ids",
            )

        work_item_ids: List[UUID] = list(dict.fromkeys(command.work_item_ids))
        changed_by = normalize_actor(command.changed_by, "changed_by")
        correlation_id = normalize_correlation_id(command.correlation_id)

        result = await self.repository.bulk_transition(
            tenant_id=tenant_id,
            work_item_ids=work_item_ids,
            target_status=command.target_status,
            changed_by=changed_by,
            correlation_id=correlation_id,
        )

        logger.info(
            "Bulk transition completed",
            extra={
                "tenant_id": str(tenant_id),
                "correlation_id": correlation_id,
                "batch_size": len(work_item_ids),
                "updated_count": result.updated_count,
                "rejected_count": result.rejected_count,
                "target_status": command.target_status.value,
            },
        )

        await self._emit(
            EventType.BULK_TRANSITION,
            tenant_id,
            {
                "batch_size": len(work_item_ids),
                "updated_count": result.updated_count,
                "rejected_count": result.rejected_count,
                "target_status": command.target_status.value,
                "correlation_id": correlation_id,
            },
        )

        return result

    async def _emit(self, event_type: EventType, tenant_id: UUID, details: dict) -> None:
        """Publish an event; emitter failures never affect the operation."""
        event = WorkItemEvent(
            event_type=event_type,
            tenant_id=tenant_id,
            details=details,
        )
        try:
            await self.event_emitter.emit(event)
        except Exception as e:
            logger.error(
                "Failed to emit work item event: %s",
                str(e),
                extra={
                    "event_type": event_type.value,
                    "tenant_id": str(tenant_id),
                    "error": str(e),
                },
            )
