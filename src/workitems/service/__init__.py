"""Work item application service.

This module validates inbound commands, applies policy (actor
normalization, pagination bounds, idempotent same-status transitions) and
coordinates calls to the WorkItemRepository protocol, including the atomic
bulk transition.
"""

from src.workitems.service.models import (
    BulkTransitionCommand,
    BulkTransitionResult,
    CreateWorkItemCommand,
    ListWorkItemsQuery,
    UpdateWorkItemStatusCommand,
    WorkItemDto,
    WorkItemListResult,
)
from src.workitems.service.outcome import Outcome, OutcomeKind, run_operation
from src.workitems.service.repository import WorkItemRepository
from src.workitems.service.service import (
    DEFAULT_ACTOR,
    MAX_ACTOR_LENGTH,
    MAX_CORRELATION_ID_LENGTH,
    MAX_PAGE_SIZE,
    WorkItemService,
    normalize_actor,
    normalize_correlation_id,
)

__all__ = [
    # Commands and results
    "BulkTransitionCommand",
    "BulkTransitionResult",
    "CreateWorkItemCommand",
    "ListWorkItemsQuery",
    "UpdateWorkItemStatusCommand",
    "WorkItemDto",
    "WorkItemListResult",
    # Outcomes
    "Outcome",
    "OutcomeKind",
    "run_operation",
    # Repository contract
    "WorkItemRepository",
    # Service
    "DEFAULT_ACTOR",
    "MAX_ACTOR_LENGTH",
    "MAX_CORRELATION_ID_LENGTH",
    "MAX_PAGE_SIZE",
    "WorkItemService",
    "normalize_actor",
    "normalize_correlation_id",
]
