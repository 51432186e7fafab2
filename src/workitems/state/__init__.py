"""Work item state machine and domain entities.

Work items move through statuses:
- New → InProgress → Blocked → Done | Cancelled

Done and Cancelled are terminal; any other status may move to any status.
"""

from src.workitems.state.models import (
    EMPTY_ID,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    as_utc,
    Tenant,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
    is_empty_id,
    is_terminal_status,
    is_valid_transition,
)

__all__ = [
    "EMPTY_ID",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "as_utc",
    "Tenant",
    "WorkItem",
    "WorkItemPriority",
    "WorkItemStatus",
    "is_empty_id",
    "is_terminal_status",
    "is_valid_transition",
]
