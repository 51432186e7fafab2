"""Error taxonomy for work item operations.

Every domain and service failure carries an ErrorKind tag so that callers
can branch on the kind instead of the exception class:

- VALIDATION: malformed or out-of-policy input, fixable by the client
- CONFLICT: a semantically illegal transition (terminal work item)

Not-found is never an error; operations return None instead.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.workitems.state.models import WorkItemStatus


class ErrorKind(str, Enum):
    """Category of a work item failure.

    Attributes:
        VALIDATION: Bad input, maps to a 400-class response.
        CONFLICT: Illegal state transition, maps to a 409-class response.
    """

    VALIDATION = "validation"
    CONFLICT = "conflict"


class WorkItemError(Exception):
    """Base class for work item domain and service errors.

    Attributes:
        kind: The error category.
        message: Human-readable error message.
    """

    kind: ErrorKind

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(WorkItemError):
    """Raised when a command or argument fails validation.

    Attributes:
        field: Name of the offending argument, if known.
        message: Human-readable error message.
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidStateError(WorkItemError):
    """Raised when a transition out of a terminal status is attempted.

    Attributes:
        current_status: The terminal status the work item is in.
        target_status: The status that was requested.
        message: Human-readable error message.
    """

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        current_status: "WorkItemStatus",
        target_status: "WorkItemStatus",
        message: Optional[str] = None,
    ):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message
            or "Completed work items cannot transition to a new state."
        )
