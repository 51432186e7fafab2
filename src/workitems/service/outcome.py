"""Tagged outcomes for work item operations.

Callers at the transport boundary should not need to know which exception
classes the service raises. run_operation() awaits a service call and
folds its result into an Outcome whose kind is one of:

- SUCCESS: the operation produced a value
- NOT_FOUND: the operation returned None
- VALIDATION: the service raised a ValidationError
- CONFLICT: the service raised an InvalidStateError

Storage failures are not folded; they propagate to the caller.
"""

from enum import Enum
from typing import Awaitable, Generic, Optional, TypeVar

from pydantic import BaseModel

from src.workitems.errors import ErrorKind, WorkItemError


T = TypeVar("T")


class OutcomeKind(str, Enum):
    """Observable class of an operation result."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"


_ERROR_KINDS = {
    ErrorKind.VALIDATION: OutcomeKind.VALIDATION,
    ErrorKind.CONFLICT: OutcomeKind.CONFLICT,
}


class Outcome(BaseModel, Generic[T]):
    """Result of a work item operation.

    Attributes:
        kind: The outcome class.
        value: The result for SUCCESS outcomes.
        message: Error message for VALIDATION and CONFLICT outcomes.
        field: Offending argument for VALIDATION outcomes, if known.
    """

    kind: OutcomeKind
    value: Optional[T] = None
    message: Optional[str] = None
    field: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(kind=OutcomeKind.SUCCESS, value=value)

    @classmethod
    def not_found(cls) -> "Outcome[T]":
        return cls(kind=OutcomeKind.NOT_FOUND)

    @classmethod
    def from_error(cls, error: WorkItemError) -> "Outcome[T]":
        return cls(
            kind=_ERROR_KINDS[error.kind],
            message=error.message,
            field=getattr(error, "field", None),
        )


async def run_operation(operation: Awaitable[Optional[T]]) -> Outcome[T]:
    """Await a service call and fold its result into an Outcome.

    Example:
        >>> outcome = await run_operation(service.get_by_id(tenant_id, id))
        >>> if outcome.kind == OutcomeKind.NOT_FOUND:
        ...     ...
    """
    try:
        value = await operation
    except WorkItemError as e:
        return Outcome.from_error(e)

    if value is None:
        return Outcome.not_found()
    return Outcome.success(value)
