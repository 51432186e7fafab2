"""Work item persistence.

- PostgresWorkItemRepository: asyncpg implementation with atomic bulk
  transitions and an audit trail
- InMemoryWorkItemRepository: in-process implementation for local
  development and tests
"""

from src.workitems.persistence.memory import (
    InMemoryWorkItemRepository,
    TransitionRecord,
)
from src.workitems.persistence.postgres import (
    DatabaseError,
    PostgresWorkItemRepository,
)

__all__ = [
    "DatabaseError",
    "InMemoryWorkItemRepository",
    "PostgresWorkItemRepository",
    "TransitionRecord",
]
