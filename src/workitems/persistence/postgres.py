"""PostgreSQL repository for work item persistence.

This module implements the WorkItemRepository protocol using asyncpg for
async PostgreSQL access. It provides:
- Connection pooling with a per-command timeout
- Conditional single-row status updates
- Atomic bulk transitions with row-level locking
- An audit trail of applied transitions, tagged with correlation ids

The repository expects the schema from migrations/001_work_items.sql to be
applied before use.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Collection, List, Optional
from uuid import UUID

import asyncpg

from src.workitems.service.models import BulkTransitionResult, WorkItemDto
from src.workitems.state.models import (
    TERMINAL_STATUSES,
    WorkItemPriority,
    WorkItemStatus,
    as_utc,
)


logger = logging.getLogger(__name__)


SELECT_PROJECTION = """
    id,
    tenant_id,
    title,
    description,
    status,
    priority,
    created_at_utc,
    updated_at_utc,
    created_by,
    updated_by
"""

TERMINAL_STATUS_VALUES = sorted(status.value for status in TERMINAL_STATUSES)


class DatabaseError(Exception):
    """Raised when a database operation fails.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


def _parse_status(value: str) -> WorkItemStatus:
    try:
        return WorkItemStatus(value)
    except ValueError:
        raise DatabaseError(f"Unknown work item status value '{value}'.") from None


def _parse_priority(value: str) -> WorkItemPriority:
    try:
        return WorkItemPriority(value)
    except ValueError:
        raise DatabaseError(f"Unknown work item priority value '{value}'.") from None


def _row_to_dto(row: Any) -> WorkItemDto:
    return WorkItemDto(
        id=row["id"],
        tenant_id=row["tenant_id"],
        title=row["title"],
        description=row["description"],
        status=_parse_status(row["status"]),
        priority=_parse_priority(row["priority"]),
        created_at=as_utc(row["created_at_utc"]),
        updated_at=as_utc(row["updated_at_utc"]),
        created_by=row["created_by"],
        updated_by=row["updated_by"],
    )


class PostgresWorkItemRepository:
    """PostgreSQL implementation of the WorkItemRepository protocol.

    Attributes:
        connection_string: PostgreSQL connection URL.
        min_pool_size: Minimum connections in pool.
        max_pool_size: Maximum connections in pool.
        command_timeout: Seconds before a single statement is aborted.

    Example:
        >>> async with PostgresWorkItemRepository("postgresql://...") as repo:
        ...     item = await repo.get_by_id(tenant_id, work_item_id)
    """

    def __init__(
        self,
        connection_string: str,
        min_pool_size: int = 2,
        max_pool_size: int = 10,
        command_timeout: Optional[float] = 30.0,
    ):
        self.connection_string = connection_string
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool, raising if not connected.

        Raises:
            DatabaseError: If the pool is not initialized.
        """
        if self._pool is None:
            raise DatabaseError(
                "Database pool not initialized. Call connect() first."
            )
        return self._pool

    async def connect(self) -> None:
        """Initialize the connection pool.

        Raises:
            DatabaseError: If connection fails.
        """
        if self._pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            logger.info(
                "Connecting to PostgreSQL",
                extra={
                    "min_pool_size": self.min_pool_size,
                    "max_pool_size": self.max_pool_size,
                },
            )
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout,
            )
            logger.info("PostgreSQL connection pool established")
        except Exception as e:
            logger.error(
                "Failed to connect to PostgreSQL",
                extra={"error": str(e)},
            )
            raise DatabaseError(
                f"Failed to connect to PostgreSQL: {e}",
                original_error=e,
            ) from e

    async def disconnect(self) -> None:
        if self._pool is not None:
            logger.info("Closing PostgreSQL connection pool")
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "PostgresWorkItemRepository":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection with an active transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

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
        """Insert a new work item in the New status.

        Raises:
            DatabaseError: If the insert fails.
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO work_items (
                        id,
                        tenant_id,
                        title,
                        description,
                        status,
                        priority,
                        created_at_utc,
                        updated_at_utc,
                        created_by,
                        updated_by
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $7, $8, $8)
                    RETURNING {SELECT_PROJECTION}
                    """,
                    id,
                    tenant_id,
                    title,
                    description,
                    WorkItemStatus.NEW.value,
                    priority.value,
                    as_utc(created_at),
                    created_by,
                )
                return _row_to_dto(row)

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "Failed to create work item",
                extra={"tenant_id": str(tenant_id), "work_item_id": str(id), "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to create work item: {e}",
                original_error=e,
            ) from e

    async def get_by_id(self, tenant_id: UUID, id: UUID) -> Optional[WorkItemDto]:
        """Get a work item by tenant and id.

        Raises:
            DatabaseError: If the query fails.
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    SELECT {SELECT_PROJECTION}
                    FROM work_items
                    WHERE tenant_id = $1 AND id = $2
                    """,
                    tenant_id,
                    id,
                )
                return _row_to_dto(row) if row is not None else None

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "Failed to get work item",
                extra={"tenant_id": str(tenant_id), "work_item_id": str(id), "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to get work item: {e}",
                original_error=e,
            ) from e

    async def list(
        self,
        tenant_id: UUID,
        status: Optional[WorkItemStatus],
        offset: int,
        limit: int,
    ) -> List[WorkItemDto]:
        """List a slice of a tenant's work items, newest first.

        Raises:
            DatabaseError: If the query fails.
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {SELECT_PROJECTION}
                    FROM work_items
                    WHERE tenant_id = $1
                      AND ($2::text IS NULL OR status = $2)
                    ORDER BY created_at_utc DESC
                    OFFSET $3
                    LIMIT $4
                    """,
                    tenant_id,
                    status.value if status is not None else None,
                    offset,
                    limit,
                )
                return [_row_to_dto(row) for row in rows]

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "Failed to list work items",
                extra={"tenant_id": str(tenant_id), "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to list work items: {e}",
                original_error=e,
            ) from e

    async def count(self, tenant_id: UUID, status: Optional[WorkItemStatus]) -> int:
        """Count a tenant's work items with the same filter as list().

        Raises:
            DatabaseError: If the query fails.
        """
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    """
                    SELECT COUNT(*)
                    FROM work_items
                    WHERE tenant_id = $1
                      AND ($2::text IS NULL OR status = $2)
                    """,
                    tenant_id,
                    status.value if status is not None else None,
                )

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "Failed to count work items",
                extra={"tenant_id": str(tenant_id), "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to count work items: {e}",
                original_error=e,
            ) from e

    async def update_status(
        self,
        tenant_id: UUID,
        id: UUID,
        target_status: WorkItemStatus,
        updated_by: str,
        updated_at: datetime,
    ) -> Optional[WorkItemDto]:
        """Conditionally move a work item to a new status.

        The UPDATE only matches a row of the tenant whose status is not
        terminal and differs from the target. The audit row is written in
        the same transaction.

        Returns:
            The updated work item, or None if no row matched.

        Raises:
            DatabaseError: If the update fails.
        """
        try:
            async with self._transaction() as conn:
                previous_status = await conn.fetchval(
                    """
                    SELECT status
                    FROM work_items
                    WHERE tenant_id = $1 AND id = $2
                    FOR UPDATE
                    """,
                    tenant_id,
                    id,
                )

                row = await conn.fetchrow(
                    f"""
                    UPDATE work_items
                    SET
                        status = $3,
                        updated_at_utc = GREATEST(updated_at_utc, $4),
                        updated_by = $5
                    WHERE tenant_id = $1
                      AND id = $2
                      AND status <> ALL($6::text[])
                      AND status <> $3
                    RETURNING {SELECT_PROJECTION}
                    """,
                    tenant_id,
                    id,
                    target_status.value,
                    as_utc(updated_at),
                    updated_by,
                    TERMINAL_STATUS_VALUES,
                )

                if row is None:
                    logger.info(
                        "Conditional status update matched no rows",
                        extra={
                            "tenant_id": str(tenant_id),
                            "work_item_id": str(id),
                            "target_status": target_status.value,
                        },
                    )
                    return None

                await conn.execute(
                    """
                    INSERT INTO work_item_transitions (
                        tenant_id,
                        work_item_id,
                        from_status,
                        to_status,
                        changed_by,
                        changed_at_utc,
                        correlation_id
                    ) VALUES ($1, $2, $3, $4, $5, $6, NULL)
                    """,
                    tenant_id,
                    id,
                    previous_status,
                    target_status.value,
                    updated_by,
                    as_utc(updated_at),
                )

                return _row_to_dto(row)

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "Failed to update work item status",
                extra={"tenant_id": str(tenant_id), "work_item_id": str(id), "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to update work item status: {e}",
                original_error=e,
            ) from e

    async def bulk_transition(
        self,
        tenant_id: UUID,
        work_item_ids: Collection[UUID],
        target_status: WorkItemStatus,
        changed_by: str,
        correlation_id: str,
    ) -> BulkTransitionResult:
        """Atomically transition every eligible work item.

        Candidate rows are locked with SELECT ... FOR UPDATE, which waits
        for concurrent writers and then reads the latest committed status.
        Eligibility is decided on those locked rows, so two overlapping
        bulk calls serialize on each shared row and only one counts it as
        updated. One audit row is written per updated item.

        Raises:
            DatabaseError: If the transaction fails.
        """
        distinct_ids = list(dict.fromkeys(work_item_ids))
        changed_at = datetime.now(timezone.utc)

        try:
            async with self._transaction() as conn:
                updated_rows = await conn.fetch(
                    """
                    WITH candidates AS (
                        SELECT id, status
                        FROM work_items
                        WHERE tenant_id = $1 AND id = ANY($2::uuid[])
                        ORDER BY id
                        FOR UPDATE
                    ),
                    updated AS (
                        UPDATE work_items AS w
                        SET
                            status = $3,
                            updated_at_utc = GREATEST(w.updated_at_utc, $4),
                            updated_by = $5
                        FROM candidates AS c
                        WHERE w.tenant_id = $1
                          AND w.id = c.id
                          AND c.status <> ALL($7::text[])
                          AND c.status <> $3
                        RETURNING w.id, c.status AS from_status
                    )
                    INSERT INTO work_item_transitions (
                        tenant_id,
                        work_item_id,
                        from_status,
                        to_status,
                        changed_by,
                        changed_at_utc,
                        correlation_id
                    )
                    SELECT $1, id, from_status, $3, $5, $4, $6
                    FROM updated
                    RETURNING work_item_id
                    """,
                    tenant_id,
                    distinct_ids,
                    target_status.value,
                    changed_at,
                    changed_by,
                    correlation_id,
                    TERMINAL_STATUS_VALUES,
                )

            updated_count = len(updated_rows)
            result = BulkTransitionResult(
                updated_count=updated_count,
                rejected_count=len(distinct_ids) - updated_count,
            )

            logger.info(
                "Applied bulk transition",
                extra={
                    "tenant_id": str(tenant_id),
                    "correlation_id": correlation_id,
                    "updated_count": result.updated_count,
                    "rejected_count": result.rejected_count,
                },
            )

            return result

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "Failed to apply bulk transition",
                extra={
                    "tenant_id": str(tenant_id),
                    "correlation_id": correlation_id,
                    "error": str(e),
                },
            )
            raise DatabaseError(
                f"Failed to apply bulk transition: {e}",
                original_error=e,
            ) from e

    async def health_check(self) -> bool:
        """Check if the database connection is healthy."""
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.warning(
                "Database health check failed",
                extra={"error": str(e)},
            )
            return False
