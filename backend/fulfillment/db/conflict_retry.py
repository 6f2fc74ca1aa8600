"""Race-condition-safe row creation helper using savepoints."""

from collections.abc import AsyncIterator
from typing import Any

import structlog
from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from fulfillment.services.exceptions import ConcurrencyConflict

logger = structlog.get_logger(__name__)


def violates_constraint(exc: IntegrityError, constraint: UniqueConstraint) -> bool:
    """Check whether an IntegrityError comes from the given unique constraint.

    PostgreSQL reports the constraint name; SQLite reports the column list
    ("UNIQUE constraint failed: stock_lines.location, stock_lines.variant_id").
    """
    error_str = str(exc.orig if exc.orig is not None else exc).lower()
    if constraint.name and str(constraint.name).lower() in error_str:
        return True
    table = constraint.table.name if constraint.table is not None else ""
    columns = [f"{table}.{col.name}".lower() for col in constraint.columns]
    return bool(columns) and "unique" in error_str and all(col in error_str for col in columns)


class CreateOnConflict:
    """Async iterator with savepoint-based retry on unique constraint conflict.

    Each iteration opens a savepoint. The body tries to update an existing
    row and inserts it when missing; if a concurrent transaction inserted the
    same key first, the savepoint is rolled back and the body runs again
    (now finding the row). The outer transaction is never committed here.

    Usage:
        async for attempt in CreateOnConflict(session, SEQUENCE_COUNTER_CONSTRAINT):
            async with attempt:
                value = await update_or_insert()
    """

    def __init__(
        self,
        session: AsyncSession,
        constraint: UniqueConstraint,
        max_retries: int = 5,
    ):
        self.session = session
        self.constraint = constraint
        self.max_retries = max_retries
        self.current_attempt = 0
        self._savepoint: AsyncSessionTransaction | None = None
        self._success = False

        if not self.constraint.name:
            raise ValueError("UniqueConstraint must have a name for conflict detection.")

    async def __aiter__(self) -> AsyncIterator["CreateOnConflict"]:
        while self.current_attempt < self.max_retries and not self._success:
            self.current_attempt += 1
            yield self
        if not self._success:
            raise ConcurrencyConflict(
                f"Failed to create row after {self.max_retries} attempts (constraint: {self.constraint.name})"
            )

    async def __aenter__(self) -> "CreateOnConflict":
        self._savepoint = await self.session.begin_nested()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        savepoint = self._savepoint
        self._savepoint = None
        assert savepoint is not None

        if exc_type is None:
            await savepoint.commit()  # Release the savepoint, outer transaction stays open
            self._success = True
            return False

        await savepoint.rollback()
        if isinstance(exc_val, IntegrityError) and violates_constraint(exc_val, self.constraint):
            logger.warning(
                "Unique constraint conflict, retrying",
                attempt=self.current_attempt,
                max_retries=self.max_retries,
                constraint=self.constraint.name,
            )
            return True  # Suppress exception, allow retry
        return False  # Re-raise everything else
