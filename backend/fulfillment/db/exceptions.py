"""Translation of SQLAlchemy/DBAPI errors into service exceptions."""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import structlog
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from fulfillment.services.exceptions import (
    ConcurrencyConflict,
    ServiceError,
    StorageUnavailable,
    ValidationError,
)

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# PostgreSQL SQLSTATEs for serialization failure, deadlock and lock_not_available
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    # asyncpg exposes `sqlstate`, psycopg exposes `pgcode`
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_conflict_error(exc: SQLAlchemyError) -> bool:
    """Whether the error signals contention rather than an unreachable store."""
    if isinstance(exc, DBAPIError):
        if _sqlstate(exc) in _CONFLICT_SQLSTATES:
            return True
        text = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
        return "database is locked" in text or "deadlock" in text or "could not serialize" in text
    return False


def translate_db_error(exc: SQLAlchemyError) -> ServiceError:
    """Map a SQLAlchemy error to the service taxonomy."""
    if is_conflict_error(exc):
        return ConcurrencyConflict(f"Concurrent update conflict: {exc.__class__.__name__}")
    if isinstance(exc, IntegrityError):
        return ValidationError(f"Integrity constraint violated: {exc.orig}")
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)):
        return StorageUnavailable(f"Database unavailable: {exc.__class__.__name__}")
    return StorageUnavailable(f"Database error: {exc.__class__.__name__}")


def translate_db_errors(fn: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Decorator re-raising SQLAlchemy errors from a service method as service exceptions."""

    @wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as e:
            translated = translate_db_error(e)
            logger.warning(
                "Database error translated",
                operation=fn.__qualname__,
                error_type=e.__class__.__name__,
                translated=translated.__class__.__name__,
            )
            raise translated from e

    return wrapper
