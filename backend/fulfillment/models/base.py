"""Shared column helpers for database models.

SQLModel cannot share `sa_column` instances between tables, so common
columns are declared with `sa_type` and default factories instead.
"""

from datetime import UTC, datetime

from ulid import ULID


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def new_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())
