"""Custom SQLAlchemy types for the application."""

from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Enum, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator
from ulid import ULID


class ULIDType(TypeDecorator[str]):
    """SQLAlchemy type that stores ULID as UUID.

    - Database: UUID on PostgreSQL, CHAR(32) elsewhere
    - Python: ULID object or string
    - API: 26-character string
    """

    impl = Uuid
    cache_ok = True

    def process_bind_param(self, value: str | ULID | None, dialect: Any) -> UUID | None:
        """Convert ULID string/object to UUID for storage."""
        if value is None:
            return None
        if isinstance(value, str):
            value = ULID.from_str(value)
        if isinstance(value, ULID):
            return value.to_uuid()
        raise ValueError(f"Cannot convert {type(value)} to ULID")

    def process_result_value(self, value: UUID | None, dialect: Any) -> str | None:
        """Convert UUID back to ULID string."""
        if value is None:
            return None
        return str(ULID.from_uuid(value))


# JSONB on PostgreSQL, plain JSON on SQLite (tests)
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


def str_enum_type(enum_cls: type[StrEnum], name: str) -> Enum:
    """Enum column stored as VARCHAR of member values.

    Non-native so the same schema works on PostgreSQL and SQLite without
    CREATE TYPE migrations for every status change.
    """
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda e: [member.value for member in e],
    )
