"""Sequence counter and sequence audit models."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from fulfillment.models.base import utc_now
from fulfillment.models.enums import (
    DOCUMENT_TYPE_ENUM,
    SEQUENCE_AUDIT_ACTION_ENUM,
    DocumentType,
    SequenceAuditAction,
)

# Exactly one counter per (document_type, scope); lazily created on first use
SEQUENCE_COUNTER_CONSTRAINT = UniqueConstraint("document_type", "scope", name="uq_sequence_counter_type_scope")

# Two scopes of one document type must not print the same token in their numbers
SEQUENCE_TOKEN_CONSTRAINT = UniqueConstraint("document_type", "number_token", name="uq_sequence_counter_type_token")


class SequenceCounter(SQLModel, table=True):
    """Monotonic counter for one document type within one scope.

    `value` is the last number handed out (0 = nothing minted yet). It only
    moves backwards through an administrative reset.
    """

    __tablename__ = "sequence_counters"
    __table_args__ = (
        SEQUENCE_COUNTER_CONSTRAINT,
        SEQUENCE_TOKEN_CONSTRAINT,
        CheckConstraint("value >= 0", name="ck_sequence_counter_value_non_negative"),
    )

    id: int | None = Field(default=None, primary_key=True)
    document_type: DocumentType = Field(sa_type=DOCUMENT_TYPE_ENUM, nullable=False)
    scope: str = Field(max_length=64)
    number_token: str = Field(default="", max_length=16)  # Empty for the global scope
    value: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)


class SequenceAuditEntry(SQLModel, table=True):
    """Append-only log of overrides, resets and scope initializations."""

    __tablename__ = "sequence_audit_log"

    id: int | None = Field(default=None, primary_key=True)
    action: SequenceAuditAction = Field(sa_type=SEQUENCE_AUDIT_ACTION_ENUM, nullable=False)
    document_type: DocumentType = Field(sa_type=DOCUMENT_TYPE_ENUM, nullable=False)
    scope: str = Field(max_length=64)
    actor_id: str = Field(max_length=64)
    actor_role: str = Field(max_length=32)
    record_id: str | None = Field(default=None, max_length=26)
    previous_value: str | None = Field(default=None, max_length=64)
    new_value: str = Field(max_length=64)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
