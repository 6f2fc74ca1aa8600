"""Immutable audit record of a fulfillment attempt."""

from datetime import datetime
from typing import Any

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from fulfillment.models.base import new_ulid, utc_now
from fulfillment.models.enums import (
    DOCUMENT_TYPE_ENUM,
    FULFILLMENT_OUTCOME_ENUM,
    RECORD_STATUS_ENUM,
    DocumentType,
    FulfillmentOutcome,
    RecordStatus,
)
from fulfillment.models.types import JSONVariant, ULIDType


class FulfillmentRecord(SQLModel, table=True):
    """Outcome of one fulfillment attempt. Inserted once, never updated."""

    __tablename__ = "fulfillment_records"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    record_id: str = Field(index=True, max_length=26)
    document_type: DocumentType = Field(sa_type=DOCUMENT_TYPE_ENUM, nullable=False)
    scope: str = Field(max_length=64)
    target_status: RecordStatus = Field(sa_type=RECORD_STATUS_ENUM, nullable=False)
    outcome: FulfillmentOutcome = Field(sa_type=FULFILLMENT_OUTCOME_ENUM, nullable=False)

    document_number: str | None = Field(default=None, max_length=64)
    lines: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSONVariant)
    events: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSONVariant)

    error_type: str | None = Field(default=None, max_length=64)
    error: str | None = None

    started_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
    finished_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
