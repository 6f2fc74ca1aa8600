"""Order and MaterialRequisition models - the records a fulfillment targets."""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from fulfillment.models.base import new_ulid, utc_now
from fulfillment.models.enums import RECORD_STATUS_ENUM, RecordStatus
from fulfillment.models.types import ULIDType


class FulfillableRecord(SQLModel):
    """Columns shared by every record that can receive stock and a document number."""

    destination: str = Field(index=True, max_length=64)
    status: RecordStatus = Field(default=RecordStatus.PENDING, sa_type=RECORD_STATUS_ENUM, nullable=False)

    # Document ("pad") number - minted by SequenceService.next() or set by an override
    document_number: str | None = Field(default=None, index=True, max_length=64)
    document_sequence: int | None = None
    document_prefix: str | None = Field(default=None, max_length=16)

    fulfilled_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)


class Order(FulfillableRecord, table=True):
    """Finished goods order from a retail destination (shop)."""

    __tablename__ = "orders"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    order_number: str = Field(unique=True, index=True, max_length=32)
    notes: str | None = None


class MaterialRequisition(FulfillableRecord, table=True):
    """Raw material requisition from a production destination."""

    __tablename__ = "material_requisitions"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    requisition_number: str = Field(unique=True, index=True, max_length=32)
    requested_by: str | None = Field(default=None, max_length=64)
