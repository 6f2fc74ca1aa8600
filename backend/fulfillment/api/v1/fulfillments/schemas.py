"""API schemas for fulfillment endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from fulfillment.models.enums import DocumentType, FulfillmentOutcome, RecordStatus
from fulfillment.models.fulfillment_record import FulfillmentRecord
from fulfillment.services.fulfillment.request import FulfillmentRequest, TransferLine
from fulfillment.utils.datetime_utils import api_isoformat

# =============================================================================
# Request Schemas
# =============================================================================


class TransferLineRequest(BaseModel):
    variant_id: str
    quantity: int


class FulfillmentCreateRequest(BaseModel):
    """Body of POST /fulfillments."""

    record_id: str
    document_type: DocumentType
    target_status: RecordStatus
    lines: list[TransferLineRequest] = Field(min_length=1)
    scope: str | None = None
    check_low_stock: bool = True
    low_stock_threshold: int | None = None
    assign_document_number: bool = True

    def to_request(self) -> FulfillmentRequest:
        return FulfillmentRequest(
            record_id=self.record_id,
            document_type=self.document_type,
            lines=tuple(TransferLine(variant_id=line.variant_id, quantity=line.quantity) for line in self.lines),
            target_status=self.target_status,
            scope=self.scope,
            check_low_stock=self.check_low_stock,
            low_stock_threshold=self.low_stock_threshold,
            assign_document_number=self.assign_document_number,
        )


# =============================================================================
# Response Schemas
# =============================================================================


class FulfillmentResponse(BaseModel):
    """Outcome of one fulfillment attempt."""

    id: str
    record_id: str
    document_type: DocumentType
    scope: str
    target_status: RecordStatus
    outcome: FulfillmentOutcome
    document_number: str | None
    lines: list[dict[str, Any]]
    events: list[dict[str, Any]]
    error_type: str | None
    error: str | None
    started_at: datetime
    finished_at: datetime

    @field_serializer("started_at", "finished_at")
    def serialize_timestamps(self, dt: datetime) -> str | None:
        """Serialize datetime to API timezone."""
        return api_isoformat(dt)

    @classmethod
    def from_model(cls, record: FulfillmentRecord) -> "FulfillmentResponse":
        return cls(
            id=record.id,
            record_id=record.record_id,
            document_type=record.document_type,
            scope=record.scope,
            target_status=record.target_status,
            outcome=record.outcome,
            document_number=record.document_number,
            lines=record.lines,
            events=record.events,
            error_type=record.error_type,
            error=record.error,
            started_at=record.started_at,
            finished_at=record.finished_at,
        )
