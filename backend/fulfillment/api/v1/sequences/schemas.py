"""API schemas for sequence administration endpoints."""

from datetime import datetime

from pydantic import BaseModel, field_serializer

from fulfillment.models.enums import DocumentType
from fulfillment.models.records import FulfillableRecord
from fulfillment.models.sequence import SequenceCounter
from fulfillment.services.sequences.admin_service import SequencePeek
from fulfillment.services.sequences.formatting import DocumentNumber
from fulfillment.utils.datetime_utils import api_isoformat

# =============================================================================
# Request Schemas
# =============================================================================


class GenerateSequenceRequest(BaseModel):
    document_type: DocumentType
    scope: str | None = None


class OverrideSequenceRequest(BaseModel):
    document_type: DocumentType
    record_id: str
    document_number: str
    scope: str | None = None  # Audit scope, defaults to the record's destination


class ResetSequenceRequest(BaseModel):
    document_type: DocumentType
    scope: str | None = None
    value: int


class InitializeSequenceRequest(BaseModel):
    document_type: DocumentType
    scope: str


# =============================================================================
# Response Schemas
# =============================================================================


class SequencePeekResponse(BaseModel):
    document_type: DocumentType
    scope: str
    current_value: int
    formatted: str | None

    @classmethod
    def from_peek(cls, peek: SequencePeek) -> "SequencePeekResponse":
        return cls(
            document_type=peek.document_type,
            scope=peek.scope,
            current_value=peek.current_value,
            formatted=peek.formatted,
        )


class SequenceCounterResponse(BaseModel):
    document_type: DocumentType
    scope: str
    value: int
    updated_at: datetime

    @field_serializer("updated_at")
    def serialize_updated_at(self, dt: datetime) -> str | None:
        """Serialize datetime to API timezone."""
        return api_isoformat(dt)

    @classmethod
    def from_model(cls, counter: SequenceCounter) -> "SequenceCounterResponse":
        return cls(
            document_type=counter.document_type,
            scope=counter.scope,
            value=counter.value,
            updated_at=counter.updated_at,
        )


class SequenceListResponse(BaseModel):
    sequences: list[SequenceCounterResponse]


class DocumentNumberResponse(BaseModel):
    number: str
    sequence: int
    prefix: str
    scope: str

    @classmethod
    def from_number(cls, number: DocumentNumber) -> "DocumentNumberResponse":
        return cls(number=number.number, sequence=number.sequence, prefix=number.prefix, scope=number.scope)


class OverrideSequenceResponse(BaseModel):
    record_id: str
    document_number: str | None

    @classmethod
    def from_record(cls, record: FulfillableRecord) -> "OverrideSequenceResponse":
        return cls(
            record_id=record.id,  # type: ignore[attr-defined]
            document_number=record.document_number,
        )


class ResetSequenceResponse(BaseModel):
    document_type: DocumentType
    scope: str
    previous_value: int
    current_value: int


class InitializeSequenceResponse(BaseModel):
    document_type: DocumentType
    scope: str
    created: bool
