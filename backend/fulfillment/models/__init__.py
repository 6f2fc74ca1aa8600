"""Database models."""

from sqlmodel import SQLModel

from fulfillment.models.enums import DocumentType, FulfillmentOutcome, RecordStatus, SequenceAuditAction
from fulfillment.models.fulfillment_record import FulfillmentRecord
from fulfillment.models.records import FulfillableRecord, MaterialRequisition, Order
from fulfillment.models.sequence import SequenceAuditEntry, SequenceCounter
from fulfillment.models.stock import Location, StockLine

__all__ = [
    "SQLModel",
    "DocumentType",
    "FulfillmentOutcome",
    "RecordStatus",
    "SequenceAuditAction",
    "FulfillableRecord",
    "FulfillmentRecord",
    "Location",
    "MaterialRequisition",
    "Order",
    "SequenceAuditEntry",
    "SequenceCounter",
    "StockLine",
]
