"""Enum definitions for database models."""

from enum import StrEnum

from fulfillment.models.types import str_enum_type


class DocumentType(StrEnum):
    """Kind of physical paperwork a document number is minted for."""

    RAW_MATERIAL_RECEIPT = "raw_material_receipt"
    FINISHED_GOODS_RECEIPT = "finished_goods_receipt"


class RecordStatus(StrEnum):
    """Lifecycle status shared by orders and material requisitions."""

    PENDING = "pending"
    APPROVED = "approved"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FulfillmentOutcome(StrEnum):
    """Terminal outcome of a fulfillment attempt."""

    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class SequenceAuditAction(StrEnum):
    """Administrative actions on document numbering that bypass `next()`."""

    OVERRIDE = "override"
    RESET = "reset"
    INITIALIZE = "initialize"


DOCUMENT_TYPE_ENUM = str_enum_type(DocumentType, "documenttype")
RECORD_STATUS_ENUM = str_enum_type(RecordStatus, "recordstatus")
FULFILLMENT_OUTCOME_ENUM = str_enum_type(FulfillmentOutcome, "fulfillmentoutcome")
SEQUENCE_AUDIT_ACTION_ENUM = str_enum_type(SequenceAuditAction, "sequenceauditaction")
