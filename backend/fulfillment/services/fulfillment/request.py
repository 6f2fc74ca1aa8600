"""Fulfillment request value objects."""

from dataclasses import dataclass
from typing import Any

from fulfillment.models.enums import DocumentType, RecordStatus
from fulfillment.services.fulfillment.exceptions import InvalidFulfillmentRequest
from fulfillment.services.fulfillment.records import validate_record_id


@dataclass(frozen=True)
class TransferLine:
    variant_id: str
    quantity: int

    def as_dict(self) -> dict[str, Any]:
        return {"variant_id": self.variant_id, "quantity": self.quantity}


@dataclass(frozen=True)
class FulfillmentRequest:
    """Move stock for one order/requisition from the central location to its destination.

    Lines are applied in the given order. `target_status` is written to the
    record only if every step succeeds.
    """

    record_id: str
    document_type: DocumentType
    lines: tuple[TransferLine, ...]
    target_status: RecordStatus
    scope: str | None = None  # Defaults to the record's destination for scoped document types
    check_low_stock: bool = True
    low_stock_threshold: int | None = None  # Overrides each source line's reorder_threshold
    assign_document_number: bool = True

    def validate(self) -> None:
        """Reject malformed requests before any transaction is opened."""
        validate_record_id(self.record_id)
        if not isinstance(self.document_type, DocumentType):
            raise InvalidFulfillmentRequest(f"Unknown document type: {self.document_type!r}")
        if not isinstance(self.target_status, RecordStatus):
            raise InvalidFulfillmentRequest(f"Unknown target status: {self.target_status!r}")
        if not self.lines:
            raise InvalidFulfillmentRequest("Fulfillment request has no transfer lines")
        for position, line in enumerate(self.lines, start=1):
            if not line.variant_id or not line.variant_id.strip():
                raise InvalidFulfillmentRequest(f"Line {position}: missing variant ID")
            if isinstance(line.quantity, bool) or not isinstance(line.quantity, int):
                raise InvalidFulfillmentRequest(f"Line {position}: quantity must be an integer")
            if line.quantity <= 0:
                raise InvalidFulfillmentRequest(f"Line {position}: quantity must be positive, got {line.quantity}")
