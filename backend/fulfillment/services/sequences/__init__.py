"""Document numbering package."""

from fulfillment.services.sequences.admin_service import SequenceAdminService, SequencePeek
from fulfillment.services.sequences.formatting import (
    DOCUMENT_CONFIG,
    GLOBAL_SCOPE,
    DocumentNumber,
    format_document_number,
    parse_document_number,
)
from fulfillment.services.sequences.sequence_service import SequenceService

__all__ = [
    "DOCUMENT_CONFIG",
    "GLOBAL_SCOPE",
    "DocumentNumber",
    "SequenceAdminService",
    "SequencePeek",
    "SequenceService",
    "format_document_number",
    "parse_document_number",
]
