"""Document number configuration, formatting and parsing.

Format: ``<PREFIX>-[<SCOPE>-]<SEQUENCE>``, e.g. ``RM-00042`` or ``FG-D1-0001``.
The scope token is only present for per-destination counters.
"""

import re
from dataclasses import dataclass

from fulfillment.models.enums import DocumentType
from fulfillment.models.records import FulfillableRecord, MaterialRequisition, Order
from fulfillment.services.sequences.exceptions import InvalidDocumentNumber, UnsupportedDocumentType

GLOBAL_SCOPE = "global"
SCOPE_TOKEN_LENGTH = 3


@dataclass(frozen=True)
class DocumentTypeConfig:
    """Static numbering rules for one document type."""

    prefix: str
    min_length: int
    scoped: bool  # One counter per destination instead of one global counter
    record_model: type[FulfillableRecord]
    stamp_on_fulfillment: bool = True


DOCUMENT_CONFIG: dict[DocumentType, DocumentTypeConfig] = {
    DocumentType.RAW_MATERIAL_RECEIPT: DocumentTypeConfig(
        prefix="RM",
        min_length=5,
        scoped=False,
        record_model=MaterialRequisition,
    ),
    DocumentType.FINISHED_GOODS_RECEIPT: DocumentTypeConfig(
        prefix="FG",
        min_length=4,
        scoped=True,
        record_model=Order,
    ),
}

_DOCUMENT_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?:(?P<scope>[A-Z0-9]+)-)?(?P<sequence>\d+)$")


@dataclass(frozen=True)
class DocumentNumber:
    """A formatted document number together with the counter value it came from."""

    number: str
    sequence: int
    prefix: str
    scope: str

    def __str__(self) -> str:
        return self.number


@dataclass(frozen=True)
class ParsedDocumentNumber:
    prefix: str
    sequence: int
    scope_token: str | None = None


def get_document_config(document_type: DocumentType) -> DocumentTypeConfig:
    try:
        return DOCUMENT_CONFIG[document_type]
    except KeyError:
        raise UnsupportedDocumentType(f"Unsupported document type: {document_type}") from None


def normalize_scope(document_type: DocumentType, scope: str | None) -> str:
    """Resolve the counter scope for a document type.

    Unscoped types always use the global counter. Scoped types fall back to
    the global counter when no destination is given.
    """
    config = get_document_config(document_type)
    if not config.scoped or scope is None:
        return GLOBAL_SCOPE
    scope = scope.strip()
    if not scope:
        return GLOBAL_SCOPE
    return scope


def scope_token(scope: str) -> str:
    """Short upper-case token used inside the document number."""
    token = re.sub(r"[^A-Za-z0-9]", "", scope)[:SCOPE_TOKEN_LENGTH].upper()
    if not token:
        raise InvalidDocumentNumber(f"Scope {scope!r} has no usable characters for a document number")
    return token


def number_token(scope: str) -> str:
    """Token a counter prints into its numbers; empty for the global counter."""
    return "" if scope == GLOBAL_SCOPE else scope_token(scope)


def format_document_number(document_type: DocumentType, scope: str, sequence: int) -> DocumentNumber:
    """Format a counter value as a document number."""
    config = get_document_config(document_type)
    sequence_str = str(sequence).zfill(config.min_length)
    token = number_token(scope)
    number = f"{config.prefix}-{token}-{sequence_str}" if token else f"{config.prefix}-{sequence_str}"
    return DocumentNumber(number=number, sequence=sequence, prefix=config.prefix, scope=scope)


def parse_document_number(value: str) -> ParsedDocumentNumber | None:
    """Split a document number into prefix, optional scope token and sequence."""
    if not value:
        return None
    match = _DOCUMENT_NUMBER_RE.match(value.strip())
    if not match:
        return None
    return ParsedDocumentNumber(
        prefix=match.group("prefix"),
        sequence=int(match.group("sequence")),
        scope_token=match.group("scope"),
    )


def validate_document_number(document_type: DocumentType, value: str) -> ParsedDocumentNumber:
    """Check that a hand-typed number has the right shape for its document type.

    Only the format is checked; collisions with existing numbers are allowed.
    """
    config = get_document_config(document_type)
    parsed = parse_document_number(value)
    if parsed is None or parsed.prefix != config.prefix:
        expected = f"{config.prefix}-[SCOPE-]SEQUENCE" if config.scoped else f"{config.prefix}-SEQUENCE"
        raise InvalidDocumentNumber(f"Invalid document number {value!r}. Expected format: {expected}")
    return parsed
