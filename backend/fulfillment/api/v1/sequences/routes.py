"""Document sequence administration endpoints.

The acting role comes from the `X-Actor-Role` header; every command checks
it before touching the database.
"""

import structlog
from fastapi import APIRouter

from fulfillment.api.v1.dependencies import ActorDep, SequenceAdminServiceDep
from fulfillment.api.v1.errors import http_error
from fulfillment.api.v1.sequences.schemas import (
    DocumentNumberResponse,
    GenerateSequenceRequest,
    InitializeSequenceRequest,
    InitializeSequenceResponse,
    OverrideSequenceRequest,
    OverrideSequenceResponse,
    ResetSequenceRequest,
    ResetSequenceResponse,
    SequenceCounterResponse,
    SequenceListResponse,
    SequencePeekResponse,
)
from fulfillment.models.enums import DocumentType
from fulfillment.services.exceptions import ServiceError
from fulfillment.services.sequences.formatting import normalize_scope

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["sequences"])


@router.get("/sequences", response_model=SequencePeekResponse, operation_id="peekSequence")
async def peek_sequence(
    document_type: DocumentType,
    service: SequenceAdminServiceDep,
    actor: ActorDep,
    scope: str | None = None,
) -> SequencePeekResponse:
    """Current counter value without consuming a number."""
    try:
        peek = await service.peek_sequence(actor, document_type, scope)
    except ServiceError as e:
        raise http_error(e) from e
    return SequencePeekResponse.from_peek(peek)


@router.get("/sequences/all", response_model=SequenceListResponse, operation_id="listSequences")
async def list_sequences(
    service: SequenceAdminServiceDep,
    actor: ActorDep,
) -> SequenceListResponse:
    """All counters, ordered by document type and scope."""
    try:
        counters = await service.list_sequences(actor)
    except ServiceError as e:
        raise http_error(e) from e
    return SequenceListResponse(sequences=[SequenceCounterResponse.from_model(c) for c in counters])


@router.post("/sequences/generate", response_model=DocumentNumberResponse, operation_id="generateSequence")
async def generate_sequence(
    body: GenerateSequenceRequest,
    service: SequenceAdminServiceDep,
    actor: ActorDep,
) -> DocumentNumberResponse:
    """Mint the next document number outside of a fulfillment."""
    try:
        number = await service.generate_sequence(actor, body.document_type, body.scope)
    except ServiceError as e:
        raise http_error(e) from e
    return DocumentNumberResponse.from_number(number)


@router.put("/sequences/override", response_model=OverrideSequenceResponse, operation_id="overrideSequence")
async def override_sequence(
    body: OverrideSequenceRequest,
    service: SequenceAdminServiceDep,
    actor: ActorDep,
) -> OverrideSequenceResponse:
    """Stamp an explicit document number on a record. The counter is not touched."""
    try:
        record = await service.override_sequence(
            actor, body.document_type, body.record_id, body.document_number, body.scope
        )
    except ServiceError as e:
        raise http_error(e) from e
    return OverrideSequenceResponse.from_record(record)


@router.patch("/sequences/reset", response_model=ResetSequenceResponse, operation_id="resetSequence")
async def reset_sequence(
    body: ResetSequenceRequest,
    service: SequenceAdminServiceDep,
    actor: ActorDep,
) -> ResetSequenceResponse:
    """Set a counter to an explicit value; the next number minted is value + 1."""
    try:
        previous = await service.reset_sequence(actor, body.document_type, body.scope, body.value)
    except ServiceError as e:
        raise http_error(e) from e
    return ResetSequenceResponse(
        document_type=body.document_type,
        scope=normalize_scope(body.document_type, body.scope),
        previous_value=previous,
        current_value=body.value,
    )


@router.post("/sequences/initialize", response_model=InitializeSequenceResponse, operation_id="initializeSequence")
async def initialize_sequence(
    body: InitializeSequenceRequest,
    service: SequenceAdminServiceDep,
    actor: ActorDep,
) -> InitializeSequenceResponse:
    """Create a counter at 0 for a new destination. Idempotent."""
    try:
        created = await service.initialize_scope(actor, body.document_type, body.scope)
    except ServiceError as e:
        raise http_error(e) from e
    return InitializeSequenceResponse(
        document_type=body.document_type,
        scope=normalize_scope(body.document_type, body.scope),
        created=created,
    )
