"""Fulfillment coordinator.

Owns the single transaction in which a fulfillment happens:

1. Lock the target order/requisition.
2. For each line: transfer out of the central location, transfer into the
   destination, optionally evaluate the low-stock threshold.
3. Mint a document number if the document type stamps one on fulfillment.
4. Apply the target status.
5. Commit, then hand events to the notification dispatcher.

Any failure rolls the whole transaction back (stock, status and the
sequence increment together), records a rolled-back FulfillmentRecord and
re-raises. Notifications are only sent for committed attempts.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.config import settings
from fulfillment.db.exceptions import translate_db_error
from fulfillment.models.base import utc_now
from fulfillment.models.enums import FulfillmentOutcome
from fulfillment.models.fulfillment_record import FulfillmentRecord
from fulfillment.models.records import FulfillableRecord
from fulfillment.services.exceptions import ServiceError
from fulfillment.services.fulfillment.exceptions import (
    FulfillmentRecordNotFound,
    InvalidFulfillmentRequest,
    SessionTransactionInProgress,
)
from fulfillment.services.fulfillment.records import load_record, validate_record_id
from fulfillment.services.fulfillment.request import FulfillmentRequest, TransferLine
from fulfillment.services.fulfillment.state import FulfillmentAttempt, FulfillmentState
from fulfillment.services.ledger.exceptions import UnknownVariant
from fulfillment.services.ledger.ledger_service import LedgerService, StockLineMetadata
from fulfillment.services.notifications.dispatcher import NotificationDispatcher
from fulfillment.services.notifications.events import FulfillmentCompletedEvent, LowStockEvent
from fulfillment.services.sequences.formatting import get_document_config, normalize_scope
from fulfillment.services.sequences.sequence_service import SequenceService

logger = structlog.get_logger(__name__)


@dataclass
class _Applied:
    """What steps 2-4 produced inside the transaction."""

    record: FulfillableRecord
    scope: str
    document_number: str | None = None
    low_stock_events: list[LowStockEvent] = field(default_factory=list)


class FulfillmentCoordinator:
    """Runs FulfillmentRequests as all-or-nothing transactions.

    The session must not have a transaction in progress when `fulfill()` is
    called. The coordinator does not deduplicate repeated requests for the
    same record; callers submit each physical event once.
    """

    def __init__(self, session: AsyncSession, dispatcher: NotificationDispatcher):
        self.session = session
        self.dispatcher = dispatcher
        self.ledger = LedgerService(session)
        self.sequences = SequenceService(session)

    async def fulfill(self, request: FulfillmentRequest) -> FulfillmentRecord:
        """Apply a fulfillment request atomically.

        Returns the committed FulfillmentRecord.

        Raises:
            ValidationError: Malformed request or unknown variant (nothing changed).
            NotFoundError: Target record does not exist (nothing changed).
            ConcurrencyConflict: Contention on a counter or stock line; safe to retry.
            StorageUnavailable: Database unreachable or commit failed.
        """
        attempt = FulfillmentAttempt()
        log = logger.bind(record_id=request.record_id, document_type=request.document_type)

        request.validate()
        config = get_document_config(request.document_type)
        if self.session.in_transaction():
            raise SessionTransactionInProgress(
                "fulfill() must open its own transaction; the session already has one in progress"
            )

        attempt.transition(FulfillmentState.IN_TRANSACTION)
        transaction = await self.session.begin()
        try:
            applied = await self._apply(request, config.record_model, attempt)
            fulfillment = FulfillmentRecord(
                record_id=applied.record.id,  # type: ignore[attr-defined]
                document_type=request.document_type,
                scope=applied.scope,
                target_status=request.target_status,
                outcome=FulfillmentOutcome.COMMITTED,
                document_number=applied.document_number,
                lines=[line.as_dict() for line in request.lines],
                events=[event.model_dump(mode="json") for event in applied.low_stock_events],
                started_at=attempt.started_at,
                finished_at=utc_now(),
            )
            self.session.add(fulfillment)
            await self.session.flush()
            await transaction.commit()
        except BaseException as e:
            await self._rollback(log)
            attempt.transition(FulfillmentState.ROLLED_BACK)
            error = translate_db_error(e) if isinstance(e, SQLAlchemyError) else e
            log.warning(
                "Fulfillment rolled back",
                error_type=error.__class__.__name__,
                error=str(error),
            )
            if isinstance(error, Exception):
                await self._record_failure(request, attempt, error, log)
            if error is e:
                raise
            raise error from e

        attempt.transition(FulfillmentState.COMMITTED)
        log.info(
            "Fulfillment committed",
            fulfillment_id=fulfillment.id,
            document_number=fulfillment.document_number,
            lines=len(request.lines),
            low_stock_events=len(applied.low_stock_events),
        )

        self._dispatch_events(applied, fulfillment)
        return fulfillment

    async def get_fulfillment(self, fulfillment_id: str) -> FulfillmentRecord:
        result = await self.session.get(FulfillmentRecord, validate_record_id(fulfillment_id))
        if result is None:
            raise FulfillmentRecordNotFound(f"Fulfillment {fulfillment_id} not found")
        return result

    async def _apply(
        self,
        request: FulfillmentRequest,
        record_model: type[FulfillableRecord],
        attempt: FulfillmentAttempt,
    ) -> _Applied:
        record = await load_record(self.session, record_model, request.record_id, for_update=True)
        config = get_document_config(request.document_type)

        destination = record.destination
        if destination == settings.central_location:
            raise InvalidFulfillmentRequest(f"Record {request.record_id} already targets the central location")

        requested_scope = request.scope if request.scope is not None else destination
        applied = _Applied(record=record, scope=normalize_scope(request.document_type, requested_scope))
        attempt.scope = applied.scope

        for line in request.lines:
            event = await self._transfer_line(line, destination, request)
            if event is not None:
                applied.low_stock_events.append(event)

        if request.assign_document_number and config.stamp_on_fulfillment and record.document_number is None:
            number = await self.sequences.next(request.document_type, applied.scope)
            record.document_number = number.number
            record.document_sequence = number.sequence
            record.document_prefix = number.prefix
        applied.document_number = record.document_number

        now = utc_now()
        record.status = request.target_status
        record.fulfilled_at = now
        record.updated_at = now
        await self.session.flush()
        return applied

    async def _transfer_line(
        self,
        line: TransferLine,
        destination: str,
        request: FulfillmentRequest,
    ) -> LowStockEvent | None:
        source = settings.central_location
        source_line = await self.ledger.get_line(source, line.variant_id)
        if source_line is None:
            raise UnknownVariant(source, line.variant_id)

        await self.ledger.transfer_out(source, line.variant_id, line.quantity)
        await self.ledger.transfer_in(
            destination,
            line.variant_id,
            line.quantity,
            StockLineMetadata.from_line(source_line),
        )

        if not request.check_low_stock:
            return None
        threshold = (
            request.low_stock_threshold if request.low_stock_threshold is not None else source_line.reorder_threshold
        )
        return await self._check_low_stock(source, line.variant_id, threshold)

    async def _check_low_stock(self, location: str, variant_id: str, threshold: int) -> LowStockEvent | None:
        """Evaluate the threshold in a savepoint; a failed check skips the alert, not the transfer."""
        try:
            async with self.session.begin_nested():
                return await self.ledger.check_low_stock(location, variant_id, threshold)
        except ServiceError as e:
            logger.warning(
                "Low-stock check failed, skipping alert",
                location=location,
                variant_id=variant_id,
                error=str(e),
            )
            return None

    async def _rollback(self, log: Any) -> None:
        # Also clears a transaction deactivated by a failed flush
        try:
            await self.session.rollback()
        except SQLAlchemyError as rollback_error:
            # The original error is re-raised by the caller
            log.error("Rollback failed", error=str(rollback_error))

    async def _record_failure(
        self,
        request: FulfillmentRequest,
        attempt: FulfillmentAttempt,
        error: BaseException,
        log: Any,
    ) -> None:
        """Persist a rolled-back FulfillmentRecord in its own short transaction."""
        try:
            async with self.session.begin():
                self.session.add(
                    FulfillmentRecord(
                        record_id=request.record_id,
                        document_type=request.document_type,
                        scope=attempt.scope or normalize_scope(request.document_type, request.scope),
                        target_status=request.target_status,
                        outcome=FulfillmentOutcome.ROLLED_BACK,
                        lines=[line.as_dict() for line in request.lines],
                        error_type=error.__class__.__name__,
                        error=str(error),
                        started_at=attempt.started_at,
                        finished_at=attempt.finished_at or utc_now(),
                    )
                )
        except SQLAlchemyError as audit_error:
            log.error("Could not record rolled-back fulfillment", error=str(audit_error))

    def _dispatch_events(self, applied: _Applied, fulfillment: FulfillmentRecord) -> None:
        """Fire-and-forget: dispatch failures are logged, never raised."""
        events: list[LowStockEvent | FulfillmentCompletedEvent] = [
            *applied.low_stock_events,
            FulfillmentCompletedEvent(
                order_id=fulfillment.record_id,
                fulfillment_id=fulfillment.id,
                destination=applied.record.destination,
                document_number=fulfillment.document_number,
            ),
        ]
        for event in events:
            try:
                self.dispatcher.dispatch(event)
            except Exception as e:
                logger.error(
                    "Failed to dispatch notification",
                    category=event.category,
                    fulfillment_id=fulfillment.id,
                    error=str(e),
                )
