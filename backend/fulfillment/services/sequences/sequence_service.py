"""Sequence generator: per-(document type, scope) monotonic counters.

This is the only place that mints document numbers. Methods never commit;
they run inside the caller's transaction so a rolled-back fulfillment also
returns its number.
"""

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from fulfillment.config import settings
from fulfillment.db.conflict_retry import CreateOnConflict
from fulfillment.db.exceptions import translate_db_errors
from fulfillment.models.base import utc_now
from fulfillment.models.enums import DocumentType
from fulfillment.models.records import FulfillableRecord
from fulfillment.models.sequence import SEQUENCE_COUNTER_CONSTRAINT, SequenceCounter
from fulfillment.services.fulfillment.records import load_record
from fulfillment.services.sequences.exceptions import InvalidSequenceValue, ScopeTokenCollision
from fulfillment.services.sequences.formatting import (
    DocumentNumber,
    format_document_number,
    get_document_config,
    normalize_scope,
    number_token,
    validate_document_number,
)

logger = structlog.get_logger(__name__)


class SequenceService:
    """Atomic document number generation on top of `sequence_counters`.

    `next()` is a single `UPDATE ... SET value = value + 1 RETURNING value`,
    which row-locks the counter until the surrounding transaction ends, so two
    callers can never commit the same value for the same scope. A missing
    counter is inserted inside a savepoint; losing that insert race rolls back
    the savepoint and retries the increment.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @translate_db_errors
    async def peek(self, document_type: DocumentType, scope: str | None = None) -> int:
        """Current counter value without mutating it. 0 when no counter exists."""
        scope_key = normalize_scope(document_type, scope)
        result = await self.session.execute(
            select(SequenceCounter.value).where(
                SequenceCounter.document_type == document_type,
                SequenceCounter.scope == scope_key,
            )
        )
        value = result.scalars().first()
        return value if value is not None else 0

    @translate_db_errors
    async def next(self, document_type: DocumentType, scope: str | None = None) -> DocumentNumber:
        """Increment the counter for (document_type, scope) and format the new value.

        Raises:
            ConcurrencyConflict: If the counter row could not be created after
                settings.sequence_max_retries attempts.
        """
        scope_key = normalize_scope(document_type, scope)

        value: int | None = None
        async for attempt in CreateOnConflict(
            self.session,
            SEQUENCE_COUNTER_CONSTRAINT,
            max_retries=settings.sequence_max_retries,
        ):
            async with attempt:
                value = await self._increment(document_type, scope_key)
                if value is None:
                    self.session.add(await self._new_counter(document_type, scope_key, 1))
                    await self.session.flush()
                    value = 1
        assert value is not None

        number = format_document_number(document_type, scope_key, value)
        logger.debug("Minted document number", document_type=document_type, scope=scope_key, number=number.number)
        return number

    async def _increment(self, document_type: DocumentType, scope_key: str) -> int | None:
        statement = (
            update(SequenceCounter)
            .where(
                SequenceCounter.document_type == document_type,  # type: ignore[arg-type]
                SequenceCounter.scope == scope_key,  # type: ignore[arg-type]
            )
            .values(value=SequenceCounter.value + 1, updated_at=utc_now())
            .returning(SequenceCounter.value)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    @translate_db_errors
    async def override(
        self,
        document_type: DocumentType,
        scope: str | None,
        explicit_number: str,
        record_id: str,
    ) -> tuple[FulfillableRecord, str | None]:
        """Attach a hand-typed document number to a record.

        The counter for `scope` (default: the record's destination) is left
        untouched and duplicates are allowed; only the number's format is
        checked. Returns the record and its previous number.
        """
        parsed = validate_document_number(document_type, explicit_number)
        config = get_document_config(document_type)

        record = await load_record(self.session, config.record_model, record_id, for_update=True)
        previous = record.document_number
        record.document_number = explicit_number.strip()
        record.document_sequence = parsed.sequence
        record.document_prefix = parsed.prefix
        record.updated_at = utc_now()
        await self.session.flush()
        logger.debug(
            "Document number overridden",
            document_type=document_type,
            scope=normalize_scope(document_type, scope if scope is not None else record.destination),
            number=record.document_number,
            previous=previous,
        )
        return record, previous

    @translate_db_errors
    async def reset(self, document_type: DocumentType, scope: str | None, new_value: int) -> int:
        """Set the counter to an explicit value. Returns the previous value.

        The counter row is created when missing.
        """
        if new_value < 0:
            raise InvalidSequenceValue(f"Sequence value must be non-negative, got {new_value}")
        scope_key = normalize_scope(document_type, scope)

        previous = 0
        async for attempt in CreateOnConflict(
            self.session,
            SEQUENCE_COUNTER_CONSTRAINT,
            max_retries=settings.sequence_max_retries,
        ):
            async with attempt:
                counter = await self._get_counter(document_type, scope_key, for_update=True)
                if counter is None:
                    previous = 0
                    self.session.add(await self._new_counter(document_type, scope_key, new_value))
                else:
                    previous = counter.value
                    counter.value = new_value
                    counter.updated_at = utc_now()
                await self.session.flush()
        return previous

    @translate_db_errors
    async def initialize_scope(self, document_type: DocumentType, scope: str | None) -> bool:
        """Create a counter at 0 for the scope if none exists. Returns True if created."""
        scope_key = normalize_scope(document_type, scope)
        created = False
        async for attempt in CreateOnConflict(
            self.session,
            SEQUENCE_COUNTER_CONSTRAINT,
            max_retries=settings.sequence_max_retries,
        ):
            async with attempt:
                created = False
                if await self._get_counter(document_type, scope_key) is None:
                    self.session.add(await self._new_counter(document_type, scope_key, 0))
                    await self.session.flush()
                    created = True
        return created

    @translate_db_errors
    async def list_counters(self) -> list[SequenceCounter]:
        """All counters, ordered by document type and scope."""
        result = await self.session.execute(
            select(SequenceCounter).order_by(
                SequenceCounter.document_type,  # type: ignore[arg-type]
                SequenceCounter.scope,  # type: ignore[arg-type]
            )
        )
        return list(result.scalars().all())

    async def _get_counter(
        self,
        document_type: DocumentType,
        scope_key: str,
        *,
        for_update: bool = False,
    ) -> SequenceCounter | None:
        statement = select(SequenceCounter).where(
            SequenceCounter.document_type == document_type,
            SequenceCounter.scope == scope_key,
        )
        if for_update:
            statement = statement.with_for_update()
        statement = statement.execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def _new_counter(self, document_type: DocumentType, scope_key: str, value: int) -> SequenceCounter:
        """Build a counter row for a new scope.

        Number tokens are shortened scope names, so a scope whose token is
        already printed by another scope of the same type is refused instead of
        minting numbers that collide with it.
        """
        token = number_token(scope_key)
        result = await self.session.execute(
            select(SequenceCounter.scope).where(
                SequenceCounter.document_type == document_type,
                SequenceCounter.number_token == token,
                SequenceCounter.scope != scope_key,
            )
        )
        existing_scope = result.scalars().first()
        if existing_scope is not None:
            raise ScopeTokenCollision(document_type, scope_key, existing_scope, token)
        return SequenceCounter(document_type=document_type, scope=scope_key, number_token=token, value=value)
