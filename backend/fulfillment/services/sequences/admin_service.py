"""Privileged document numbering commands.

Each command checks the actor's role before touching the database, runs in
its own transaction and commits. Overrides, resets and scope initializations
are logged and written to `sequence_audit_log`.
"""

from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.db.exceptions import translate_db_error
from fulfillment.models.enums import DocumentType, SequenceAuditAction
from fulfillment.models.records import FulfillableRecord
from fulfillment.models.sequence import SequenceAuditEntry, SequenceCounter
from fulfillment.services.permissions import (
    GENERATE_SEQUENCE_ROLES,
    OVERRIDE_SEQUENCE_ROLES,
    RESET_SEQUENCE_ROLES,
    VIEW_SEQUENCE_ROLES,
    Actor,
    require_role,
)
from fulfillment.services.sequences.formatting import DocumentNumber, format_document_number, normalize_scope
from fulfillment.services.sequences.sequence_service import SequenceService

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SequencePeek:
    document_type: DocumentType
    scope: str
    current_value: int
    formatted: str | None  # None while nothing has been minted


class SequenceAdminService:
    """Administrative surface over SequenceService."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.sequences = SequenceService(session)

    async def peek_sequence(self, actor: Actor, document_type: DocumentType, scope: str | None = None) -> SequencePeek:
        require_role(actor, VIEW_SEQUENCE_ROLES, "peekSequence")
        scope_key = normalize_scope(document_type, scope)
        value = await self.sequences.peek(document_type, scope_key)
        formatted = format_document_number(document_type, scope_key, value).number if value > 0 else None
        await self._end_read()
        return SequencePeek(document_type=document_type, scope=scope_key, current_value=value, formatted=formatted)

    async def list_sequences(self, actor: Actor) -> list[SequenceCounter]:
        require_role(actor, VIEW_SEQUENCE_ROLES, "listSequences")
        counters = await self.sequences.list_counters()
        await self._end_read()
        return counters

    async def generate_sequence(
        self,
        actor: Actor,
        document_type: DocumentType,
        scope: str | None = None,
    ) -> DocumentNumber:
        """Mint a number outside of a fulfillment (e.g. for pre-printed paperwork)."""
        require_role(actor, GENERATE_SEQUENCE_ROLES, "generateSequence")
        number = await self._in_transaction(self.sequences.next(document_type, scope))
        logger.info(
            "Generated document number",
            document_type=document_type,
            scope=number.scope,
            number=number.number,
            actor_id=actor.id,
        )
        return number

    async def override_sequence(
        self,
        actor: Actor,
        document_type: DocumentType,
        record_id: str,
        explicit_number: str,
        scope: str | None = None,
    ) -> FulfillableRecord:
        """Stamp a hand-typed number on a record. The counter keeps its trajectory."""
        require_role(actor, OVERRIDE_SEQUENCE_ROLES, "overrideSequence")

        async def _override() -> FulfillableRecord:
            record, previous = await self.sequences.override(document_type, scope, explicit_number, record_id)
            self.session.add(
                SequenceAuditEntry(
                    action=SequenceAuditAction.OVERRIDE,
                    document_type=document_type,
                    scope=normalize_scope(document_type, scope if scope is not None else record.destination),
                    actor_id=actor.id,
                    actor_role=str(actor.role),
                    record_id=record_id,
                    previous_value=previous,
                    new_value=record.document_number or "",
                )
            )
            return record

        record = await self._in_transaction(_override())
        logger.warning(
            "Document number overridden",
            document_type=document_type,
            record_id=record_id,
            number=record.document_number,
            actor_id=actor.id,
            actor_role=actor.role,
        )
        return record

    async def reset_sequence(
        self,
        actor: Actor,
        document_type: DocumentType,
        scope: str | None,
        new_value: int,
    ) -> int:
        """Set a counter to an explicit value. Returns the previous value."""
        require_role(actor, RESET_SEQUENCE_ROLES, "resetSequence")
        scope_key = normalize_scope(document_type, scope)

        async def _reset() -> int:
            previous = await self.sequences.reset(document_type, scope_key, new_value)
            self.session.add(
                SequenceAuditEntry(
                    action=SequenceAuditAction.RESET,
                    document_type=document_type,
                    scope=scope_key,
                    actor_id=actor.id,
                    actor_role=str(actor.role),
                    previous_value=str(previous),
                    new_value=str(new_value),
                )
            )
            return previous

        previous = await self._in_transaction(_reset())
        logger.warning(
            "Sequence reset",
            document_type=document_type,
            scope=scope_key,
            previous_value=previous,
            new_value=new_value,
            actor_id=actor.id,
        )
        return previous

    async def initialize_scope(self, actor: Actor, document_type: DocumentType, scope: str) -> bool:
        """Create a counter at 0 for a new destination. Returns True if it was created."""
        require_role(actor, RESET_SEQUENCE_ROLES, "initializeSequence")
        scope_key = normalize_scope(document_type, scope)

        async def _initialize() -> bool:
            created = await self.sequences.initialize_scope(document_type, scope_key)
            if created:
                self.session.add(
                    SequenceAuditEntry(
                        action=SequenceAuditAction.INITIALIZE,
                        document_type=document_type,
                        scope=scope_key,
                        actor_id=actor.id,
                        actor_role=str(actor.role),
                        new_value="0",
                    )
                )
            return created

        created = await self._in_transaction(_initialize())
        if created:
            logger.info("Initialized sequence scope", document_type=document_type, scope=scope_key, actor_id=actor.id)
        return created

    async def _in_transaction(self, operation: Coroutine[Any, Any, T]) -> T:
        """Await an operation and commit, rolling back on any failure."""
        try:
            result = await operation
            await self.session.commit()
            return result
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise translate_db_error(e) from e
        except BaseException:
            await self.session.rollback()
            raise

    async def _end_read(self) -> None:
        # Read-only commands still end their transaction so no counter state is held.
        # Detach loaded rows first; a rollback would expire them for the caller.
        self.session.expunge_all()
        await self.session.rollback()
