import pytest
from sqlmodel import select

from fulfillment.models import SequenceAuditEntry
from fulfillment.models.enums import DocumentType, SequenceAuditAction
from fulfillment.services.exceptions import InsufficientAuthorization
from fulfillment.services.permissions import Actor, Role
from fulfillment.services.sequences import SequenceAdminService, SequenceService
from tests.conftest import seed_order

FG = DocumentType.FINISHED_GOODS_RECEIPT
RM = DocumentType.RAW_MATERIAL_RECEIPT


async def audit_entries(session_maker) -> list[SequenceAuditEntry]:
    async with session_maker() as session:
        result = await session.execute(select(SequenceAuditEntry).order_by(SequenceAuditEntry.id))
        return list(result.scalars().all())


async def test_peek_formats_current_value(session, admin):
    service = SequenceAdminService(session)
    empty = await service.peek_sequence(admin, FG, "D1")
    assert (empty.current_value, empty.formatted) == (0, None)

    await service.generate_sequence(admin, FG, "D1")
    peek = await service.peek_sequence(Actor(id="s1", role=Role.SHOP), FG, "D1")
    assert (peek.current_value, peek.formatted) == (1, "FG-D1-0001")


async def test_generate_commits(session_maker, session, admin):
    number = await SequenceAdminService(session).generate_sequence(Actor(id="f1", role=Role.FACTORY), RM)
    assert number.number == "RM-00001"
    async with session_maker() as check:
        assert await SequenceService(check).peek(RM) == 1


async def test_shop_cannot_generate(session):
    with pytest.raises(InsufficientAuthorization):
        await SequenceAdminService(session).generate_sequence(Actor(id="s1", role=Role.SHOP), FG, "D1")
    assert await SequenceService(session).peek(FG, "D1") == 0


async def test_override_is_audited(session_maker, session):
    order_id = await seed_order(session_maker, "D1")
    store = Actor(id="store-7", role=Role.STORE)

    record = await SequenceAdminService(session).override_sequence(store, FG, order_id, "FG-D1-0042")

    assert record.document_number == "FG-D1-0042"
    [entry] = await audit_entries(session_maker)
    assert entry.action == SequenceAuditAction.OVERRIDE
    assert (entry.actor_id, entry.actor_role, entry.scope) == ("store-7", "store", "D1")
    assert (entry.previous_value, entry.new_value, entry.record_id) == (None, "FG-D1-0042", order_id)


async def test_factory_cannot_override(session_maker, session):
    order_id = await seed_order(session_maker, "D1")
    with pytest.raises(InsufficientAuthorization):
        await SequenceAdminService(session).override_sequence(
            Actor(id="f1", role=Role.FACTORY), FG, order_id, "FG-D1-0042"
        )
    assert await audit_entries(session_maker) == []


async def test_reset_is_admin_only_and_audited(session_maker, session, admin):
    service = SequenceAdminService(session)
    await service.generate_sequence(admin, FG, "D1")

    with pytest.raises(InsufficientAuthorization):
        await service.reset_sequence(Actor(id="s1", role=Role.STORE), FG, "D1", 0)

    previous = await service.reset_sequence(admin, FG, "D1", 10)
    assert previous == 1
    assert (await service.generate_sequence(admin, FG, "D1")).number == "FG-D1-0011"

    [entry] = await audit_entries(session_maker)
    assert (entry.action, entry.previous_value, entry.new_value) == (SequenceAuditAction.RESET, "1", "10")


async def test_initialize_scope_audits_only_creation(session_maker, session, admin):
    service = SequenceAdminService(session)
    assert await service.initialize_scope(admin, FG, "D9") is True
    assert await service.initialize_scope(admin, FG, "D9") is False

    entries = await audit_entries(session_maker)
    assert [e.action for e in entries] == [SequenceAuditAction.INITIALIZE]


async def test_list_sequences(session, admin):
    service = SequenceAdminService(session)
    await service.generate_sequence(admin, FG, "D1")
    await service.generate_sequence(admin, RM)

    counters = await service.list_sequences(Actor(id="s1", role=Role.SHOP))
    assert [(c.scope, c.value) for c in counters] == [("D1", 1), ("global", 1)]
