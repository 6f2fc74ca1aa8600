import asyncio

import pytest
from sqlmodel import select

from fulfillment.models import FulfillmentRecord, MaterialRequisition, Order
from fulfillment.models.enums import DocumentType, FulfillmentOutcome, RecordStatus
from fulfillment.services.exceptions import NotFoundError
from fulfillment.services.fulfillment.coordinator import FulfillmentCoordinator
from fulfillment.services.fulfillment.exceptions import (
    FulfillmentRecordNotFound,
    InvalidFulfillmentRequest,
    SessionTransactionInProgress,
)
from fulfillment.services.fulfillment.request import FulfillmentRequest, TransferLine
from fulfillment.services.ledger import UnknownVariant
from fulfillment.services.sequences import SequenceService
from fulfillment.services.sequences.formatting import GLOBAL_SCOPE
from tests.conftest import CENTRAL, RecordingDispatcher, quantity_at, seed_order, seed_requisition, seed_stock

FG = DocumentType.FINISHED_GOODS_RECEIPT
RM = DocumentType.RAW_MATERIAL_RECEIPT


def fg_request(record_id: str, *lines: tuple[str, int], **kwargs) -> FulfillmentRequest:
    return FulfillmentRequest(
        record_id=record_id,
        document_type=FG,
        lines=tuple(TransferLine(variant_id, quantity) for variant_id, quantity in lines),
        target_status=kwargs.pop("target_status", RecordStatus.DISPATCHED),
        **kwargs,
    )


async def load_order(session_maker, order_id: str) -> Order:
    async with session_maker() as session:
        order = await session.get(Order, order_id)
        assert order is not None
        return order


async def test_end_to_end_scenario(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20, reorder_threshold=2)
    first_order = await seed_order(session_maker, "D1", number="1")
    second_order = await seed_order(session_maker, "D1", number="2")
    coordinator = FulfillmentCoordinator(session, dispatcher)

    first = await coordinator.fulfill(fg_request(first_order, ("V1", 5)))

    assert first.outcome == FulfillmentOutcome.COMMITTED
    assert first.document_number == "FG-D1-0001"
    assert await quantity_at(session_maker, CENTRAL, "V1") == 15
    assert await quantity_at(session_maker, "D1", "V1") == 5
    order = await load_order(session_maker, first_order)
    assert order.status == RecordStatus.DISPATCHED
    assert order.document_number == "FG-D1-0001"
    assert order.fulfilled_at is not None

    second = await coordinator.fulfill(fg_request(second_order, ("V1", 1)))
    assert second.document_number == "FG-D1-0002"


async def test_destination_line_inherits_source_metadata(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20, display_name="Blue mug")
    order_id = await seed_order(session_maker, "D1")

    await FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(order_id, ("V1", 5)))

    async with session_maker() as check:
        from fulfillment.services.ledger import LedgerService

        line = await LedgerService(check).get_line("D1", "V1")
    assert line is not None
    assert (line.display_name, line.product_code, line.attributes) == ("Blue mug", "SKU-V1", {"color": "blue"})


async def test_failure_on_later_line_rolls_back_everything(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")
    coordinator = FulfillmentCoordinator(session, dispatcher)

    with pytest.raises(UnknownVariant):
        await coordinator.fulfill(fg_request(order_id, ("V1", 5), ("MISSING", 1)))

    assert await quantity_at(session_maker, CENTRAL, "V1") == 20
    assert await quantity_at(session_maker, "D1", "V1") is None
    order = await load_order(session_maker, order_id)
    assert order.status == RecordStatus.PENDING
    assert order.document_number is None
    async with session_maker() as check:
        assert await SequenceService(check).peek(FG, "D1") == 0
    assert dispatcher.events == []


async def test_failed_attempt_is_recorded(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")

    with pytest.raises(UnknownVariant):
        await FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(order_id, ("MISSING", 1)))

    async with session_maker() as check:
        records = (await check.execute(select(FulfillmentRecord))).scalars().all()
    assert len(records) == 1
    assert records[0].outcome == FulfillmentOutcome.ROLLED_BACK
    assert records[0].error_type == "UnknownVariant"
    assert records[0].document_number is None


async def test_number_is_reused_after_rollback(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    failing = await seed_order(session_maker, "D1", number="1")
    succeeding = await seed_order(session_maker, "D1", number="2")
    coordinator = FulfillmentCoordinator(session, dispatcher)

    with pytest.raises(UnknownVariant):
        await coordinator.fulfill(fg_request(failing, ("V1", 1), ("MISSING", 1)))
    record = await coordinator.fulfill(fg_request(succeeding, ("V1", 1)))

    assert record.document_number == "FG-D1-0001"


async def test_invalid_request_is_rejected_before_transaction(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")
    coordinator = FulfillmentCoordinator(session, dispatcher)

    with pytest.raises(InvalidFulfillmentRequest):
        await coordinator.fulfill(fg_request(order_id, ("V1", 0)))
    with pytest.raises(InvalidFulfillmentRequest):
        await coordinator.fulfill(fg_request(order_id))
    with pytest.raises(InvalidFulfillmentRequest):
        await coordinator.fulfill(fg_request("not-a-ulid", ("V1", 1)))

    assert not session.in_transaction()
    async with session_maker() as check:
        assert (await check.execute(select(FulfillmentRecord))).scalars().all() == []


async def test_unknown_record(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    missing = "01ARZ3NDEKTSV4RRFFQ69G5FAV"

    with pytest.raises(NotFoundError):
        await FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(missing, ("V1", 1)))
    assert await quantity_at(session_maker, CENTRAL, "V1") == 20


async def test_low_stock_and_completion_notifications(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20, reorder_threshold=15)
    await seed_stock(session_maker, CENTRAL, "V2", 50, reorder_threshold=10)
    order_id = await seed_order(session_maker, "D1")

    record = await FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(order_id, ("V1", 5), ("V2", 5)))

    assert [(e.variant_id, e.current_quantity, e.threshold) for e in dispatcher.low_stock] == [("V1", 15, 15)]
    assert len(dispatcher.completed) == 1
    completed = dispatcher.completed[0]
    assert completed.order_id == order_id
    assert completed.fulfillment_id == record.id
    assert completed.document_number == "FG-D1-0001"
    assert record.events == [dispatcher.low_stock[0].model_dump(mode="json")]


async def test_threshold_override_and_disabled_check(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    first = await seed_order(session_maker, "D1", number="1")
    second = await seed_order(session_maker, "D1", number="2")
    coordinator = FulfillmentCoordinator(session, dispatcher)

    await coordinator.fulfill(fg_request(first, ("V1", 5), low_stock_threshold=100))
    assert len(dispatcher.low_stock) == 1

    await coordinator.fulfill(fg_request(second, ("V1", 5), low_stock_threshold=100, check_low_stock=False))
    assert len(dispatcher.low_stock) == 1


async def test_dispatch_failure_does_not_undo_commit(session_maker, session):
    class BrokenDispatcher:
        def dispatch(self, event):
            raise ConnectionError("broker down")

    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")

    record = await FulfillmentCoordinator(session, BrokenDispatcher()).fulfill(fg_request(order_id, ("V1", 5)))

    assert record.outcome == FulfillmentOutcome.COMMITTED
    assert await quantity_at(session_maker, CENTRAL, "V1") == 15


async def test_existing_override_number_is_kept(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")
    async with session_maker() as admin_session, admin_session.begin():
        await SequenceService(admin_session).override(FG, "D1", "FG-D1-0500", order_id)

    record = await FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(order_id, ("V1", 1)))

    assert record.document_number == "FG-D1-0500"
    async with session_maker() as check:
        assert await SequenceService(check).peek(FG, "D1") == 0


async def test_raw_material_requisition_uses_global_counter(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "STEEL", 100)
    requisition_id = await seed_requisition(session_maker, "LINE-A")

    record = await FulfillmentCoordinator(session, dispatcher).fulfill(
        FulfillmentRequest(
            record_id=requisition_id,
            document_type=RM,
            lines=(TransferLine("STEEL", 30),),
            target_status=RecordStatus.DELIVERED,
        )
    )

    assert record.document_number == "RM-00001"
    assert record.scope == GLOBAL_SCOPE
    assert await quantity_at(session_maker, "LINE-A", "STEEL") == 30
    async with session_maker() as check:
        requisition = await check.get(MaterialRequisition, requisition_id)
    assert requisition is not None and requisition.status == RecordStatus.DELIVERED


async def test_get_fulfillment(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")
    coordinator = FulfillmentCoordinator(session, dispatcher)
    record = await coordinator.fulfill(fg_request(order_id, ("V1", 1)))

    fetched = await coordinator.get_fulfillment(record.id)
    assert fetched.document_number == record.document_number

    with pytest.raises(FulfillmentRecordNotFound):
        await coordinator.get_fulfillment("01ARZ3NDEKTSV4RRFFQ69G5FAV")


async def test_failed_attempt_records_destination_scope(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")

    with pytest.raises(UnknownVariant):
        await FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(order_id, ("MISSING", 1)))

    async with session_maker() as check:
        record = (await check.execute(select(FulfillmentRecord))).scalars().one()
    assert record.scope == "D1"


async def test_failed_attempt_on_missing_record_falls_back_to_request_scope(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    missing = "01ARZ3NDEKTSV4RRFFQ69G5FAV"
    coordinator = FulfillmentCoordinator(session, dispatcher)

    with pytest.raises(NotFoundError):
        await coordinator.fulfill(fg_request(missing, ("V1", 1), scope="D7"))
    with pytest.raises(NotFoundError):
        await coordinator.fulfill(fg_request(missing, ("V1", 1)))

    async with session_maker() as check:
        records = (await check.execute(select(FulfillmentRecord))).scalars().all()
    assert sorted(record.scope for record in records) == sorted(["D7", GLOBAL_SCOPE])


async def test_session_with_open_transaction_is_refused(session_maker, session, dispatcher):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")
    coordinator = FulfillmentCoordinator(session, dispatcher)

    # A plain read autobegins a transaction and leaves it open
    with pytest.raises(FulfillmentRecordNotFound):
        await coordinator.get_fulfillment("01ARZ3NDEKTSV4RRFFQ69G5FAV")
    assert session.in_transaction()

    with pytest.raises(SessionTransactionInProgress):
        await coordinator.fulfill(fg_request(order_id, ("V1", 1)))

    await session.rollback()
    assert await quantity_at(session_maker, CENTRAL, "V1") == 20
    assert (await load_order(session_maker, order_id)).status == RecordStatus.PENDING

    record = await coordinator.fulfill(fg_request(order_id, ("V1", 1)))
    assert record.document_number == "FG-D1-0001"


async def test_concurrent_fulfillments_lose_no_updates(session_maker):
    await seed_stock(session_maker, CENTRAL, "V1", 100)
    order_ids = [await seed_order(session_maker, "D1", number=str(n)) for n in range(1, 9)]

    async def fulfill(order_id: str) -> FulfillmentRecord:
        async with session_maker() as own_session:
            coordinator = FulfillmentCoordinator(own_session, RecordingDispatcher())
            return await coordinator.fulfill(fg_request(order_id, ("V1", 3)))

    records = await asyncio.gather(*(fulfill(order_id) for order_id in order_ids))

    assert await quantity_at(session_maker, CENTRAL, "V1") == 76
    assert await quantity_at(session_maker, "D1", "V1") == 24
    assert sorted(record.document_number for record in records) == [f"FG-D1-{n:04d}" for n in range(1, 9)]


async def test_cancelled_fulfillment_rolls_back(session_maker, session, dispatcher, monkeypatch):
    await seed_stock(session_maker, CENTRAL, "V1", 20)
    order_id = await seed_order(session_maker, "D1")
    reached_numbering = asyncio.Event()

    async def stalled_next(self, document_type, scope=None):
        reached_numbering.set()
        await asyncio.Event().wait()

    monkeypatch.setattr(SequenceService, "next", stalled_next)
    task = asyncio.create_task(FulfillmentCoordinator(session, dispatcher).fulfill(fg_request(order_id, ("V1", 5))))
    await reached_numbering.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert not session.in_transaction()
    monkeypatch.undo()
    assert await quantity_at(session_maker, CENTRAL, "V1") == 20
    assert await quantity_at(session_maker, "D1", "V1") is None
    assert (await load_order(session_maker, order_id)).status == RecordStatus.PENDING
    async with session_maker() as check:
        assert await SequenceService(check).peek(FG, "D1") == 0
        assert (await check.execute(select(FulfillmentRecord))).scalars().all() == []
    assert dispatcher.events == []
