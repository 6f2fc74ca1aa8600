import pytest

from fulfillment.models.enums import DocumentType, RecordStatus
from fulfillment.services.fulfillment.exceptions import InvalidFulfillmentRequest, InvalidStateTransition
from fulfillment.services.fulfillment.request import FulfillmentRequest, TransferLine
from fulfillment.services.fulfillment.state import FulfillmentAttempt, FulfillmentState


def test_happy_path_records_history():
    attempt = FulfillmentAttempt()
    attempt.transition(FulfillmentState.IN_TRANSACTION)
    attempt.transition(FulfillmentState.COMMITTED)

    assert attempt.history == [FulfillmentState.RECEIVED, FulfillmentState.IN_TRANSACTION, FulfillmentState.COMMITTED]
    assert attempt.finished_at is not None


@pytest.mark.parametrize(
    "path",
    [
        [FulfillmentState.COMMITTED],
        [FulfillmentState.IN_TRANSACTION, FulfillmentState.RECEIVED],
        [FulfillmentState.IN_TRANSACTION, FulfillmentState.ROLLED_BACK, FulfillmentState.COMMITTED],
    ],
)
def test_illegal_transitions(path):
    attempt = FulfillmentAttempt()
    *allowed, illegal = path
    for state in allowed:
        attempt.transition(state)
    with pytest.raises(InvalidStateTransition):
        attempt.transition(illegal)


def test_request_rejects_boolean_quantity():
    request = FulfillmentRequest(
        record_id="01ARZ3NDEKTSV4RRFFQ69G5FAV",
        document_type=DocumentType.FINISHED_GOODS_RECEIPT,
        lines=(TransferLine("V1", True),),  # type: ignore[arg-type]
        target_status=RecordStatus.DISPATCHED,
    )
    with pytest.raises(InvalidFulfillmentRequest, match="Line 1"):
        request.validate()
