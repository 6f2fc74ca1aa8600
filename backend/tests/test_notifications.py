import httpx
import jwt
import pytest
from pydantic import TypeAdapter

from fulfillment.services.notifications import (
    DramatiqNotificationDispatcher,
    FulfillmentCompletedEvent,
    LowStockEvent,
    NotificationEvent,
    WebhookNotificationService,
)
from fulfillment.tasks import broker
from fulfillment.tasks.notifications import deliver_notification

WEBHOOK_URL = "https://hooks.example.test/fulfillment"


def low_stock_event() -> LowStockEvent:
    return LowStockEvent(
        location="central",
        location_display_name="Central Warehouse",
        variant_id="V1",
        display_name="Blue mug",
        current_quantity=3,
        threshold=5,
    )


def test_events_round_trip_through_discriminated_union():
    adapter = TypeAdapter(NotificationEvent)
    payload = FulfillmentCompletedEvent(
        order_id="01ARZ3NDEKTSV4RRFFQ69G5FAV",
        fulfillment_id="01ARZ3NDEKTSV4RRFFQ69G5FAW",
        destination="D1",
        document_number="FG-D1-0001",
    ).model_dump(mode="json")

    assert payload["category"] == "fulfillment-completed"
    assert isinstance(adapter.validate_python(payload), FulfillmentCompletedEvent)
    assert isinstance(adapter.validate_python(low_stock_event().model_dump(mode="json")), LowStockEvent)


async def test_webhook_posts_signed_json():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    service = WebhookNotificationService(url=WEBHOOK_URL, jwt_key="secret", timeout=1.0)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await service.deliver(low_stock_event(), client=client) is True

    [request] = seen
    body = LowStockEvent.model_validate_json(request.content)
    assert body.category == "low-stock"
    assert body.current_quantity == 3
    token = request.headers["Authorization"].removeprefix("Bearer ")
    claims = jwt.decode(token, "secret", algorithms=["HS256"])
    assert claims["iss"] == "fulfillment-engine"


async def test_webhook_retries_server_errors():
    responses = iter([httpx.Response(503), httpx.Response(200)])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    service = WebhookNotificationService(url=WEBHOOK_URL, jwt_key="", timeout=1.0)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await service.deliver(low_stock_event(), client=client) is True


async def test_webhook_client_error_is_swallowed_without_retry():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(400, text="bad payload")

    service = WebhookNotificationService(url=WEBHOOK_URL, jwt_key="", timeout=1.0)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await service.deliver(low_stock_event(), client=client) is False
    assert calls == 1


async def test_webhook_without_url_skips():
    assert await WebhookNotificationService(url="").deliver(low_stock_event()) is False


@pytest.fixture
def notifications_queue():
    broker.flush_all()
    yield broker.queues["notifications"]
    broker.flush_all()


def test_dramatiq_dispatcher_enqueues(notifications_queue):
    DramatiqNotificationDispatcher().dispatch(low_stock_event())
    assert notifications_queue.qsize() == 1


def test_deliver_notification_task_without_webhook_is_noop():
    deliver_notification.fn(low_stock_event().model_dump(mode="json"))
