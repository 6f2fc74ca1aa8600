"""Notification delivery background task."""

import asyncio
from typing import Any

import dramatiq
import structlog
from pydantic import TypeAdapter

from fulfillment.services.notifications.events import NotificationEvent
from fulfillment.services.notifications.webhook_service import WebhookNotificationService

logger = structlog.get_logger(__name__)

_event_adapter: TypeAdapter[NotificationEvent] = TypeAdapter(NotificationEvent)


@dramatiq.actor(max_retries=3, min_backoff=1000, max_backoff=60000, queue_name="notifications")
def deliver_notification(payload: dict[str, Any]) -> None:
    """Deliver one low-stock or fulfillment-completed event to the webhook.

    Args:
        payload: Event serialized with `model_dump(mode="json")`
    """
    event = _event_adapter.validate_python(payload)
    delivered = asyncio.run(WebhookNotificationService().deliver(event))
    logger.info("Notification task finished", category=event.category, delivered=delivered)
