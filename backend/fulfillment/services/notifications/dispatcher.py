"""Hand-off of notification events to a delivery mechanism.

The coordinator calls `dispatch()` after commit. Dispatching only enqueues;
delivery happens out of band so a slow or failing webhook cannot affect a
committed fulfillment.
"""

from typing import Protocol

import structlog

from fulfillment.services.notifications.events import FulfillmentCompletedEvent, LowStockEvent

logger = structlog.get_logger(__name__)


class NotificationDispatcher(Protocol):
    def dispatch(self, event: LowStockEvent | FulfillmentCompletedEvent) -> None: ...


class DramatiqNotificationDispatcher:
    """Enqueues events on the `notifications` Dramatiq queue."""

    def dispatch(self, event: LowStockEvent | FulfillmentCompletedEvent) -> None:
        from fulfillment.tasks.notifications import deliver_notification

        message = deliver_notification.send(event.model_dump(mode="json"))
        logger.debug("Notification enqueued", category=event.category, message_id=message.message_id)
