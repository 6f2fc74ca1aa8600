from fulfillment.services.notifications.dispatcher import DramatiqNotificationDispatcher, NotificationDispatcher
from fulfillment.services.notifications.events import (
    FulfillmentCompletedEvent,
    LowStockEvent,
    NotificationCategory,
    NotificationEvent,
)
from fulfillment.services.notifications.webhook_service import WebhookNotificationService

__all__ = [
    "DramatiqNotificationDispatcher",
    "FulfillmentCompletedEvent",
    "LowStockEvent",
    "NotificationCategory",
    "NotificationDispatcher",
    "NotificationEvent",
    "WebhookNotificationService",
]
