"""Outbound notification event definitions.

Events are pydantic models so they serialize the same way for the audit
record (`FulfillmentRecord.events`), the Dramatiq message and the webhook body.
"""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class NotificationCategory(StrEnum):
    """Notification categories - serializes to string value in JSON."""

    LOW_STOCK = "low-stock"
    FULFILLMENT_COMPLETED = "fulfillment-completed"


class LowStockEvent(BaseModel):
    """Post-transfer quantity of a variant is at or below its threshold."""

    category: Literal[NotificationCategory.LOW_STOCK] = NotificationCategory.LOW_STOCK
    location: str
    location_display_name: str
    variant_id: str
    display_name: str | None = None
    current_quantity: int
    threshold: int


class FulfillmentCompletedEvent(BaseModel):
    """Exactly one per committed fulfillment."""

    category: Literal[NotificationCategory.FULFILLMENT_COMPLETED] = NotificationCategory.FULFILLMENT_COMPLETED
    order_id: str
    fulfillment_id: str
    destination: str
    document_number: str | None = None


NotificationEvent = Annotated[LowStockEvent | FulfillmentCompletedEvent, Field(discriminator="category")]
