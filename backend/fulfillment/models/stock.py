"""Stock location and stock line models."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from fulfillment.models.base import utc_now
from fulfillment.models.types import JSONVariant


class Location(SQLModel, table=True):
    """A place that holds stock: the central warehouse or a destination (shop, production floor)."""

    __tablename__ = "locations"

    id: str = Field(primary_key=True, max_length=64)
    display_name: str
    is_central: bool = False


# One stock line per (location, variant); destination lines are created on first allocation
STOCK_LINE_CONSTRAINT = UniqueConstraint("location", "variant_id", name="uq_stock_line_location_variant")


class StockLine(SQLModel, table=True):
    """Quantity of one product variant at one location.

    Quantity is allowed to go negative; nothing in the ledger clamps it.
    """

    __tablename__ = "stock_lines"
    __table_args__ = (STOCK_LINE_CONSTRAINT,)

    id: int | None = Field(default=None, primary_key=True)
    location: str = Field(index=True, max_length=64)
    variant_id: str = Field(index=True, max_length=64)
    quantity: int = 0
    reorder_threshold: int = 0

    # Metadata copied from the source line when a destination line is created
    display_name: str | None = None
    product_code: str | None = Field(default=None, max_length=64)
    price: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    attributes: dict[str, Any] = Field(default_factory=dict, sa_type=JSONVariant)

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)
