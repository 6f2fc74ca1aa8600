"""Stock ledger: quantities per (location, variant).

Quantity changes are single `UPDATE ... SET quantity = quantity +/- :q`
statements, so concurrent transactions touching the same line serialize on
the row instead of overwriting each other. No method commits; they are meant
to run inside a FulfillmentCoordinator transaction.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from fulfillment.config import settings
from fulfillment.db.conflict_retry import CreateOnConflict
from fulfillment.db.exceptions import translate_db_errors
from fulfillment.models.base import utc_now
from fulfillment.models.stock import STOCK_LINE_CONSTRAINT, Location, StockLine
from fulfillment.services.ledger.exceptions import UnknownVariant
from fulfillment.services.notifications.events import LowStockEvent

logger = structlog.get_logger(__name__)


def is_low_stock(quantity: int, threshold: int) -> bool:
    return quantity <= threshold


@dataclass(frozen=True)
class StockLineMetadata:
    """Descriptive fields copied onto a destination line when it is first created."""

    display_name: str | None = None
    product_code: str | None = None
    price: Decimal | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_line(cls, line: StockLine) -> "StockLineMetadata":
        return cls(
            display_name=line.display_name,
            product_code=line.product_code,
            price=line.price,
            attributes=dict(line.attributes or {}),
        )


class LedgerService:
    """Reads and mutates stock lines."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @translate_db_errors
    async def get_line(self, location: str, variant_id: str) -> StockLine | None:
        result = await self.session.execute(
            select(StockLine)
            .where(StockLine.location == location, StockLine.variant_id == variant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @translate_db_errors
    async def get_quantity(self, location: str, variant_id: str) -> int | None:
        result = await self.session.execute(
            select(StockLine.quantity).where(StockLine.location == location, StockLine.variant_id == variant_id)
        )
        return result.scalars().first()

    @translate_db_errors
    async def transfer_out(self, location: str, variant_id: str, quantity: int) -> int:
        """Decrement stock at `location`. Returns the new quantity, which may be negative.

        Raises:
            UnknownVariant: If the location has no line for the variant.
        """
        new_quantity = await self._adjust(location, variant_id, -quantity)
        if new_quantity is None:
            raise UnknownVariant(location, variant_id)
        logger.debug("Transferred out", location=location, variant_id=variant_id, quantity=quantity, new=new_quantity)
        return new_quantity

    @translate_db_errors
    async def transfer_in(
        self,
        location: str,
        variant_id: str,
        quantity: int,
        metadata: StockLineMetadata | None = None,
    ) -> int:
        """Increment stock at `location`, creating the line with `metadata` if absent.

        Returns the new quantity.
        """
        metadata = metadata or StockLineMetadata()
        new_quantity: int | None = None
        async for attempt in CreateOnConflict(
            self.session,
            STOCK_LINE_CONSTRAINT,
            max_retries=settings.stock_line_max_retries,
        ):
            async with attempt:
                new_quantity = await self._adjust(location, variant_id, quantity)
                if new_quantity is None:
                    self.session.add(
                        StockLine(
                            location=location,
                            variant_id=variant_id,
                            quantity=quantity,
                            display_name=metadata.display_name,
                            product_code=metadata.product_code,
                            price=metadata.price,
                            attributes=dict(metadata.attributes),
                        )
                    )
                    await self.session.flush()
                    new_quantity = quantity
                    logger.info("Created stock line", location=location, variant_id=variant_id, quantity=quantity)
        assert new_quantity is not None
        return new_quantity

    @translate_db_errors
    async def check_low_stock(self, location: str, variant_id: str, threshold: int) -> LowStockEvent | None:
        """Return a LowStockEvent if the current quantity is at or below `threshold`.

        Read-only; the caller decides what to do with the event.
        """
        line = await self.get_line(location, variant_id)
        if line is None or not is_low_stock(line.quantity, threshold):
            return None
        return LowStockEvent(
            location=location,
            location_display_name=await self._location_display_name(location),
            variant_id=variant_id,
            display_name=line.display_name,
            current_quantity=line.quantity,
            threshold=threshold,
        )

    async def _adjust(self, location: str, variant_id: str, delta: int) -> int | None:
        statement = (
            update(StockLine)
            .where(
                StockLine.location == location,  # type: ignore[arg-type]
                StockLine.variant_id == variant_id,  # type: ignore[arg-type]
            )
            .values(quantity=StockLine.quantity + delta, updated_at=utc_now())
            .returning(StockLine.quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def _location_display_name(self, location: str) -> str:
        loc = await self.session.get(Location, location)
        if loc is not None:
            return loc.display_name
        if location == settings.central_location:
            return settings.central_location_name
        return location
