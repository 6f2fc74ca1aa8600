"""Shared fixtures: a throwaway SQLite database per test and seeding helpers."""

import os
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path

# Settings and the module-level engine are created on import
_DEFAULT_DB = Path(tempfile.gettempdir()) / "fulfillment-test-import.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DEFAULT_DB}"
os.environ["ENV"] = "test"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from fulfillment.config import settings  # noqa: E402
from fulfillment.db import build_engine, build_session_maker  # noqa: E402
from fulfillment.models import Location, MaterialRequisition, Order, StockLine  # noqa: E402
from fulfillment.services.notifications.events import FulfillmentCompletedEvent, LowStockEvent  # noqa: E402
from fulfillment.services.permissions import Actor, Role  # noqa: E402

CENTRAL = settings.central_location


class RecordingDispatcher:
    """Keeps dispatched events in memory."""

    def __init__(self) -> None:
        self.events: list[LowStockEvent | FulfillmentCompletedEvent] = []

    def dispatch(self, event: LowStockEvent | FulfillmentCompletedEvent) -> None:
        self.events.append(event)

    @property
    def low_stock(self) -> list[LowStockEvent]:
        return [event for event in self.events if isinstance(event, LowStockEvent)]

    @property
    def completed(self) -> list[FulfillmentCompletedEvent]:
        return [event for event in self.events if isinstance(event, FulfillmentCompletedEvent)]


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fulfillment.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=Role.ADMIN)


async def seed_stock(
    session_maker: async_sessionmaker[AsyncSession],
    location: str,
    variant_id: str,
    quantity: int,
    *,
    reorder_threshold: int = 0,
    display_name: str | None = None,
) -> None:
    async with session_maker() as session, session.begin():
        session.add(
            StockLine(
                location=location,
                variant_id=variant_id,
                quantity=quantity,
                reorder_threshold=reorder_threshold,
                display_name=display_name,
                product_code=f"SKU-{variant_id}",
                attributes={"color": "blue"},
            )
        )


async def seed_location(
    session_maker: async_sessionmaker[AsyncSession], location: str, display_name: str, *, is_central: bool = False
) -> None:
    async with session_maker() as session, session.begin():
        session.add(Location(id=location, display_name=display_name, is_central=is_central))


async def seed_order(session_maker: async_sessionmaker[AsyncSession], destination: str, number: str = "1001") -> str:
    async with session_maker() as session, session.begin():
        order = Order(order_number=number, destination=destination)
        session.add(order)
    return order.id


async def seed_requisition(
    session_maker: async_sessionmaker[AsyncSession], destination: str, number: str = "REQ-1"
) -> str:
    async with session_maker() as session, session.begin():
        requisition = MaterialRequisition(requisition_number=number, destination=destination)
        session.add(requisition)
    return requisition.id


async def quantity_at(session_maker: async_sessionmaker[AsyncSession], location: str, variant_id: str) -> int | None:
    from fulfillment.services.ledger import LedgerService

    async with session_maker() as session:
        return await LedgerService(session).get_quantity(location, variant_id)
