"""Loading of fulfillable records (orders, requisitions) by ID."""

from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from ulid import ULID

from fulfillment.models.records import FulfillableRecord
from fulfillment.services.fulfillment.exceptions import InvalidFulfillmentRequest, RecordNotFound

TRecord = TypeVar("TRecord", bound=FulfillableRecord)


def validate_record_id(record_id: str) -> str:
    """Normalize a record ID, rejecting anything that is not a ULID."""
    try:
        return str(ULID.from_str(record_id.strip()))
    except (ValueError, AttributeError):
        raise InvalidFulfillmentRequest(f"Invalid record ID: {record_id!r}") from None


async def load_record(
    session: AsyncSession,
    model: type[TRecord],
    record_id: str,
    *,
    for_update: bool = False,
) -> TRecord:
    """Fetch a record by ID, optionally taking a row lock for the rest of the transaction."""
    statement = select(model).where(model.id == validate_record_id(record_id))  # type: ignore[attr-defined]
    if for_update:
        statement = statement.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(statement)
    record = result.scalars().first()
    if record is None:
        raise RecordNotFound(f"{model.__name__} {record_id} not found")
    return record
