"""Fulfillment API endpoints."""

import structlog
from fastapi import APIRouter

from fulfillment.api.v1.dependencies import CoordinatorDep
from fulfillment.api.v1.errors import http_error
from fulfillment.api.v1.fulfillments.schemas import FulfillmentCreateRequest, FulfillmentResponse
from fulfillment.services.exceptions import ServiceError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["fulfillments"])


@router.post(
    "/fulfillments",
    response_model=FulfillmentResponse,
    status_code=201,
    operation_id="createFulfillment",
)
async def create_fulfillment(
    body: FulfillmentCreateRequest,
    coordinator: CoordinatorDep,
) -> FulfillmentResponse:
    """Move stock from the central location to the record's destination in one transaction.

    - Every line succeeds or nothing changes (stock, status and document number)
    - 409 means a concurrent update won; the request can be resubmitted as-is
    - Notifications are queued only after commit
    """
    try:
        record = await coordinator.fulfill(body.to_request())
    except ServiceError as e:
        raise http_error(e) from e
    return FulfillmentResponse.from_model(record)


@router.get(
    "/fulfillments/{fulfillment_id}",
    response_model=FulfillmentResponse,
    operation_id="getFulfillment",
)
async def get_fulfillment(
    fulfillment_id: str,
    coordinator: CoordinatorDep,
) -> FulfillmentResponse:
    """Get a committed or rolled-back fulfillment record."""
    try:
        record = await coordinator.get_fulfillment(fulfillment_id)
    except ServiceError as e:
        raise http_error(e) from e
    return FulfillmentResponse.from_model(record)
