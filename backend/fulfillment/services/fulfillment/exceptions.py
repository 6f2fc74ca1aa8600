"""Fulfillment domain exceptions."""

from fulfillment.services.exceptions import NotFoundError, ServiceError, ValidationError


class RecordNotFound(NotFoundError):
    """Order or requisition targeted by a fulfillment or override does not exist."""

    pass


class FulfillmentRecordNotFound(NotFoundError):
    """Fulfillment audit record does not exist."""

    pass


class InvalidFulfillmentRequest(ValidationError):
    """Request is malformed (no lines, non-positive quantity, bad identifiers)."""

    pass


class InvalidStateTransition(ServiceError):
    """Coordinator attempted a transition its state machine does not allow."""

    pass


class SessionTransactionInProgress(ServiceError):
    """fulfill() was handed a session that already has an open transaction."""

    pass
