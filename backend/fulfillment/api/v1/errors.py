"""Mapping of service exceptions to HTTP errors."""

from fastapi import HTTPException

from fulfillment.services.exceptions import (
    ConcurrencyConflict,
    InsufficientAuthorization,
    NotFoundError,
    ServiceError,
    StorageUnavailable,
    ValidationError,
)

_STATUS_CODES: list[tuple[type[ServiceError], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConcurrencyConflict, 409),
    (InsufficientAuthorization, 403),
    (StorageUnavailable, 503),
]


def http_error(exc: ServiceError) -> HTTPException:
    """Convert a service exception to the HTTPException the route should raise."""
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
