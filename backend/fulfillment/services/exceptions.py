"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API layer and converted to appropriate HTTP responses.
"""


class ServiceError(Exception):
    """Base service exception."""

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Malformed request. Raised before any mutation; safe to fix and resubmit."""

    pass


class ConcurrencyConflict(ServiceError):
    """An atomic step could not complete because of contention.

    The surrounding transaction has been rolled back; the caller may retry
    the whole operation.
    """

    pass


class InsufficientAuthorization(ServiceError):
    """Administrative operation invoked without the required role."""

    def __init__(self, action: str, role: str | None, allowed: frozenset[str]):
        self.action = action
        self.role = role
        self.allowed = allowed
        allowed_names = ", ".join(sorted(allowed))
        super().__init__(f"{action} requires one of ({allowed_names}), got {role or 'anonymous'}")


class StorageUnavailable(ServiceError):
    """The backing store cannot be reached or the transaction cannot commit."""

    pass
