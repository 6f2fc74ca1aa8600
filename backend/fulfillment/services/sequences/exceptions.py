"""Document numbering exceptions."""

from fulfillment.services.exceptions import ValidationError


class UnsupportedDocumentType(ValidationError):
    """Document type has no numbering configuration."""

    pass


class InvalidDocumentNumber(ValidationError):
    """Hand-typed document number does not match the type's format."""

    pass


class InvalidSequenceValue(ValidationError):
    """Counter value for a reset is negative."""

    pass


class ScopeTokenCollision(ValidationError):
    """A new scope would print the same number token as an existing scope."""

    def __init__(self, document_type: str, scope: str, existing_scope: str, token: str):
        self.scope = scope
        self.existing_scope = existing_scope
        self.token = token
        super().__init__(
            f"Scope {scope!r} would share number token {token!r} with existing "
            f"{document_type} scope {existing_scope!r}"
        )
