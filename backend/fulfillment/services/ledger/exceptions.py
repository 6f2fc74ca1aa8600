"""Stock ledger exceptions."""

from fulfillment.services.exceptions import ValidationError


class UnknownVariant(ValidationError):
    """No stock line for the variant at the source location."""

    def __init__(self, location: str, variant_id: str):
        self.location = location
        self.variant_id = variant_id
        super().__init__(f"Unknown variant {variant_id} at {location}")
