"""Stock ledger package."""

from fulfillment.services.ledger.exceptions import UnknownVariant
from fulfillment.services.ledger.ledger_service import LedgerService, StockLineMetadata, is_low_stock

__all__ = ["LedgerService", "StockLineMetadata", "UnknownVariant", "is_low_stock"]
