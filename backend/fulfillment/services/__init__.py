"""Services module.

This module provides the service layer architecture:
- exceptions: Service exception taxonomy
- sequences: Document number generation and administration
- ledger: Stock ledger operations (central and destination inventories)
- fulfillment: Fulfillment coordinator (transaction boundary and state machine)
- notifications: Outbound event contract and dispatchers
"""
