"""Fulfillment attempt state machine.

    RECEIVED -> IN_TRANSACTION -> COMMITTED
                               -> ROLLED_BACK

COMMITTED and ROLLED_BACK are terminal. A request rejected by validation
never leaves RECEIVED.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

import structlog

from fulfillment.models.base import utc_now
from fulfillment.services.fulfillment.exceptions import InvalidStateTransition

logger = structlog.get_logger(__name__)


class FulfillmentState(StrEnum):
    RECEIVED = "received"
    IN_TRANSACTION = "in_transaction"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({FulfillmentState.COMMITTED, FulfillmentState.ROLLED_BACK})

ALLOWED_TRANSITIONS: dict[FulfillmentState, frozenset[FulfillmentState]] = {
    FulfillmentState.RECEIVED: frozenset({FulfillmentState.IN_TRANSACTION}),
    FulfillmentState.IN_TRANSACTION: TERMINAL_STATES,
    FulfillmentState.COMMITTED: frozenset(),
    FulfillmentState.ROLLED_BACK: frozenset(),
}


@dataclass
class FulfillmentAttempt:
    """Tracks one request through the state machine."""

    state: FulfillmentState = FulfillmentState.RECEIVED
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None
    scope: str | None = None  # Counter scope, known once the target record is loaded
    history: list[FulfillmentState] = field(default_factory=lambda: [FulfillmentState.RECEIVED])

    def transition(self, new_state: FulfillmentState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidStateTransition(f"Cannot move fulfillment from {self.state} to {new_state}")
        logger.debug("Fulfillment state change", from_state=self.state, to_state=new_state)
        self.state = new_state
        self.history.append(new_state)
        if new_state.is_terminal:
            self.finished_at = utc_now()
