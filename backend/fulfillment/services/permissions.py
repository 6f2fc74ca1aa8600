"""Role tiers for administrative operations.

Identity comes from the caller (API header or CLI option); this module only
decides whether a role may perform an action.
"""

from dataclasses import dataclass
from enum import StrEnum

from fulfillment.services.exceptions import InsufficientAuthorization


class Role(StrEnum):
    ADMIN = "admin"
    STORE = "store"
    FACTORY = "factory"
    SHOP = "shop"


@dataclass(frozen=True)
class Actor:
    """Who is invoking an operation."""

    id: str
    role: Role | None = None


VIEW_SEQUENCE_ROLES = frozenset({Role.ADMIN, Role.STORE, Role.FACTORY, Role.SHOP})
GENERATE_SEQUENCE_ROLES = frozenset({Role.ADMIN, Role.STORE, Role.FACTORY})
OVERRIDE_SEQUENCE_ROLES = frozenset({Role.ADMIN, Role.STORE})
# Highest tier - bypasses increment semantics
RESET_SEQUENCE_ROLES = frozenset({Role.ADMIN})


def require_role(actor: Actor, allowed: frozenset[Role], action: str) -> None:
    """Raise InsufficientAuthorization unless the actor's role is in `allowed`."""
    if actor.role is None or actor.role not in allowed:
        raise InsufficientAuthorization(
            action=action,
            role=actor.role.value if actor.role else None,
            allowed=frozenset(role.value for role in allowed),
        )
