"""FastAPI dependencies for service injection."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.db import get_session
from fulfillment.services.fulfillment.coordinator import FulfillmentCoordinator
from fulfillment.services.notifications.dispatcher import DramatiqNotificationDispatcher, NotificationDispatcher
from fulfillment.services.permissions import Actor, Role
from fulfillment.services.sequences.admin_service import SequenceAdminService

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_notification_dispatcher() -> NotificationDispatcher:
    """Get the Dramatiq-backed notification dispatcher."""
    return DramatiqNotificationDispatcher()


async def get_coordinator(
    session: SessionDep,
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> FulfillmentCoordinator:
    """Get a FulfillmentCoordinator bound to the request session."""
    return FulfillmentCoordinator(session, dispatcher)


async def get_sequence_admin_service(session: SessionDep) -> SequenceAdminService:
    """Get a SequenceAdminService instance with the current session."""
    return SequenceAdminService(session)


def get_actor(
    x_actor_id: Annotated[str, Header()] = "anonymous",
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the acting identity from headers set by the upstream auth proxy."""
    if x_actor_role is None:
        return Actor(id=x_actor_id)
    try:
        role = Role(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_actor_role}")
    return Actor(id=x_actor_id, role=role)


# Type aliases for cleaner endpoint signatures
CoordinatorDep = Annotated[FulfillmentCoordinator, Depends(get_coordinator)]
SequenceAdminServiceDep = Annotated[SequenceAdminService, Depends(get_sequence_admin_service)]
ActorDep = Annotated[Actor, Depends(get_actor)]
