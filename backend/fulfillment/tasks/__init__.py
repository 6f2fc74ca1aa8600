"""Dramatiq background tasks package."""

import dramatiq
import structlog
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker

from fulfillment.config import settings
from fulfillment.logging import setup_logging

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)

broker: dramatiq.Broker
if settings.env == "test":
    broker = StubBroker()
else:
    broker = RedisBroker(url=settings.redis_url)  # type: ignore[no-untyped-call]
dramatiq.set_broker(broker)

# Import all tasks to register them with Dramatiq (must be after broker setup)
import fulfillment.tasks.notifications  # noqa: E402, F401
