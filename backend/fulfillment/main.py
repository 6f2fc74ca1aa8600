"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fulfillment.api.v1 import fulfillments, health, sequences
from fulfillment.config import settings
from fulfillment.db import dispose_engine
from fulfillment.logging import setup_logging

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(
        "Starting Fulfillment API",
        debug=settings.debug,
        central_location=settings.central_location,
        notifications_enabled=bool(settings.notification_webhook_url),
    )

    yield

    logger.info("Shutting down Fulfillment API")
    await dispose_engine()
    logger.info("Database connections disposed")


app = FastAPI(
    title="Fulfillment API",
    description="Stock transfers, document numbering and fulfillment notifications",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(fulfillments.router, prefix="/api/v1")
app.include_router(sequences.router, prefix="/api/v1")
