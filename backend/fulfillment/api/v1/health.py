"""Health check endpoints."""

import structlog
from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fulfillment.api.v1.dependencies import SessionDep

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health", operation_id="healthCheck")
async def health_check(session: SessionDep) -> dict[str, str]:
    """Report whether the API can reach the database."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check failed", error=str(e))
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {"status": "healthy"}
