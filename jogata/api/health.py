"""
Health check endpoints.

Liveness and readiness probes; readiness checks database connectivity.
"""

import logging

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from jogata.api.deps import SessionDep
from jogata.models.db import StyleCardDB

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    catalog_size: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Does not check dependencies."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(response: Response, session: SessionDep) -> HealthResponse:
    """
    Readiness probe.

    Ready once the database answers; reports how many style cards are
    seeded. Returns 503 if the database is unavailable.
    """
    try:
        await session.execute(text("SELECT 1"))
        catalog_size = await session.scalar(select(func.count(StyleCardDB.id)))
    except SQLAlchemyError:
        logger.warning("Readiness check failed: database unavailable", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="disconnected")
    return HealthResponse(status="ready", database="connected", catalog_size=int(catalog_size or 0))
