"""Health check router."""
from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, Depends

from backend.dependencies import get_datastore
from backend.schemas import HealthResponse
from hall_of_elite.config import settings
from hall_of_elite.datastore import DataStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(
    datastore: DataStore = Depends(get_datastore),
) -> HealthResponse:
    """Return system health status."""
    db_ok = False
    try:
        db_ok = datastore.ping()
    except sqlite3.Error:
        logger.warning("Health check: database connection failed", exc_info=True)

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        db_connected=db_ok,
        static_fallback_enabled=settings.STATIC_FALLBACK_ENABLED,
    )
