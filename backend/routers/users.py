"""Users router: reward progress and trade analytics for a user's linked trader."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from backend.dependencies import get_analytics_service, get_progress_service
from backend.mappers import to_analytics_response, to_progress_response
from backend.schemas import ProgressResponse, TradeAnalyticsResponse
from hall_of_elite.analytics import AnalyticsService, ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["users"])


@router.get("/users/{user_id}/progress", response_model=ProgressResponse)
async def get_user_progress(
    user_id: str,
    service: ProgressService = Depends(get_progress_service),
) -> ProgressResponse:
    return to_progress_response(service.get_progress(user_id))


@router.get("/users/{user_id}/analytics", response_model=TradeAnalyticsResponse)
async def get_user_analytics(
    user_id: str,
    equity_days: int | None = Query(default=None, ge=1, le=3650),
    service: AnalyticsService = Depends(get_analytics_service),
) -> TradeAnalyticsResponse:
    """KPIs, equity curve and recent trades.  Unlinked users get zeroed defaults."""
    return to_analytics_response(service.get_trade_analytics(user_id, equity_days=equity_days))
