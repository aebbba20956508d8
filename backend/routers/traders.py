"""Traders router: single-trader profile and score breakdown."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.cache import CacheLayer
from backend.dependencies import get_cache, get_leaderboard_service, get_scoring_service
from backend.mappers import to_profile_response, to_score_response
from backend.schemas import ScoreResponse, TraderProfileResponse
from hall_of_elite.errors import NotFound
from hall_of_elite.leaderboard import LeaderboardService
from hall_of_elite.scoring import ScoringService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["traders"])


@router.get("/traders/{trader_id}", response_model=TraderProfileResponse)
async def get_trader_profile(
    trader_id: str,
    service: LeaderboardService = Depends(get_leaderboard_service),
    cache: CacheLayer = Depends(get_cache),
) -> TraderProfileResponse:
    """Return the trader's latest ranked profile."""
    def build() -> TraderProfileResponse | None:
        result = service.get_profile(trader_id)
        return to_profile_response(result.profile, result.source) if result else None

    response = cache.get_or_compute("trader", trader_id, build)
    if response is None:
        raise NotFound("Trader not found")
    return response


@router.get("/traders/{trader_id}/score", response_model=ScoreResponse)
async def get_trader_score(
    trader_id: str,
    service: ScoringService = Depends(get_scoring_service),
) -> ScoreResponse:
    """Score the trader from current metrics, with the component breakdown."""
    result = service.score_trader(trader_id)
    if result is None:
        raise NotFound("No metrics available for trader")
    return to_score_response(result)
