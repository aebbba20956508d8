"""Leaderboard router: ranked traders from snapshot, legacy or static data."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from backend.cache import CacheLayer
from backend.dependencies import get_cache, get_leaderboard_service
from backend.mappers import to_leaderboard_entry
from backend.schemas import LeaderboardResponse
from hall_of_elite.config import settings
from hall_of_elite.leaderboard import LeaderboardService
from hall_of_elite.models import Tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(default=settings.LEADERBOARD_DEFAULT_LIMIT, ge=1, le=200),
    tier: Tier | None = None,
    service: LeaderboardService = Depends(get_leaderboard_service),
    cache: CacheLayer = Depends(get_cache),
) -> LeaderboardResponse:
    """Return the leaderboard.  Never errors; an exhausted chain gives an empty list."""

    def build() -> LeaderboardResponse:
        result = service.get_leaderboard(limit=limit, tier=tier)
        if result.source is None:
            logger.warning("Leaderboard: every data source was empty (limit=%d, tier=%s)", limit, tier)
        return LeaderboardResponse(
            traders=[to_leaderboard_entry(e) for e in result.entries],
            total=len(result.entries),
            tier=tier,
            source=result.source,
        )

    cache_key = f"{limit}:{tier.value if tier else 'all'}"
    return cache.get_or_compute("leaderboard", cache_key, build)
