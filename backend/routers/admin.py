"""Admin router: tier and reward configuration."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.cache import CacheLayer
from backend.dependencies import get_cache, get_tier_config_service
from backend.mappers import to_reward_config_item, to_tier_config_item
from backend.schemas import RewardConfigsResponse, TierConfigsResponse
from hall_of_elite.tiering import TierConfigService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["admin"])


@router.get("/admin/tiers", response_model=TierConfigsResponse)
async def get_tier_configs(
    service: TierConfigService = Depends(get_tier_config_service),
    cache: CacheLayer = Depends(get_cache),
) -> TierConfigsResponse:
    return cache.get_or_compute(
        "tiers",
        "ranking",
        lambda: TierConfigsResponse(tiers=[to_tier_config_item(c) for c in service.get_tier_configs()]),
    )


@router.get("/admin/rewards", response_model=RewardConfigsResponse)
async def get_reward_configs(
    service: TierConfigService = Depends(get_tier_config_service),
) -> RewardConfigsResponse:
    return RewardConfigsResponse(rewards=[to_reward_config_item(c) for c in service.get_reward_configs()])
