"""Rewards router: reward eligibility by tier and entitlements."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.dependencies import get_rewards_service
from backend.mappers import to_reward_eligibility_response
from backend.schemas import RewardEligibilityResponse
from hall_of_elite.errors import NotFound
from hall_of_elite.rewards import RewardsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["rewards"])


@router.get("/rewards/traders/{trader_id}", response_model=RewardEligibilityResponse)
async def get_reward_eligibility(
    trader_id: str,
    service: RewardsService = Depends(get_rewards_service),
) -> RewardEligibilityResponse:
    eligibility = service.get_reward_eligibility(trader_id)
    if eligibility is None:
        raise NotFound("Trader tier not found")
    return to_reward_eligibility_response(eligibility)
