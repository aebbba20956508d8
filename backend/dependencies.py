"""FastAPI dependency injection helpers."""
from __future__ import annotations

from fastapi import Request

from backend.cache import CacheLayer
from hall_of_elite.analytics import AnalyticsService, ProgressService
from hall_of_elite.datastore import DataStore
from hall_of_elite.leaderboard import LeaderboardService
from hall_of_elite.payout import PayoutService
from hall_of_elite.rewards import RewardsService
from hall_of_elite.scoring import ScoringService
from hall_of_elite.tiering import TierConfigService


def get_datastore(request: Request) -> DataStore:
    """Return the shared DataStore from app state."""
    return request.app.state.datastore


def get_cache(request: Request) -> CacheLayer:
    """Return the shared CacheLayer from app state."""
    return request.app.state.cache


def get_leaderboard_service(request: Request) -> LeaderboardService:
    return request.app.state.leaderboard_service


def get_scoring_service(request: Request) -> ScoringService:
    return request.app.state.scoring_service


def get_payout_service(request: Request) -> PayoutService:
    return request.app.state.payout_service


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service


def get_progress_service(request: Request) -> ProgressService:
    return request.app.state.progress_service


def get_rewards_service(request: Request) -> RewardsService:
    return request.app.state.rewards_service


def get_tier_config_service(request: Request) -> TierConfigService:
    return request.app.state.tier_config_service
