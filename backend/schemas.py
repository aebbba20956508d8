"""Pydantic v2 response models for the Hall of Elite API."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from hall_of_elite.models import PayoutLevel, Tier


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """System health check response."""

    status: str
    db_connected: bool
    static_fallback_enabled: bool


# ---------------------------------------------------------------------------
# Leaderboard & trader profile
# ---------------------------------------------------------------------------

class LeaderboardEntry(BaseModel):
    """A single row in the leaderboard."""

    model_config = ConfigDict(populate_by_name=True)

    rank: int
    trader_id: str
    display_name: str
    score: float
    tier: Tier
    win_rate: float | None = None
    profit_factor: float | None = None
    drawdown: float | None = None
    total_trades: int | None = None
    trading_days: int | None = None


class LeaderboardResponse(BaseModel):
    """Leaderboard envelope; ``source`` names the store that served it."""

    model_config = ConfigDict(populate_by_name=True)

    traders: list[LeaderboardEntry]
    total: int
    tier: Tier | None = None
    source: str | None = None


class TraderProfileResponse(LeaderboardEntry):
    computed_at: datetime | None = None
    source: str


class ScoreResponse(BaseModel):
    """Composite score with its component breakdown."""

    model_config = ConfigDict(populate_by_name=True)

    trader_id: str
    score: float
    tier: Tier
    components: dict[str, float]
    eligible: bool
    eligibility_failures: list[str] = []


# ---------------------------------------------------------------------------
# Payout
# ---------------------------------------------------------------------------

class PayoutTierItem(BaseModel):
    tier: PayoutLevel
    min_average: float
    max_average: float | None = None
    payout_percent: float
    color: str
    description: str


class PayoutTiersResponse(BaseModel):
    tiers: list[PayoutTierItem]


class PayoutResponse(BaseModel):
    """Stored payout for one trader."""

    model_config = ConfigDict(populate_by_name=True)

    trader_id: str
    payout_tier: PayoutLevel
    payout_percent: float
    average_trades_per_day: float
    total_trading_days: int
    max_trades_per_day: int
    color: str | None = None
    description: str | None = None
    path_to_next_tier: str | None = None
    next_update_at: datetime | None = None
    updated_at: datetime | None = None


class PayoutNotCalculatedResponse(BaseModel):
    """Returned by ``POST /payout/calculate`` when there is nothing to derive from."""

    data: None = None
    message: str


class PayoutCalculateRequest(BaseModel):
    """Body of ``POST /payout/calculate``.

    When both counts are omitted (or ``from_trades`` is set) they are
    derived from the trader's closed trades.
    """

    trader_id: str = Field(min_length=1)
    max_trades_per_day: int | None = None
    total_trading_days: int | None = None
    from_trades: bool = False


# ---------------------------------------------------------------------------
# Progress & analytics
# ---------------------------------------------------------------------------

class RewardTargetItem(BaseModel):
    id: int
    label: str
    required_points: int
    unlocked: bool


class ProgressResponse(BaseModel):
    current_points: int
    next_reward_threshold: int
    max_points_for_display: int
    reward_targets: list[RewardTargetItem]


class EquityPointItem(BaseModel):
    date: str
    cumulative_pnl: float


class RecentTradeItem(BaseModel):
    id: str
    symbol: str
    profit_loss: float
    fees: float
    net_pnl: float
    close_time: datetime


class TradeAnalyticsResponse(BaseModel):
    """Dashboard KPIs, equity curve and recent activity for a user."""

    model_config = ConfigDict(populate_by_name=True)

    win_rate: float
    profit_factor: float
    drawdown: float
    total_trading_days: int
    payout_percent: float | None = None
    equity_data: list[EquityPointItem] = []
    trades_this_week: int = 0
    trades_last_week: int = 0
    path_to_next_tier: str | None = None
    recent_trades: list[RecentTradeItem] = []


# ---------------------------------------------------------------------------
# Rewards & admin
# ---------------------------------------------------------------------------

class RewardFlagsItem(BaseModel):
    phoenix_add_on: bool
    payout_boost: bool
    cashback: bool
    merchandise: bool


class RewardEligibilityResponse(BaseModel):
    trader_id: str
    tier: Tier
    rewards: RewardFlagsItem


class TierConfigItem(BaseModel):
    tier_id: str
    name: str
    min_score: float
    max_score: float | None = None
    badge: str
    color: str | None = None
    description: str | None = None


class TierConfigsResponse(BaseModel):
    tiers: list[TierConfigItem]


class RewardConfigItem(BaseModel):
    tier_id: str
    tier_name: str
    phoenix_add_on: bool
    payout_boost: bool
    cashback: bool
    merchandise: bool


class RewardConfigsResponse(BaseModel):
    rewards: list[RewardConfigItem]
