"""Domain models for trader ranking, payouts and rewards.

Records read from or written to the storage collaborator are Pydantic v2
models; results computed by the engine are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Tier(str, Enum):
    """Trader ranking tier, ordered lowest to highest."""

    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    DIAMOND = "DIAMOND"
    ELITE = "ELITE"


class PayoutLevel(str, Enum):
    """Payout tier.  GOLD is the *least* active band and pays the most."""

    GOLD = "GOLD"
    SILVER = "SILVER"
    BRONZE = "BRONZE"


class RewardType(str, Enum):
    BONUS = "BONUS"
    CASH = "CASH"
    MERCHANDISE = "MERCHANDISE"


# ---------------------------------------------------------------------------
# Storage records
# ---------------------------------------------------------------------------

class TradingMetricsSnapshot(BaseModel):
    """Per-trader statistics at a point in time.

    ``win_rate_pct`` and ``drawdown_pct`` are percentages in [0, 100].
    The auxiliary fields are ``None`` when the upstream run did not
    produce them.
    """

    model_config = ConfigDict(frozen=True)

    profit_factor: float = Field(ge=0)
    win_rate_pct: float
    drawdown_pct: float
    total_trades: int = Field(default=0, ge=0)
    trading_days: int = Field(default=0, ge=0)
    sharpe_ratio: float | None = None
    consistency_score: float | None = None
    risk_score: float | None = None


class ClosedTrade(BaseModel):
    """A single closed trade from the append-only trade history."""

    model_config = ConfigDict(frozen=True)

    id: str
    account_id: str | None = None
    symbol: str
    profit_loss: float
    fees: float = Field(default=0.0, ge=0)
    open_time: datetime | None = None
    close_time: datetime

    @property
    def net_pnl(self) -> float:
        return self.profit_loss - self.fees


class PayoutRecord(BaseModel):
    """Persisted payout calculation, one row per trader (upserted)."""

    model_config = ConfigDict(populate_by_name=True)

    trader_id: str
    payout_tier: PayoutLevel
    payout_percent: float
    average_trades_per_day: float
    total_trading_days: int
    max_trades_per_day: int
    color: str | None = None
    description: str | None = None
    next_update_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PayoutTierConfig(BaseModel):
    """One row of the payout tier table."""

    tier: PayoutLevel
    min_average: float
    max_average: float | None = None
    payout_percent: float
    color: str
    description: str
    order: int = 0


class RankedEntry(BaseModel):
    """A leaderboard row, from a snapshot run, the legacy store or static data."""

    model_config = ConfigDict(populate_by_name=True)

    trader_id: str
    display_name: str
    score: float
    tier: Tier
    rank: int = Field(ge=1)
    win_rate_pct: float | None = None
    profit_factor: float | None = None
    drawdown_pct: float | None = None
    total_trades: int | None = None
    trading_days: int | None = None


class TraderProfile(RankedEntry):
    """Single-trader read model; same shape as a leaderboard row plus timestamps."""

    computed_at: datetime | None = None


class Entitlement(BaseModel):
    """An ad-hoc reward grant attached to a trader."""

    id: str
    trader_id: str
    reward_type: str
    status: str = "PENDING"


class TierConfig(BaseModel):
    """Presentation config for a ranking tier."""

    tier_id: str
    name: str
    min_score: float
    max_score: float | None = None
    badge: str
    color: str | None = None
    description: str | None = None


class RewardConfig(BaseModel):
    """Reward flags configured for one tier."""

    tier_id: str
    tier_name: str
    phoenix_add_on: bool
    payout_boost: bool
    cashback: bool
    merchandise: bool


# ---------------------------------------------------------------------------
# Computed results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TierAssignment:
    trader_id: str
    score: float
    tier: Tier
    rank: int


@dataclass(frozen=True)
class PayoutCalculation:
    """Result of :func:`hall_of_elite.payout.compute_payout`."""

    average_trades_per_day: float
    payout_percent: float
    payout_tier: PayoutLevel
    color: str = ""
    description: str = ""


@dataclass(frozen=True)
class TradeStats:
    """Daily-bucket roll-up of a trader's closed trades."""

    max_trades_per_day: int
    total_trading_days: int


@dataclass(frozen=True)
class RewardFlags:
    phoenix_add_on: bool = False
    payout_boost: bool = False
    cashback: bool = False
    merchandise: bool = False


@dataclass(frozen=True)
class RewardEligibility:
    trader_id: str
    tier: Tier
    rewards: RewardFlags


@dataclass(frozen=True)
class RewardTarget:
    id: int
    label: str
    required_points: int
    unlocked: bool


@dataclass(frozen=True)
class ProgressState:
    current_points: int
    next_reward_threshold: int
    reward_targets: list[RewardTarget] = field(default_factory=list)


@dataclass(frozen=True)
class ScoringResult:
    trader_id: str
    score: float
    tier: Tier
    components: dict[str, float]
    eligibility_failures: list[str]
    metrics: TradingMetricsSnapshot

    @property
    def is_eligible(self) -> bool:
        return not self.eligibility_failures


@dataclass(frozen=True)
class EquityPoint:
    date: str  # YYYY-MM-DD
    cumulative_pnl: float


@dataclass
class TradeAnalytics:
    """KPI bundle for the analytics endpoint.  Defaults mean "no data"."""

    win_rate: float = 0.0
    profit_factor: float = 0.0
    drawdown: float = 0.0
    total_trading_days: int = 0
    payout_percent: float | None = None
    equity_data: list[EquityPoint] = field(default_factory=list)
    trades_this_week: int = 0
    trades_last_week: int = 0
    path_to_next_tier: str | None = None
    recent_trades: list[ClosedTrade] = field(default_factory=list)
