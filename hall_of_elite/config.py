"""Centralized configuration for the ranking, payout and rewards engine.

All tunable tables (tier bands, score weights, payout bands, reward
targets, tier reward flags) live here so they can be adjusted in one place.
Tables are ordered association lists: the first matching entry wins.
Process-level settings (database path, logging) come from the environment
via :class:`Settings`.
"""

from __future__ import annotations

import math

from pydantic_settings import BaseSettings

from hall_of_elite.errors import ConfigurationError
from hall_of_elite.models import PayoutLevel, PayoutTierConfig, RewardFlags, Tier

# ---------------------------------------------------------------------------
# Tier bands (score -> tier), highest band first.  Lower bound inclusive.
# ---------------------------------------------------------------------------

TIER_BANDS: tuple[tuple[Tier, float], ...] = (
    (Tier.ELITE, 95.0),
    (Tier.DIAMOND, 80.0),
    (Tier.PLATINUM, 60.0),
    (Tier.GOLD, 40.0),
    (Tier.SILVER, 20.0),
    (Tier.BRONZE, 0.0),
)

# ---------------------------------------------------------------------------
# Score weights
# ---------------------------------------------------------------------------

SCORE_WEIGHTS: dict[str, float] = {
    "profit_factor": 0.25,
    "win_rate": 0.20,
    "drawdown": 0.20,
    "sharpe": 0.15,
    "consistency": 0.15,
    "risk": 0.05,
}

# Components always present in TradingMetricsSnapshot
CORE_COMPONENTS = ("profit_factor", "win_rate", "drawdown")

PROFIT_FACTOR_MULTIPLIER = 20.0
DRAWDOWN_PENALTY_MULTIPLIER = 5.0
SHARPE_MULTIPLIER = 30.0
SCORE_PRECISION = 2

# Informational eligibility rules; failing them does not change the score.
ELIGIBILITY_RULES = {
    "min_trading_days": 30,
    "min_total_trades": 20,
    "min_profit_factor": 1.2,
    "max_drawdown_pct": 25.0,
    "min_win_rate_pct": 50.0,
}

# ---------------------------------------------------------------------------
# Payout bands (average trades per day -> payout), lowest average first.
# An average strictly below ``max_average`` falls in the band.
# ---------------------------------------------------------------------------

PAYOUT_BANDS: tuple[PayoutTierConfig, ...] = (
    PayoutTierConfig(
        tier=PayoutLevel.GOLD,
        min_average=0.0,
        max_average=0.2,
        payout_percent=95,
        color="#FBBF24",
        description="Low activity trader - 95% payout",
        order=3,
    ),
    PayoutTierConfig(
        tier=PayoutLevel.SILVER,
        min_average=0.2,
        max_average=0.4,
        payout_percent=80,
        color="#F59E0B",
        description="Medium activity trader - 80% payout",
        order=2,
    ),
    PayoutTierConfig(
        tier=PayoutLevel.BRONZE,
        min_average=0.4,
        max_average=None,
        payout_percent=30,
        color="#10B981",
        description="High activity trader - 30% payout",
        order=1,
    ),
)

# ---------------------------------------------------------------------------
# Progress / points
# ---------------------------------------------------------------------------

REWARD_TARGET_THRESHOLDS: tuple[int, ...] = (0, 75, 80, 85, 88, 90, 92, 94, 96, 98)
MIN_POINTS_START = 25
MAX_POINTS_FOR_DISPLAY = 100
ACTIVITY_POINTS_PER_DAY = 2
ACTIVITY_BONUS_CAP = 45

RECENT_TRADES_LIMIT = 10

# ---------------------------------------------------------------------------
# Tier -> reward flags
# ---------------------------------------------------------------------------

TIER_REWARDS: tuple[tuple[Tier, RewardFlags], ...] = (
    (Tier.BRONZE, RewardFlags()),
    (Tier.SILVER, RewardFlags(cashback=True)),
    (Tier.GOLD, RewardFlags(payout_boost=True, cashback=True)),
    (Tier.PLATINUM, RewardFlags(payout_boost=True, cashback=True, merchandise=True)),
    (Tier.DIAMOND, RewardFlags(phoenix_add_on=True, payout_boost=True, cashback=True, merchandise=True)),
    (Tier.ELITE, RewardFlags(phoenix_add_on=True, payout_boost=True, cashback=True, merchandise=True)),
)

# Static presentation data for tiers: (tier, display name, colour, description)
TIER_PRESENTATION: tuple[tuple[Tier, str, str, str], ...] = (
    (Tier.BRONZE, "Bronze", "#cd7f32", "Entry level tier"),
    (Tier.SILVER, "Silver", "#c0c0c0", "Intermediate tier"),
    (Tier.GOLD, "Gold", "#ffd700", "Advanced tier"),
    (Tier.PLATINUM, "Platinum", "#e5e4e2", "Expert tier"),
    (Tier.DIAMOND, "Diamond", "#b9f2ff", "Master tier"),
    (Tier.ELITE, "Elite", "#8b00ff", "Elite tier - highest achievement"),
)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_config(
    weights: dict[str, float] | None = None,
    tier_bands: tuple[tuple[Tier, float], ...] | None = None,
    payout_bands: tuple[PayoutTierConfig, ...] | None = None,
    reward_thresholds: tuple[int, ...] | None = None,
) -> None:
    """Check the engine tables for internal consistency.

    Raises :class:`ConfigurationError` on the first violation.  Called once
    at application start-up; engine functions do not re-validate per call.
    """
    weights = SCORE_WEIGHTS if weights is None else weights
    tier_bands = TIER_BANDS if tier_bands is None else tier_bands
    payout_bands = PAYOUT_BANDS if payout_bands is None else payout_bands
    reward_thresholds = REWARD_TARGET_THRESHOLDS if reward_thresholds is None else reward_thresholds

    if any(w < 0 for w in weights.values()):
        raise ConfigurationError("score weights must be non-negative")
    total = math.fsum(weights.values())
    if abs(total - 1.0) > 1e-9:
        raise ConfigurationError(f"score weights must sum to 1.0, got {total}")
    missing = [c for c in CORE_COMPONENTS if c not in weights]
    if missing:
        raise ConfigurationError(f"score weights missing core components: {missing}")

    if not tier_bands:
        raise ConfigurationError("tier bands are empty")
    mins = [lower for _, lower in tier_bands]
    if any(a <= b for a, b in zip(mins, mins[1:])):
        raise ConfigurationError("tier bands must be strictly descending and non-overlapping")
    if mins[-1] != 0:
        raise ConfigurationError("lowest tier band must start at 0")
    tiers = [t for t, _ in tier_bands]
    if len(set(tiers)) != len(tiers):
        raise ConfigurationError("tier bands contain a duplicate tier")

    if not payout_bands or payout_bands[-1].max_average is not None:
        raise ConfigurationError("last payout band must be open-ended")
    uppers = [b.max_average for b in payout_bands[:-1]]
    if any(u is None for u in uppers):
        raise ConfigurationError("only the last payout band may be open-ended")
    if any(a >= b for a, b in zip(uppers, uppers[1:])):
        raise ConfigurationError("payout band upper bounds must be strictly increasing")

    if any(a > b for a, b in zip(reward_thresholds, reward_thresholds[1:])):
        raise ConfigurationError("reward target thresholds must be non-decreasing")


# ---------------------------------------------------------------------------
# Process settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Runtime settings, overridable via HOE_* env vars."""

    DB_PATH: str = "data/hall_of_elite.db"
    LOG_FORMAT: str = "console"  # "json" or "console"
    LOG_LEVEL: str = "INFO"
    LEADERBOARD_DEFAULT_LIMIT: int = 50
    STATIC_FALLBACK_ENABLED: bool = True
    MT5_TABLES_PROVISIONED: bool = True

    model_config = {
        "env_prefix": "HOE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
