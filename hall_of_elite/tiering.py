"""Tier classification: composite score (0-100) -> ranking tier.

Bands are fixed, non-overlapping and inclusive at their lower bound, so a
score sitting exactly on a boundary belongs to the higher tier.
"""

from __future__ import annotations

import math

from hall_of_elite.config import TIER_BANDS, TIER_PRESENTATION, TIER_REWARDS
from hall_of_elite.errors import InvalidArgument
from hall_of_elite.models import RewardConfig, Tier, TierConfig
from hall_of_elite.resolution import DataSource, resolve


def classify_tier(score: float, bands: tuple[tuple[Tier, float], ...] = TIER_BANDS) -> Tier:
    """Map *score* to a tier.  First band whose lower bound is met wins.

    Out-of-range scores do not raise: anything above 100 is ELITE and
    anything below 0 is BRONZE.  Non-finite input is an
    :class:`InvalidArgument`.
    """
    if not isinstance(score, (int, float)) or not math.isfinite(score):
        raise InvalidArgument(f"score must be a finite number, got {score!r}", field="score")
    for tier, lower in bands:
        if score >= lower:
            return tier
    return bands[-1][0]


def tier_bounds(tier: Tier, bands: tuple[tuple[Tier, float], ...] = TIER_BANDS) -> tuple[float, float | None]:
    """Return ``(min_score, max_score)`` for *tier*; ``max_score`` is ``None`` for the top band."""
    upper: float | None = None
    for band_tier, lower in bands:
        if band_tier == tier:
            return lower, upper
        upper = lower
    raise InvalidArgument(f"unknown tier {tier!r}", field="tier")


def parse_tier(value: str | Tier | None) -> Tier | None:
    """Case-insensitive tier lookup; ``None`` for unknown names."""
    if value is None:
        return None
    if isinstance(value, Tier):
        return value
    try:
        return Tier(str(value).strip().upper())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Static tier / reward configuration
# ---------------------------------------------------------------------------


def static_tier_configs() -> list[TierConfig]:
    configs = []
    for tier, name, color, description in TIER_PRESENTATION:
        lower, upper = tier_bounds(tier)
        configs.append(
            TierConfig(
                tier_id=tier.value,
                name=name,
                min_score=lower,
                max_score=upper,
                badge=name,
                color=color,
                description=description,
            )
        )
    return configs


def static_reward_configs() -> list[RewardConfig]:
    names = {tier: name for tier, name, _, _ in TIER_PRESENTATION}
    return [
        RewardConfig(
            tier_id=tier.value,
            tier_name=names[tier],
            phoenix_add_on=flags.phoenix_add_on,
            payout_boost=flags.payout_boost,
            cashback=flags.cashback,
            merchandise=flags.merchandise,
        )
        for tier, flags in TIER_REWARDS
    ]


class TierConfigService:
    """Tier presentation config from the store, falling back to static tables."""

    def __init__(self, store) -> None:
        self._store = store

    def get_tier_configs(self) -> list[TierConfig]:
        result = resolve(
            [
                DataSource("store", self._store.get_tier_configs),
                DataSource("static", static_tier_configs),
            ],
            operation="tier_configs",
        )
        return result.value if result else []

    def get_tier_config(self, tier_id: str) -> TierConfig | None:
        wanted = tier_id.strip().upper()
        for config in self.get_tier_configs():
            if config.tier_id.upper() == wanted:
                return config
        return None

    def get_reward_configs(self) -> list[RewardConfig]:
        result = resolve(
            [
                DataSource("store", self._store.get_reward_configs),
                DataSource("static", static_reward_configs),
            ],
            operation="reward_configs",
        )
        return result.value if result else []
