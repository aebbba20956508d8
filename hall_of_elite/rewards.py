"""Reward eligibility: tier table lookup OR-combined with ad-hoc entitlements."""

from __future__ import annotations

from typing import Iterable

from hall_of_elite.config import TIER_REWARDS
from hall_of_elite.models import Entitlement, RewardEligibility, RewardFlags, RewardType, Tier
from hall_of_elite.resolution import DataSource, resolve, resolve_or_default


def tier_reward_flags(tier: Tier) -> RewardFlags:
    for band_tier, flags in TIER_REWARDS:
        if band_tier == tier:
            return flags
    # Unknown tiers get the entry-level flags
    return TIER_REWARDS[0][1]


def combine_entitlements(base: RewardFlags, entitlements: Iterable[Entitlement]) -> RewardFlags:
    """Grant extra flags for PENDING entitlements.

    BONUS grants both the Phoenix add-on and the payout boost, CASH grants
    cashback, MERCHANDISE grants merchandise.
    """
    types = {
        e.reward_type.upper()
        for e in entitlements
        if e.status.upper() == "PENDING"
    }
    bonus = RewardType.BONUS.value in types
    return RewardFlags(
        phoenix_add_on=base.phoenix_add_on or bonus,
        payout_boost=base.payout_boost or bonus,
        cashback=base.cashback or RewardType.CASH.value in types,
        merchandise=base.merchandise or RewardType.MERCHANDISE.value in types,
    )


def reward_eligibility(trader_id: str, tier: Tier, entitlements: Iterable[Entitlement] = ()) -> RewardEligibility:
    return RewardEligibility(
        trader_id=trader_id,
        tier=tier,
        rewards=combine_entitlements(tier_reward_flags(tier), entitlements),
    )


class RewardsService:
    def __init__(self, store) -> None:
        self._store = store

    def get_reward_eligibility(self, trader_id: str) -> RewardEligibility | None:
        """``None`` when no source knows the trader's tier."""
        profile = resolve(
            [
                DataSource("snapshot", lambda: self._store.get_latest_profile(trader_id)),
                DataSource("legacy", lambda: self._store.get_legacy_profile(trader_id)),
            ],
            operation="reward_tier",
            trader_id=trader_id,
        )
        if not profile:
            return None

        entitlements = resolve_or_default(
            [DataSource("entitlements", lambda: self._store.get_active_entitlements(trader_id))],
            [],
            operation="entitlements",
            trader_id=trader_id,
        )
        return reward_eligibility(trader_id, profile.value.tier, entitlements)
