"""Deterministic static data served when no real source has anything.

Used as the last step of the leaderboard and profile fallback chains so
the frontend keeps rendering while the broker bridge is not provisioned.
"""

from __future__ import annotations

import hashlib

from hall_of_elite.models import RankedEntry, Tier, TraderProfile, TradingMetricsSnapshot
from hall_of_elite.scoring import compute_score
from hall_of_elite.tiering import classify_tier

_STATIC_LEADERBOARD = (
    ("1", "Elite Trader Alpha", 96.4, Tier.ELITE),
    ("2", "Diamond Trader Beta", 87.1, Tier.DIAMOND),
    ("3", "Platinum Trader Gamma", 71.8, Tier.PLATINUM),
)


def _seed_from_id(trader_id: str) -> int:
    """Create a deterministic seed from a trader id."""
    return int(hashlib.sha256(trader_id.encode()).hexdigest()[:8], 16)


def static_leaderboard(limit: int = 50) -> list[RankedEntry]:
    return [
        RankedEntry(
            trader_id=trader_id,
            display_name=name,
            score=score,
            tier=tier,
            rank=rank,
        )
        for rank, (trader_id, name, score, tier) in enumerate(_STATIC_LEADERBOARD[:limit], start=1)
    ]


def static_metrics(trader_id: str) -> TradingMetricsSnapshot:
    """Plausible metrics derived from the trader id."""
    seed = _seed_from_id(trader_id)

    def val(offset: int) -> float:
        return ((seed + offset * 7919) % 1000) / 1000

    return TradingMetricsSnapshot(
        profit_factor=round(1.0 + 2.0 * val(1), 2),
        win_rate_pct=round(40.0 + 40.0 * val(2), 2),
        drawdown_pct=round(2.0 + 18.0 * val(3), 2),
        total_trades=20 + seed % 200,
        trading_days=10 + seed % 80,
    )


def static_profile(trader_id: str) -> TraderProfile:
    metrics = static_metrics(trader_id)
    score = compute_score(metrics)
    return TraderProfile(
        trader_id=trader_id,
        display_name=f"Trader {trader_id[:8]}",
        score=score,
        tier=classify_tier(score),
        rank=1 + _seed_from_id(trader_id) % 500,
        win_rate_pct=metrics.win_rate_pct,
        profit_factor=metrics.profit_factor,
        drawdown_pct=metrics.drawdown_pct,
        total_trades=metrics.total_trades,
        trading_days=metrics.trading_days,
    )
