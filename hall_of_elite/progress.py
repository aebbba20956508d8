"""Progress/points engine for the reward-target ladder.

    points = round(payout_percent + min(trading_days * 2, 45)), floored at 25

Points are deliberately not capped at ``MAX_POINTS_FOR_DISPLAY``; the UI
clamps its progress bar, the API reports the real value.
"""

from __future__ import annotations

import math

from hall_of_elite.config import (
    ACTIVITY_BONUS_CAP,
    ACTIVITY_POINTS_PER_DAY,
    MAX_POINTS_FOR_DISPLAY,
    MIN_POINTS_START,
    REWARD_TARGET_THRESHOLDS,
)
from hall_of_elite.errors import InvalidArgument
from hall_of_elite.models import ProgressState, RewardTarget


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_points(payout_percent: float | None, total_trading_days: int) -> int:
    """Raw points before the display floor is applied."""
    if total_trading_days is None or total_trading_days < 0:
        raise InvalidArgument("total_trading_days cannot be negative", field="total_trading_days")
    base = payout_percent or 0.0
    if not math.isfinite(base):
        raise InvalidArgument("payout_percent must be finite", field="payout_percent")
    activity_bonus = min(total_trading_days * ACTIVITY_POINTS_PER_DAY, ACTIVITY_BONUS_CAP)
    return _round_half_up(base + activity_bonus)


def reward_targets(points: int, thresholds: tuple[int, ...] = REWARD_TARGET_THRESHOLDS) -> list[RewardTarget]:
    return [
        RewardTarget(
            id=index,
            label="Unlocked" if index == 1 else f"Target {index}",
            required_points=required,
            unlocked=points >= required,
        )
        for index, required in enumerate(thresholds, start=1)
    ]


def compute_progress(payout_percent: float | None, total_trading_days: int) -> ProgressState:
    points = max(compute_points(payout_percent, total_trading_days), MIN_POINTS_START)
    targets = reward_targets(points)
    next_locked = next((t for t in targets if not t.unlocked), None)
    return ProgressState(
        current_points=points,
        # MAX_POINTS_FOR_DISPLAY doubles as the "maxed out" sentinel
        next_reward_threshold=next_locked.required_points if next_locked else MAX_POINTS_FOR_DISPLAY,
        reward_targets=targets,
    )


def baseline_progress() -> ProgressState:
    """Progress shown to users with no linked trader."""
    return compute_progress(None, 0)
