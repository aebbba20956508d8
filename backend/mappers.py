"""Mapping functions from engine/store records to API response models.

Routers never build response models field by field; they call these.
"""
from __future__ import annotations

from hall_of_elite.config import MAX_POINTS_FOR_DISPLAY
from hall_of_elite.models import (
    ClosedTrade,
    PayoutRecord,
    PayoutTierConfig,
    ProgressState,
    RankedEntry,
    RewardConfig,
    RewardEligibility,
    ScoringResult,
    TierConfig,
    TradeAnalytics,
    TraderProfile,
)
from hall_of_elite.payout import path_to_next_tier

from backend.schemas import (
    EquityPointItem,
    LeaderboardEntry,
    PayoutResponse,
    PayoutTierItem,
    ProgressResponse,
    RecentTradeItem,
    RewardConfigItem,
    RewardEligibilityResponse,
    RewardFlagsItem,
    RewardTargetItem,
    ScoreResponse,
    TierConfigItem,
    TradeAnalyticsResponse,
    TraderProfileResponse,
)


def _entry_fields(entry: RankedEntry) -> dict:
    return {
        "rank": entry.rank,
        "trader_id": entry.trader_id,
        "display_name": entry.display_name,
        "score": entry.score,
        "tier": entry.tier,
        "win_rate": entry.win_rate_pct,
        "profit_factor": entry.profit_factor,
        "drawdown": entry.drawdown_pct,
        "total_trades": entry.total_trades,
        "trading_days": entry.trading_days,
    }


def to_leaderboard_entry(entry: RankedEntry) -> LeaderboardEntry:
    return LeaderboardEntry(**_entry_fields(entry))


def to_profile_response(profile: TraderProfile, source: str) -> TraderProfileResponse:
    return TraderProfileResponse(**_entry_fields(profile), computed_at=profile.computed_at, source=source)


def to_score_response(result: ScoringResult) -> ScoreResponse:
    return ScoreResponse(
        trader_id=result.trader_id,
        score=result.score,
        tier=result.tier,
        components={name: round(value, 2) for name, value in result.components.items()},
        eligible=result.is_eligible,
        eligibility_failures=result.eligibility_failures,
    )


def to_payout_tier_item(config: PayoutTierConfig) -> PayoutTierItem:
    return PayoutTierItem(
        tier=config.tier,
        min_average=config.min_average,
        max_average=config.max_average,
        payout_percent=config.payout_percent,
        color=config.color,
        description=config.description,
    )


def to_payout_response(record: PayoutRecord) -> PayoutResponse:
    return PayoutResponse(
        trader_id=record.trader_id,
        payout_tier=record.payout_tier,
        payout_percent=record.payout_percent,
        average_trades_per_day=record.average_trades_per_day,
        total_trading_days=record.total_trading_days,
        max_trades_per_day=record.max_trades_per_day,
        color=record.color,
        description=record.description,
        path_to_next_tier=path_to_next_tier(record.payout_percent),
        next_update_at=record.next_update_at,
        updated_at=record.updated_at,
    )


def to_progress_response(state: ProgressState) -> ProgressResponse:
    return ProgressResponse(
        current_points=state.current_points,
        next_reward_threshold=state.next_reward_threshold,
        max_points_for_display=MAX_POINTS_FOR_DISPLAY,
        reward_targets=[
            RewardTargetItem(
                id=t.id,
                label=t.label,
                required_points=t.required_points,
                unlocked=t.unlocked,
            )
            for t in state.reward_targets
        ],
    )


def to_recent_trade_item(trade: ClosedTrade) -> RecentTradeItem:
    return RecentTradeItem(
        id=trade.id,
        symbol=trade.symbol,
        profit_loss=trade.profit_loss,
        fees=trade.fees,
        net_pnl=trade.net_pnl,
        close_time=trade.close_time,
    )


def to_analytics_response(analytics: TradeAnalytics) -> TradeAnalyticsResponse:
    return TradeAnalyticsResponse(
        win_rate=analytics.win_rate,
        profit_factor=analytics.profit_factor,
        drawdown=analytics.drawdown,
        total_trading_days=analytics.total_trading_days,
        payout_percent=analytics.payout_percent,
        equity_data=[
            EquityPointItem(date=p.date, cumulative_pnl=p.cumulative_pnl) for p in analytics.equity_data
        ],
        trades_this_week=analytics.trades_this_week,
        trades_last_week=analytics.trades_last_week,
        path_to_next_tier=analytics.path_to_next_tier,
        recent_trades=[to_recent_trade_item(t) for t in analytics.recent_trades],
    )


def to_reward_eligibility_response(eligibility: RewardEligibility) -> RewardEligibilityResponse:
    flags = eligibility.rewards
    return RewardEligibilityResponse(
        trader_id=eligibility.trader_id,
        tier=eligibility.tier,
        rewards=RewardFlagsItem(
            phoenix_add_on=flags.phoenix_add_on,
            payout_boost=flags.payout_boost,
            cashback=flags.cashback,
            merchandise=flags.merchandise,
        ),
    )


def to_tier_config_item(config: TierConfig) -> TierConfigItem:
    return TierConfigItem(**config.model_dump())


def to_reward_config_item(config: RewardConfig) -> RewardConfigItem:
    return RewardConfigItem(**config.model_dump())
