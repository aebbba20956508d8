"""Tests for the leaderboard, profile, analytics and progress services."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from conftest import make_metrics
from hall_of_elite.analytics import AnalyticsService, ProgressService, resolve_trader_for_user
from hall_of_elite.leaderboard import LeaderboardService
from hall_of_elite.models import PayoutLevel, PayoutRecord, RankedEntry, Tier, TradeAnalytics
from hall_of_elite.payout import PayoutService

NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)  # Wednesday


def _entry(trader_id: str, score: float, rank: int, tier: Tier = Tier.GOLD) -> RankedEntry:
    return RankedEntry(trader_id=trader_id, display_name=trader_id.title(), score=score, tier=tier, rank=rank)


# ===========================================================================
# LeaderboardService
# ===========================================================================


class TestLeaderboard:
    def test_snapshot_is_preferred(self, ds):
        ds.insert_snapshot_run([_entry("alice", 50.0, 1)])
        account = ds.upsert_trading_account("user-b", "ACC-B")
        ds.upsert_legacy_score(account, score=90.0, rank=1)

        result = LeaderboardService(ds).get_leaderboard(limit=10)

        assert result.source == "snapshot"
        assert [e.trader_id for e in result.entries] == ["alice"]

    def test_failing_snapshot_gives_exactly_the_legacy_record(self):
        legacy_row = _entry("legacy-1", 66.0, 1, Tier.PLATINUM)
        store = MagicMock()
        store.get_latest_leaderboard.side_effect = sqlite3.OperationalError("no such table: snapshot_runs")
        store.get_legacy_leaderboard.return_value = [legacy_row]

        result = LeaderboardService(store).get_leaderboard(limit=10)

        assert result.source == "legacy"
        assert result.entries == [legacy_row]

    def test_static_fallback(self, ds):
        result = LeaderboardService(ds).get_leaderboard()
        assert result.source == "static"
        assert [e.display_name for e in result.entries] == [
            "Elite Trader Alpha",
            "Diamond Trader Beta",
            "Platinum Trader Gamma",
        ]

    def test_static_fallback_disabled(self, ds):
        result = LeaderboardService(ds, static_fallback=False).get_leaderboard()
        assert result.source is None
        assert result.entries == []

    def test_tier_filter_applies_within_source(self, ds):
        ds.insert_snapshot_run([_entry(f"t{i}", 50.0 - i, i + 1) for i in range(5)])

        result = LeaderboardService(ds).get_leaderboard(limit=2, tier=Tier.GOLD)

        assert result.source == "snapshot"
        assert [e.trader_id for e in result.entries] == ["t0", "t1"]

    def test_tier_with_no_rows_moves_to_next_source(self, ds):
        ds.insert_snapshot_run([_entry("gold-1", 45.0, 1)])

        result = LeaderboardService(ds).get_leaderboard(tier=Tier.ELITE)

        assert result.source == "static"
        assert [e.display_name for e in result.entries] == ["Elite Trader Alpha"]

    def test_limit_truncates(self, ds):
        assert len(LeaderboardService(ds).get_leaderboard(limit=1).entries) == 1


class TestProfile:
    def test_snapshot_profile(self, ds):
        ds.insert_snapshot_run([_entry("alice", 85.0, 3, Tier.DIAMOND)])
        result = LeaderboardService(ds).get_profile("alice")
        assert result.source == "snapshot"
        assert result.profile.rank == 3

    def test_legacy_profile(self, ds):
        account = ds.upsert_trading_account("user-b", "ACC-B", display_name="Bob")
        ds.upsert_legacy_score(account, score=33.0, rank=8)
        result = LeaderboardService(ds).get_profile(account)
        assert result.source == "legacy"
        assert result.profile.display_name == "Bob"
        assert result.profile.tier == Tier.SILVER

    def test_static_profile_is_deterministic(self, ds):
        first = LeaderboardService(ds).get_profile("abcdef123456")
        second = LeaderboardService(ds).get_profile("abcdef123456")
        assert first.source == "static"
        assert first.profile == second.profile
        assert first.profile.display_name == "Trader abcdef12"

    def test_unknown_without_static(self, ds):
        assert LeaderboardService(ds, static_fallback=False).get_profile("ghost") is None


# ===========================================================================
# AnalyticsService
# ===========================================================================


class TestAnalytics:
    @pytest.fixture
    def populated(self, ds, mt5_trader):
        account = ds.get_trader_account_ids(mt5_trader)[0]
        ds.upsert_metrics(
            mt5_trader, make_metrics(profit_factor=1.8, win_rate_pct=0.62, drawdown_pct=7.5, trading_days=12)
        )
        PayoutService(ds).calculate(mt5_trader, 1, 10)
        ds.insert_trade(account, "EURUSD", -20.0, close_time="2025-03-04T09:00:00Z")
        ds.insert_trade(account, "EURUSD", 100.0, fees=2.0, close_time="2025-03-10T09:00:00Z")
        ds.insert_trade(account, "GBPUSD", 50.0, close_time="2025-03-11T09:00:00Z")
        return ds

    def test_full_analytics(self, populated):
        analytics = AnalyticsService(populated).get_trade_analytics("user-1", now=NOW)

        assert analytics.win_rate == 62.0
        assert analytics.profit_factor == 1.8
        assert analytics.drawdown == 7.5
        assert analytics.total_trading_days == 12
        assert analytics.payout_percent == 95
        assert analytics.path_to_next_tier == "You're at the top payout tier."
        assert [(p.date, p.cumulative_pnl) for p in analytics.equity_data] == [
            ("2025-03-04", -20.0),
            ("2025-03-10", 78.0),
            ("2025-03-11", 128.0),
        ]
        assert (analytics.trades_this_week, analytics.trades_last_week) == (2, 1)
        assert analytics.recent_trades[0].symbol == "GBPUSD"

    def test_equity_days_window(self, populated):
        analytics = AnalyticsService(populated).get_trade_analytics("user-1", equity_days=3, now=NOW)
        assert [(p.date, p.cumulative_pnl) for p in analytics.equity_data] == [
            ("2025-03-10", 98.0),
            ("2025-03-11", 148.0),
        ]

    def test_unlinked_user_gets_defaults(self, ds):
        assert AnalyticsService(ds).get_trade_analytics("stranger") == TradeAnalytics()

    def test_mt5_tables_missing_gives_defaults(self, ds_no_mt5):
        ds_no_mt5.upsert_trading_account("user-1", "1001")
        assert resolve_trader_for_user(ds_no_mt5, "user-1") is None
        assert AnalyticsService(ds_no_mt5).get_trade_analytics("user-1") == TradeAnalytics()

    def test_each_field_degrades_independently(self):
        store = MagicMock()
        store.resolve_trader_id_for_user.return_value = "t-1"
        store.get_metrics.side_effect = sqlite3.OperationalError("no such table")
        store.get_payout.return_value = PayoutRecord(
            trader_id="t-1",
            payout_tier=PayoutLevel.BRONZE,
            payout_percent=30,
            average_trades_per_day=0.8,
            total_trading_days=8,
            max_trades_per_day=6,
        )
        store.get_closed_trades.return_value = []

        analytics = AnalyticsService(store).get_trade_analytics("user-1", now=NOW)

        assert analytics.win_rate == 0.0
        assert analytics.total_trading_days == 8
        assert analytics.payout_percent == 30
        assert analytics.path_to_next_tier == "Lower your daily average to reach 80% payout."
        assert analytics.equity_data == []


# ===========================================================================
# ProgressService
# ===========================================================================


class TestProgressService:
    def test_unlinked_user_baseline(self, ds):
        state = ProgressService(ds).get_progress("stranger")
        assert state.current_points == 25

    def test_linked_user_points(self, ds, mt5_trader):
        ds.upsert_metrics(mt5_trader, make_metrics(trading_days=60))
        PayoutService(ds).calculate(mt5_trader, 1, 10)

        state = ProgressService(ds).get_progress("user-1")

        assert state.current_points == 140
        assert state.next_reward_threshold == 100

    def test_payout_days_used_without_metrics(self, ds, mt5_trader):
        PayoutService(ds).calculate(mt5_trader, 3, 10)  # SILVER, 10 days
        state = ProgressService(ds).get_progress("user-1")
        assert state.current_points == 100

    def test_no_payout_no_metrics(self, ds, mt5_trader):
        assert ProgressService(ds).get_progress("user-1").current_points == 25
