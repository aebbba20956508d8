"""Tests for closed-trade aggregation: daily stats, equity curve, weekly counts."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from conftest import make_trade
from hall_of_elite.aggregation import (
    compute_trade_stats,
    daily_trade_counts,
    derive_trade_stats,
    equity_curve,
    recent_trades,
    week_start,
    weekly_trade_counts,
)
from hall_of_elite.errors import UpstreamUnavailable


# ===========================================================================
# Daily buckets
# ===========================================================================


class TestTradeStats:
    def test_counts_two_five_three(self):
        trades = (
            [make_trade(f"a{i}", "2025-03-03T09:00:00") for i in range(2)]
            + [make_trade(f"b{i}", "2025-03-04T09:00:00") for i in range(5)]
            + [make_trade(f"c{i}", "2025-03-05T09:00:00") for i in range(3)]
        )
        stats = compute_trade_stats(trades)
        assert stats.max_trades_per_day == 5
        assert stats.total_trading_days == 3

    def test_buckets_by_utc_date(self):
        """23:30 at UTC-2 is already the next UTC day."""
        trade = make_trade("t1", "2025-03-01T23:30:00-02:00")
        assert daily_trade_counts([trade]) == {"2025-03-02": 1}

    def test_no_trades_is_none(self):
        assert compute_trade_stats([]) is None


class TestDeriveTradeStats:
    def test_across_all_linked_accounts(self, ds, mt5_trader):
        second_account, _ = ds.upsert_mt5_account(mt5_trader, "1002")
        first_account = next(a for a in ds.get_trader_account_ids(mt5_trader) if a != second_account)
        ds.insert_trade(first_account, "EURUSD", 5.0, close_time="2025-03-03T10:00:00Z")
        ds.insert_trade(second_account, "GBPUSD", 5.0, close_time="2025-03-03T11:00:00Z")
        ds.insert_trade(second_account, "GBPUSD", 5.0, close_time="2025-03-04T11:00:00Z")
        # Open trades are ignored
        ds.insert_trade(second_account, "GBPUSD", 0.0)

        stats = derive_trade_stats(ds, mt5_trader)

        assert stats.max_trades_per_day == 2
        assert stats.total_trading_days == 2

    def test_no_linked_accounts(self, ds):
        assert derive_trade_stats(ds, "nobody") is None

    def test_store_error_is_upstream_unavailable(self):
        store = MagicMock()
        store.get_trader_account_ids.return_value = ["acct-1"]
        store.get_closed_trades.side_effect = sqlite3.OperationalError("disk I/O error")
        with pytest.raises(UpstreamUnavailable) as exc_info:
            derive_trade_stats(store, "trader-1")
        assert exc_info.value.source == "closed_trades"


# ===========================================================================
# Equity curve
# ===========================================================================


class TestEquityCurve:
    def test_cumulative_net_pnl_by_day(self):
        trades = [
            make_trade("t3", "2025-03-04T10:00:00", profit_loss=30.0),
            make_trade("t1", "2025-03-03T10:00:00", profit_loss=100.0, fees=2.0),
            make_trade("t2", "2025-03-03T15:00:00", profit_loss=-50.0, fees=1.0),
        ]
        curve = equity_curve(trades)
        assert [(p.date, p.cumulative_pnl) for p in curve] == [
            ("2025-03-03", 47.0),
            ("2025-03-04", 77.0),
        ]

    def test_empty(self):
        assert equity_curve([]) == []


# ===========================================================================
# Weekly counts and recent trades
# ===========================================================================


class TestWeeklyCounts:
    NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)  # Wednesday

    def test_week_start_is_monday_utc(self):
        assert week_start(self.NOW) == datetime(2025, 3, 10, tzinfo=timezone.utc)
        # Sunday belongs to the week that started the previous Monday
        assert week_start(datetime(2025, 3, 9, 23, 59, tzinfo=timezone.utc)) == datetime(
            2025, 3, 3, tzinfo=timezone.utc
        )

    def test_this_and_last_week(self):
        trades = [
            make_trade("a", "2025-03-10T00:00:00"),
            make_trade("b", "2025-03-09T23:59:00"),
            make_trade("c", "2025-03-03T08:00:00"),
            make_trade("d", "2025-03-02T08:00:00"),
        ]
        assert weekly_trade_counts(trades, now=self.NOW) == (1, 2)


class TestRecentTrades:
    def test_last_ten_newest_first(self):
        trades = [make_trade(f"t{i:02d}", f"2025-03-{i + 1:02d}T10:00:00") for i in range(12)]
        recent = recent_trades(trades)
        assert len(recent) == 10
        assert recent[0].id == "t11"
        assert recent[-1].id == "t02"

    def test_zero_limit(self):
        assert recent_trades([make_trade("t1", "2025-03-01T10:00:00")], limit=0) == []
