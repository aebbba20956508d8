"""Trade aggregation: roll closed-trade history up into daily buckets.

Feeds three consumers:

1. the payout engine (max trades per day / distinct trading days),
2. the equity curve (cumulative net P&L per UTC day),
3. the weekly activity counters (this ISO week vs. last).
"""

from __future__ import annotations

import sqlite3
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Iterable

from hall_of_elite.config import RECENT_TRADES_LIMIT
from hall_of_elite.errors import UpstreamUnavailable
from hall_of_elite.models import ClosedTrade, EquityPoint, TradeStats
from hall_of_elite.normalize import parse_timestamp, utc_day_key


def daily_trade_counts(trades: Iterable[ClosedTrade]) -> dict[str, int]:
    """Count trades per UTC close date (``YYYY-MM-DD``)."""
    return dict(Counter(utc_day_key(t.close_time) for t in trades))


def compute_trade_stats(trades: Iterable[ClosedTrade]) -> TradeStats | None:
    """Return the largest daily bucket and the number of buckets.

    ``None`` when there are no trades; that is a "no data yet" state,
    not an error.
    """
    counts = daily_trade_counts(trades)
    if not counts:
        return None
    return TradeStats(
        max_trades_per_day=max(counts.values()),
        total_trading_days=len(counts),
    )


def derive_trade_stats(store, trader_id: str) -> TradeStats | None:
    """Load every closed trade across the trader's linked accounts and roll it up.

    Returns ``None`` when the trader has no linked account or no closed
    trade.  A failing store is reported as :class:`UpstreamUnavailable`.
    """
    try:
        account_ids = store.get_trader_account_ids(trader_id)
        if not account_ids:
            return None
        trades = store.get_closed_trades(trader_id)
    except sqlite3.Error as exc:
        raise UpstreamUnavailable("closed_trades", str(exc)) from exc
    return compute_trade_stats(trades)


# ---------------------------------------------------------------------------
# Equity curve
# ---------------------------------------------------------------------------


def equity_curve(trades: Iterable[ClosedTrade]) -> list[EquityPoint]:
    """Cumulative net P&L (profit minus fees) by UTC day, oldest first."""
    pnl_by_day: dict[str, float] = defaultdict(float)
    for trade in trades:
        pnl_by_day[utc_day_key(trade.close_time)] += trade.net_pnl

    points: list[EquityPoint] = []
    cumulative = 0.0
    for day in sorted(pnl_by_day):
        cumulative += pnl_by_day[day]
        points.append(EquityPoint(date=day, cumulative_pnl=round(cumulative, 2)))
    return points


# ---------------------------------------------------------------------------
# Weekly activity
# ---------------------------------------------------------------------------


def week_start(value: datetime) -> datetime:
    """Monday 00:00 UTC of the ISO week containing *value*."""
    dt = parse_timestamp(value)
    monday = dt - timedelta(days=dt.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def weekly_trade_counts(
    trades: Iterable[ClosedTrade],
    now: datetime | None = None,
) -> tuple[int, int]:
    """Return ``(trades_this_week, trades_last_week)`` relative to *now*."""
    now = now or datetime.now(timezone.utc)
    this_week = week_start(now)
    last_week = this_week - timedelta(days=7)

    this_count = last_count = 0
    for trade in trades:
        start = week_start(trade.close_time)
        if start == this_week:
            this_count += 1
        elif start == last_week:
            last_count += 1
    return this_count, last_count


def recent_trades(trades: list[ClosedTrade], limit: int = RECENT_TRADES_LIMIT) -> list[ClosedTrade]:
    """Last *limit* trades of a close-time-ascending list, newest first."""
    if limit <= 0:
        return []
    return list(reversed(trades[-limit:]))
