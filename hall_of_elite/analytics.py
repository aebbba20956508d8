"""Per-user dashboard reads: trade analytics and reward progress.

A user is linked to a trader through their trading account numbers
(``trading_accounts.account_number`` -> ``mt5_trading_accounts.external_id``).
Unlinked users get default analytics and baseline progress.  Every store
read goes through the resolution policy, so one failing table degrades
its own field to its default without affecting the others.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog

from hall_of_elite.aggregation import equity_curve, recent_trades, weekly_trade_counts
from hall_of_elite.models import ProgressState, TradeAnalytics
from hall_of_elite.payout import path_to_next_tier
from hall_of_elite.progress import baseline_progress, compute_progress
from hall_of_elite.resolution import DataSource, resolve_or_default

log = structlog.get_logger(__name__)


def resolve_trader_for_user(store, user_id: str) -> str | None:
    """MT5 trader id linked to *user_id*; ``None`` when unlinked or the link tables are unavailable."""
    return resolve_or_default(
        [DataSource("account_link", lambda: store.resolve_trader_id_for_user(user_id))],
        None,
        operation="resolve_trader",
        user_id=user_id,
    )


class AnalyticsService:
    def __init__(self, store) -> None:
        self._store = store

    def get_trade_analytics(
        self,
        user_id: str,
        equity_days: int | None = None,
        now: datetime | None = None,
    ) -> TradeAnalytics:
        """KPIs, equity curve, weekly activity and recent trades for a user.

        ``equity_days`` limits the trade window to the last N days.
        """
        trader_id = resolve_trader_for_user(self._store, user_id)
        if not trader_id:
            return TradeAnalytics()

        now = now or datetime.now(timezone.utc)
        from_date = now - timedelta(days=equity_days) if equity_days else None

        metrics = resolve_or_default(
            [DataSource("mt5_metrics", lambda: self._store.get_metrics(trader_id))],
            None,
            operation="analytics_metrics",
            trader_id=trader_id,
        )
        payout = resolve_or_default(
            [DataSource("payout", lambda: self._store.get_payout(trader_id))],
            None,
            operation="analytics_payout",
            trader_id=trader_id,
        )
        trades = resolve_or_default(
            [DataSource("closed_trades", lambda: self._store.get_closed_trades(trader_id, from_date=from_date))],
            [],
            operation="analytics_trades",
            trader_id=trader_id,
        )

        this_week, last_week = weekly_trade_counts(trades, now=now)
        payout_percent = payout.payout_percent if payout else None

        if metrics:
            total_trading_days = metrics.trading_days
        elif payout:
            total_trading_days = payout.total_trading_days
        else:
            total_trading_days = 0

        analytics = TradeAnalytics(
            win_rate=metrics.win_rate_pct if metrics else 0.0,
            profit_factor=metrics.profit_factor if metrics else 0.0,
            drawdown=metrics.drawdown_pct if metrics else 0.0,
            total_trading_days=total_trading_days,
            payout_percent=payout_percent,
            equity_data=equity_curve(trades),
            trades_this_week=this_week,
            trades_last_week=last_week,
            path_to_next_tier=path_to_next_tier(payout_percent),
            recent_trades=recent_trades(trades),
        )
        log.debug("trade_analytics_built", user_id=user_id, trader_id=trader_id, trades=len(trades))
        return analytics


class ProgressService:
    def __init__(self, store) -> None:
        self._store = store

    def get_progress(self, user_id: str) -> ProgressState:
        trader_id = resolve_trader_for_user(self._store, user_id)
        if not trader_id:
            return baseline_progress()

        payout = resolve_or_default(
            [DataSource("payout", lambda: self._store.get_payout(trader_id))],
            None,
            operation="progress_payout",
            trader_id=trader_id,
        )
        metrics = resolve_or_default(
            [DataSource("mt5_metrics", lambda: self._store.get_metrics(trader_id))],
            None,
            operation="progress_metrics",
            trader_id=trader_id,
        )

        if metrics:
            trading_days = metrics.trading_days
        elif payout:
            trading_days = payout.total_trading_days
        else:
            trading_days = 0
        return compute_progress(payout.payout_percent if payout else None, trading_days)
