"""Shared pytest fixtures for the Hall of Elite test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from hall_of_elite.datastore import DataStore
from hall_of_elite.models import ClosedTrade, TradingMetricsSnapshot


def make_metrics(**overrides) -> TradingMetricsSnapshot:
    """Return a TradingMetricsSnapshot with sensible, eligible defaults."""
    defaults = dict(
        profit_factor=2.5,
        win_rate_pct=65.0,
        drawdown_pct=10.0,
        total_trades=120,
        trading_days=45,
    )
    defaults.update(overrides)
    return TradingMetricsSnapshot(**defaults)


def make_trade(trade_id: str, close_time: str | datetime, profit_loss: float = 10.0, fees: float = 0.0) -> ClosedTrade:
    """Return a ClosedTrade closing at *close_time* (ISO string or datetime)."""
    if isinstance(close_time, str):
        close_time = datetime.fromisoformat(close_time)
    if close_time.tzinfo is None:
        close_time = close_time.replace(tzinfo=timezone.utc)
    return ClosedTrade(
        id=trade_id,
        account_id="acct-1",
        symbol="EURUSD",
        profit_loss=profit_loss,
        fees=fees,
        close_time=close_time,
    )


@pytest.fixture
def ds():
    """Yield an in-memory DataStore with every table provisioned, then close it."""
    store = DataStore(db_path=":memory:")
    yield store
    store.close()


@pytest.fixture
def ds_no_mt5():
    """Yield an in-memory DataStore whose MT5 tables were never created."""
    store = DataStore(db_path=":memory:", provision_mt5=False)
    yield store
    store.close()


@pytest.fixture
def mt5_trader(ds: DataStore) -> str:
    """An MT5 trader with one account, linked to legacy user ``user-1``."""
    trader_id, _ = ds.upsert_mt5_trader("1001", "Alice", "ACTIVE")
    ds.upsert_mt5_account(trader_id, "1001", balance=5000.0)
    ds.upsert_trading_account("user-1", "1001", display_name="Alice")
    return trader_id
