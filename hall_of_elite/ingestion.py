"""Broker user ingestion into the MT5 tables.

Raw user records from the broker bridge are validated, normalized
(trimmed logins, upper-cased status/currency, rounded balances, sane
leverage) and deduplicated by login, then persisted one trader bundle at a
time.  Each bundle is written in one store transaction, so a bundle that
fails leaves nothing behind.  Invalid records and failed bundles are
counted as skipped rather than aborting the batch.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hall_of_elite.models import TradingMetricsSnapshot
from hall_of_elite.normalize import (
    normalize_currency,
    normalize_leverage,
    normalize_login,
    normalize_status,
    normalize_win_rate,
    round_money,
    sanitize_string,
)

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------

class RawBrokerUser(BaseModel):
    """A user record as returned by the broker bridge."""

    model_config = ConfigDict(strict=True, extra="ignore")

    login: int | str
    name: str
    balance: float
    leverage: float | None = None
    currency: str | None = None
    status: str | None = None
    group: str | None = None


class TraderInput(BaseModel):
    external_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    account_status: str = Field(min_length=1)


class AccountInput(BaseModel):
    external_id: str = Field(min_length=1)
    trader_external_id: str = Field(min_length=1)
    balance: float = Field(allow_inf_nan=False)
    leverage: int = Field(gt=0)
    currency: str = Field(min_length=1)
    status: str = Field(min_length=1)


class TradeInput(BaseModel):
    external_id: str = Field(min_length=1)
    account_external_id: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    volume: float = Field(allow_inf_nan=False)
    profit_loss: float = Field(allow_inf_nan=False)
    fees: float = Field(allow_inf_nan=False)
    open_time: datetime
    close_time: datetime | None = None


class MetricsInput(BaseModel):
    trader_external_id: str = Field(min_length=1)
    profit_factor: float = Field(ge=0, allow_inf_nan=False)
    win_rate: float = Field(allow_inf_nan=False)
    drawdown: float = Field(allow_inf_nan=False)
    total_trading_days: int = Field(ge=0)
    total_trades: int = Field(default=0, ge=0)


class NormalizedPayload(BaseModel):
    traders: list[TraderInput] = Field(default_factory=list)
    accounts: list[AccountInput] = Field(default_factory=list)
    trades: list[TradeInput] = Field(default_factory=list)
    metrics: list[MetricsInput] = Field(default_factory=list)


@dataclass
class PersistSummary:
    traders_inserted: int = 0
    traders_updated: int = 0
    accounts_inserted: int = 0
    accounts_updated: int = 0
    trades_inserted: int = 0
    trades_updated: int = 0
    metrics_inserted: int = 0
    metrics_updated: int = 0
    skipped_records: int = 0

    def add(self, other: "PersistSummary") -> None:
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(self, name) + getattr(other, name))


@dataclass
class _TraderBundle:
    trader: TraderInput
    accounts: list[AccountInput] = field(default_factory=list)
    trades: list[TradeInput] = field(default_factory=list)
    metrics: MetricsInput | None = None

    @property
    def record_count(self) -> int:
        return 1 + len(self.accounts) + len(self.trades) + (1 if self.metrics else 0)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_broker_users(raw_users: Iterable[Any]) -> tuple[NormalizedPayload, int]:
    """Validate and normalize raw users.  Returns ``(payload, skipped_count)``.

    The last record wins when a login appears more than once.
    """
    traders: dict[str, TraderInput] = {}
    accounts: dict[str, AccountInput] = {}
    skipped = 0

    for raw in raw_users:
        try:
            user = RawBrokerUser.model_validate(raw)
            external_id = normalize_login(user.login)
            status = normalize_status(user.status)
            trader = TraderInput(
                external_id=external_id,
                name=sanitize_string(user.name) or f"Trader {external_id}",
                account_status=status,
            )
            account = AccountInput(
                external_id=external_id,
                trader_external_id=external_id,
                balance=round_money(user.balance),
                leverage=normalize_leverage(user.leverage),
                currency=normalize_currency(user.currency),
                status=status,
            )
        except ValidationError:
            skipped += 1
            continue

        traders[external_id] = trader
        accounts[external_id] = account

    return NormalizedPayload(traders=list(traders.values()), accounts=list(accounts.values())), skipped


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class IngestionService:
    """Writes normalized broker payloads into the store's MT5 tables."""

    def __init__(self, store) -> None:
        self._store = store

    def persist_normalized_payload(self, payload: NormalizedPayload) -> PersistSummary:
        accounts_by_trader: dict[str, list[AccountInput]] = {}
        for account in payload.accounts:
            accounts_by_trader.setdefault(account.trader_external_id, []).append(account)

        trades_by_account: dict[str, list[TradeInput]] = {}
        for trade in payload.trades:
            trades_by_account.setdefault(trade.account_external_id, []).append(trade)

        metrics_by_trader = {m.trader_external_id: m for m in payload.metrics}

        summary = PersistSummary()
        for trader in payload.traders:
            accounts = accounts_by_trader.get(trader.external_id, [])
            bundle = _TraderBundle(
                trader=trader,
                accounts=accounts,
                trades=[t for a in accounts for t in trades_by_account.get(a.external_id, [])],
                metrics=metrics_by_trader.get(trader.external_id),
            )
            try:
                with self._store.transaction():
                    counts = self._persist_bundle(bundle)
            except (sqlite3.Error, ValueError) as exc:
                summary.skipped_records += bundle.record_count
                log.error(
                    "trader_bundle_persist_failed",
                    trader_external_id=trader.external_id,
                    error=str(exc),
                )
                continue
            summary.add(counts)
        return summary

    def _persist_bundle(self, bundle: _TraderBundle) -> PersistSummary:
        counts = PersistSummary()
        trader_id, inserted = self._store.upsert_mt5_trader(
            bundle.trader.external_id, bundle.trader.name, bundle.trader.account_status
        )
        if inserted:
            counts.traders_inserted += 1
        else:
            counts.traders_updated += 1

        account_ids: dict[str, str] = {}
        for account in bundle.accounts:
            account_id, inserted = self._store.upsert_mt5_account(
                trader_id,
                account.external_id,
                balance=account.balance,
                leverage=account.leverage,
                currency=account.currency,
                status=account.status,
            )
            account_ids[account.external_id] = account_id
            if inserted:
                counts.accounts_inserted += 1
            else:
                counts.accounts_updated += 1

        for trade in bundle.trades:
            _, inserted = self._store.upsert_trade(
                account_ids[trade.account_external_id],
                trade.external_id,
                trade.symbol,
                trade.profit_loss,
                close_time=trade.close_time,
                fees=abs(trade.fees),
                open_time=trade.open_time,
                volume=trade.volume,
            )
            if inserted:
                counts.trades_inserted += 1
            else:
                counts.trades_updated += 1

        if bundle.metrics is not None:
            m = bundle.metrics
            snapshot = TradingMetricsSnapshot(
                profit_factor=m.profit_factor,
                win_rate_pct=normalize_win_rate(m.win_rate),
                drawdown_pct=m.drawdown,
                total_trades=m.total_trades,
                trading_days=m.total_trading_days,
            )
            if self._store.upsert_metrics(trader_id, snapshot):
                counts.metrics_inserted += 1
            else:
                counts.metrics_updated += 1

        return counts

    def persist_from_raw_users(self, raw_users: list[Any]) -> PersistSummary:
        log.info("broker_users_normalizing", total=len(raw_users))
        payload, skipped = normalize_broker_users(raw_users)
        summary = self.persist_normalized_payload(payload)
        summary.skipped_records += skipped
        log.info("broker_users_persisted", **vars(summary))
        return summary
