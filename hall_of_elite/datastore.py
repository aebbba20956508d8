"""SQLite data store for the Hall of Elite ranking and rewards backend.

One database file holds three generations of trader data:

* **legacy** per-trading-account tables (``trading_accounts``,
  ``trader_scores``, ``trader_metrics``), keyed by trading account id;
* **MT5** trader-centric tables (``mt5_traders``, ``mt5_trading_accounts``,
  ``mt5_trades``, ``mt5_trader_metrics``).  These can be left
  unprovisioned, in which case every MT5 lookup raises
  ``sqlite3.OperationalError`` just like a not-yet-migrated database;
* **snapshot** read models (``snapshot_runs``, ``trader_snapshots``)
  written by the batch ranking run.

Plus ``payout_tiers``, ``trader_payouts``, ``reward_entitlements``,
``rewards`` and ``tier_configs``.  All methods are synchronous and use parameterized
queries.  The store is constructed once and injected into each service.

Usage::

    with DataStore(":memory:") as ds:
        account_id = ds.upsert_trading_account("user-1", "MT5-1001")
        ds.upsert_legacy_score(account_id, score=72.5, rank=3)
"""

from __future__ import annotations

import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from hall_of_elite.config import PAYOUT_BANDS, TIER_PRESENTATION
from hall_of_elite.errors import ConfigurationError
from hall_of_elite.models import (
    ClosedTrade,
    Entitlement,
    PayoutLevel,
    PayoutRecord,
    PayoutTierConfig,
    RankedEntry,
    RewardConfig,
    Tier,
    TierConfig,
    TraderProfile,
    TradingMetricsSnapshot,
)
from hall_of_elite.normalize import normalize_win_rate, parse_timestamp
from hall_of_elite.tiering import classify_tier, parse_tier


def _now() -> str:
    return _ts(datetime.now(timezone.utc))


def _ts(value: datetime | str) -> str:
    """Fixed-width UTC timestamp so string ordering matches time ordering."""
    return parse_timestamp(value).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _new_id() -> str:
    return str(uuid.uuid4())


class DataStore:
    """Synchronous SQLite-backed store implementing every collaborator interface."""

    def __init__(
        self,
        db_path: str = "data/hall_of_elite.db",
        provision_mt5: bool = True,
        seed_payout_tiers: bool = True,
    ) -> None:
        parent = os.path.dirname(db_path)
        if parent and db_path != ":memory:":
            os.makedirs(parent, exist_ok=True)

        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._in_transaction = False
        self._create_tables()
        if provision_mt5:
            self._create_mt5_tables()
        if seed_payout_tiers:
            self.seed_payout_tiers()

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()

    def __enter__(self) -> "DataStore":
        return self

    def __exit__(self, *args) -> None:  # noqa: ANN002
        self.close()

    @contextmanager
    def transaction(self) -> Iterator["DataStore"]:
        """Run several writes as one unit: committed together, or rolled back on error.

        Write methods called inside the block skip their own commit.  Nested
        blocks join the outermost one.
        """
        if self._in_transaction:
            yield self
            return
        self._in_transaction = True
        try:
            yield self
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise
        finally:
            self._in_transaction = False

    def _commit(self) -> None:
        if not self._in_transaction:
            self._conn.commit()

    def ping(self) -> bool:
        """Round-trip a trivial query; raises if the connection is unusable."""
        self._conn.execute("SELECT 1").fetchone()
        return True

    # ------------------------------------------------------------------
    # Schema creation
    # ------------------------------------------------------------------

    def _create_tables(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS trading_accounts (
                id              TEXT PRIMARY KEY,
                user_id         TEXT NOT NULL,
                account_number  TEXT NOT NULL UNIQUE,
                broker          TEXT,
                display_name    TEXT,
                created_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS trader_scores (
                trading_account_id TEXT PRIMARY KEY REFERENCES trading_accounts(id),
                score           REAL NOT NULL,
                tier            TEXT,
                rank            INTEGER,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS trader_metrics (
                trading_account_id TEXT PRIMARY KEY REFERENCES trading_accounts(id),
                profit_factor   REAL,
                win_rate        REAL,
                drawdown        REAL,
                total_trades    INTEGER,
                trading_days    INTEGER,
                sharpe_ratio    REAL,
                consistency_score REAL,
                risk_score      REAL,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS snapshot_runs (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                started_at      TEXT NOT NULL,
                completed_at    TEXT,
                status          TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS trader_snapshots (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id          INTEGER NOT NULL REFERENCES snapshot_runs(id),
                trader_id       TEXT NOT NULL,
                display_name    TEXT,
                score           REAL NOT NULL,
                tier            TEXT,
                rank            INTEGER NOT NULL,
                win_rate        REAL,
                profit_factor   REAL,
                drawdown        REAL,
                total_trades    INTEGER,
                trading_days    INTEGER
            );

            CREATE TABLE IF NOT EXISTS payout_tiers (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                tier            TEXT NOT NULL UNIQUE,
                min_average     REAL NOT NULL,
                max_average     REAL,
                payout_percent  REAL NOT NULL,
                color           TEXT,
                description     TEXT,
                sort_order      INTEGER DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS trader_payouts (
                trader_id       TEXT PRIMARY KEY,
                payout_tier_id  INTEGER NOT NULL REFERENCES payout_tiers(id),
                payout_percent  REAL NOT NULL,
                average_trades_per_day REAL NOT NULL,
                total_trading_days INTEGER NOT NULL,
                max_trades_per_day INTEGER NOT NULL,
                next_update_at  TEXT,
                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS reward_entitlements (
                id              TEXT PRIMARY KEY,
                trader_id       TEXT NOT NULL,
                reward_type     TEXT NOT NULL,
                status          TEXT NOT NULL DEFAULT 'PENDING',
                created_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS rewards (
                id              TEXT PRIMARY KEY,
                tier            TEXT NOT NULL,
                reward_type     TEXT NOT NULL,
                name            TEXT NOT NULL,
                is_active       INTEGER NOT NULL DEFAULT 1,
                created_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS tier_configs (
                tier_id         TEXT PRIMARY KEY,
                name            TEXT NOT NULL,
                min_score       REAL NOT NULL,
                max_score       REAL,
                color           TEXT,
                description     TEXT
            );

            -- Indexes
            CREATE INDEX IF NOT EXISTS idx_trading_accounts_user
                ON trading_accounts(user_id);
            CREATE INDEX IF NOT EXISTS idx_snapshots_run_rank
                ON trader_snapshots(run_id, rank);
            CREATE INDEX IF NOT EXISTS idx_snapshots_trader
                ON trader_snapshots(trader_id);
            CREATE INDEX IF NOT EXISTS idx_entitlements_trader
                ON reward_entitlements(trader_id, status);
            """
        )
        self._conn.commit()

    def _create_mt5_tables(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS mt5_traders (
                id              TEXT PRIMARY KEY,
                external_id     TEXT NOT NULL UNIQUE,
                name            TEXT NOT NULL,
                account_status  TEXT NOT NULL,
                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS mt5_trading_accounts (
                id              TEXT PRIMARY KEY,
                trader_id       TEXT NOT NULL REFERENCES mt5_traders(id),
                external_id     TEXT NOT NULL UNIQUE,
                balance         REAL NOT NULL DEFAULT 0,
                leverage        INTEGER NOT NULL DEFAULT 100,
                currency        TEXT NOT NULL DEFAULT 'USD',
                status          TEXT NOT NULL,
                updated_at      TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS mt5_trades (
                id              TEXT PRIMARY KEY,
                account_id      TEXT NOT NULL REFERENCES mt5_trading_accounts(id),
                external_id     TEXT,
                symbol          TEXT NOT NULL,
                volume          REAL,
                profit_loss     REAL NOT NULL,
                fees            REAL NOT NULL DEFAULT 0,
                open_time       TEXT,
                close_time      TEXT,
                status          TEXT
            );

            CREATE TABLE IF NOT EXISTS mt5_trader_metrics (
                trader_id       TEXT PRIMARY KEY REFERENCES mt5_traders(id),
                profit_factor   REAL NOT NULL,
                win_rate        REAL NOT NULL,
                drawdown        REAL NOT NULL,
                total_trading_days INTEGER NOT NULL,
                total_trades    INTEGER,
                updated_at      TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_mt5_accounts_trader
                ON mt5_trading_accounts(trader_id);
            CREATE INDEX IF NOT EXISTS idx_mt5_trades_account_close
                ON mt5_trades(account_id, close_time);
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Legacy per-account data
    # ------------------------------------------------------------------

    def upsert_trading_account(
        self,
        user_id: str,
        account_number: str,
        broker: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> str:
        """Insert or update a legacy trading account; returns its id."""
        row = self._conn.execute(
            "SELECT id FROM trading_accounts WHERE account_number = ?", (account_number,)
        ).fetchone()
        if row is not None:
            self._conn.execute(
                """
                UPDATE trading_accounts
                   SET user_id = ?,
                       broker = COALESCE(?, broker),
                       display_name = COALESCE(?, display_name)
                 WHERE id = ?
                """,
                (user_id, broker, display_name, row["id"]),
            )
            self._commit()
            return row["id"]

        account_id = _new_id()
        self._conn.execute(
            """
            INSERT INTO trading_accounts (id, user_id, account_number, broker, display_name, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (account_id, user_id, account_number, broker, display_name, _now()),
        )
        self._commit()
        return account_id

    def upsert_legacy_score(
        self,
        trading_account_id: str,
        score: float,
        rank: Optional[int] = None,
        tier: Optional[Tier] = None,
    ) -> None:
        """Store the legacy score row.  The tier is derived from the score when omitted."""
        tier = tier or classify_tier(score)
        self._conn.execute(
            """
            INSERT INTO trader_scores (trading_account_id, score, tier, rank, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(trading_account_id) DO UPDATE SET
                score = excluded.score,
                tier = excluded.tier,
                rank = excluded.rank,
                updated_at = excluded.updated_at
            """,
            (trading_account_id, score, tier.value, rank, _now()),
        )
        self._commit()

    def upsert_legacy_metrics(self, trading_account_id: str, metrics: TradingMetricsSnapshot) -> None:
        self._conn.execute(
            """
            INSERT INTO trader_metrics
                (trading_account_id, profit_factor, win_rate, drawdown, total_trades,
                 trading_days, sharpe_ratio, consistency_score, risk_score, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(trading_account_id) DO UPDATE SET
                profit_factor = excluded.profit_factor,
                win_rate = excluded.win_rate,
                drawdown = excluded.drawdown,
                total_trades = excluded.total_trades,
                trading_days = excluded.trading_days,
                sharpe_ratio = excluded.sharpe_ratio,
                consistency_score = excluded.consistency_score,
                risk_score = excluded.risk_score,
                updated_at = excluded.updated_at
            """,
            (
                trading_account_id,
                metrics.profit_factor,
                metrics.win_rate_pct,
                metrics.drawdown_pct,
                metrics.total_trades,
                metrics.trading_days,
                metrics.sharpe_ratio,
                metrics.consistency_score,
                metrics.risk_score,
                _now(),
            ),
        )
        self._commit()

    def get_legacy_metrics(self, trading_account_id: str) -> Optional[TradingMetricsSnapshot]:
        row = self._conn.execute(
            "SELECT * FROM trader_metrics WHERE trading_account_id = ?", (trading_account_id,)
        ).fetchone()
        if row is None:
            return None
        return TradingMetricsSnapshot(
            profit_factor=row["profit_factor"] or 0.0,
            win_rate_pct=normalize_win_rate(row["win_rate"] or 0.0),
            drawdown_pct=row["drawdown"] or 0.0,
            total_trades=row["total_trades"] or 0,
            trading_days=row["trading_days"] or 0,
            sharpe_ratio=row["sharpe_ratio"],
            consistency_score=row["consistency_score"],
            risk_score=row["risk_score"],
        )

    _LEGACY_SELECT = """
        SELECT a.id AS trader_id,
               COALESCE(a.display_name, a.account_number) AS display_name,
               s.score, s.tier, s.rank, s.updated_at,
               m.win_rate, m.profit_factor, m.drawdown, m.total_trades, m.trading_days
          FROM trader_scores s
          JOIN trading_accounts a ON a.id = s.trading_account_id
          LEFT JOIN trader_metrics m ON m.trading_account_id = s.trading_account_id
    """

    def get_legacy_leaderboard(self, limit: Optional[int] = 50) -> list[RankedEntry]:
        """Legacy scores ordered by rank (unranked rows after, by score).

        Rows without a stored rank get their position in this ordering.
        ``limit=None`` returns every row.
        """
        rows = self._conn.execute(
            self._LEGACY_SELECT
            + " ORDER BY s.rank IS NULL, s.rank ASC, s.score DESC LIMIT ?",
            (-1 if limit is None else limit,),
        ).fetchall()
        return [
            RankedEntry(**self._ranked_fields(row, fallback_rank=i))
            for i, row in enumerate(rows, start=1)
        ]

    def get_legacy_profile(self, trading_account_id: str) -> Optional[TraderProfile]:
        row = self._conn.execute(
            self._LEGACY_SELECT + " WHERE s.trading_account_id = ?",
            (trading_account_id,),
        ).fetchone()
        if row is None:
            return None
        return TraderProfile(
            **self._ranked_fields(row, fallback_rank=1),
            computed_at=parse_timestamp(row["updated_at"]),
        )

    @staticmethod
    def _ranked_fields(row: sqlite3.Row, fallback_rank: int) -> dict:
        score = row["score"]
        win_rate = row["win_rate"]
        return {
            "trader_id": row["trader_id"],
            "display_name": row["display_name"] or row["trader_id"],
            "score": score,
            "tier": parse_tier(row["tier"]) or classify_tier(score),
            "rank": row["rank"] or fallback_rank,
            "win_rate_pct": normalize_win_rate(win_rate) if win_rate is not None else None,
            "profit_factor": row["profit_factor"],
            "drawdown_pct": row["drawdown"],
            "total_trades": row["total_trades"],
            "trading_days": row["trading_days"],
        }

    # ------------------------------------------------------------------
    # Account linkage
    # ------------------------------------------------------------------

    def resolve_trader_accounts(self, user_id: str) -> list[str]:
        """Account numbers of every legacy trading account owned by *user_id*."""
        rows = self._conn.execute(
            "SELECT account_number FROM trading_accounts WHERE user_id = ? ORDER BY created_at",
            (user_id,),
        ).fetchall()
        return [r["account_number"] for r in rows if r["account_number"]]

    def resolve_trader_id_for_account(self, account_number: str) -> Optional[str]:
        """MT5 trader linked to a broker account number, or ``None``."""
        row = self._conn.execute(
            "SELECT trader_id FROM mt5_trading_accounts WHERE external_id = ?",
            (account_number,),
        ).fetchone()
        return row["trader_id"] if row else None

    def resolve_trader_id_for_user(self, user_id: str) -> Optional[str]:
        """First MT5 trader linked to any of the user's accounts."""
        for account_number in self.resolve_trader_accounts(user_id):
            trader_id = self.resolve_trader_id_for_account(account_number)
            if trader_id:
                return trader_id
        return None

    # ------------------------------------------------------------------
    # MT5 traders, accounts, trades, metrics
    # ------------------------------------------------------------------

    def upsert_mt5_trader(self, external_id: str, name: str, account_status: str) -> tuple[str, bool]:
        """Insert or update by external id.  Returns ``(trader_id, inserted)``."""
        now = _now()
        row = self._conn.execute(
            "SELECT id FROM mt5_traders WHERE external_id = ?", (external_id,)
        ).fetchone()
        if row is not None:
            self._conn.execute(
                "UPDATE mt5_traders SET name = ?, account_status = ?, updated_at = ? WHERE id = ?",
                (name, account_status, now, row["id"]),
            )
            self._commit()
            return row["id"], False

        trader_id = _new_id()
        self._conn.execute(
            """
            INSERT INTO mt5_traders (id, external_id, name, account_status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (trader_id, external_id, name, account_status, now, now),
        )
        self._commit()
        return trader_id, True

    def upsert_mt5_account(
        self,
        trader_id: str,
        external_id: str,
        balance: float = 0.0,
        leverage: int = 100,
        currency: str = "USD",
        status: str = "ACTIVE",
    ) -> tuple[str, bool]:
        """Insert or update by external id.  Returns ``(account_id, inserted)``."""
        now = _now()
        row = self._conn.execute(
            "SELECT id FROM mt5_trading_accounts WHERE external_id = ?", (external_id,)
        ).fetchone()
        if row is not None:
            self._conn.execute(
                """
                UPDATE mt5_trading_accounts
                   SET trader_id = ?, balance = ?, leverage = ?, currency = ?, status = ?, updated_at = ?
                 WHERE id = ?
                """,
                (trader_id, balance, leverage, currency, status, now, row["id"]),
            )
            self._commit()
            return row["id"], False

        account_id = _new_id()
        self._conn.execute(
            """
            INSERT INTO mt5_trading_accounts
                (id, trader_id, external_id, balance, leverage, currency, status, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (account_id, trader_id, external_id, balance, leverage, currency, status, now),
        )
        self._commit()
        return account_id, True

    def insert_trade(
        self,
        account_id: str,
        symbol: str,
        profit_loss: float,
        close_time: Optional[datetime | str] = None,
        fees: float = 0.0,
        open_time: Optional[datetime | str] = None,
        volume: Optional[float] = None,
        external_id: Optional[str] = None,
    ) -> str:
        """Insert one trade.  A trade without ``close_time`` is still open."""
        trade_id = _new_id()
        self._conn.execute(
            """
            INSERT INTO mt5_trades
                (id, account_id, external_id, symbol, volume, profit_loss, fees,
                 open_time, close_time, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                trade_id,
                account_id,
                external_id,
                symbol,
                volume,
                profit_loss,
                fees,
                _ts(open_time) if open_time is not None else None,
                _ts(close_time) if close_time is not None else None,
                "CLOSED" if close_time is not None else "OPEN",
            ),
        )
        self._commit()
        return trade_id

    def upsert_trade(
        self,
        account_id: str,
        external_id: str,
        symbol: str,
        profit_loss: float,
        close_time: Optional[datetime | str] = None,
        fees: float = 0.0,
        open_time: Optional[datetime | str] = None,
        volume: Optional[float] = None,
    ) -> tuple[str, bool]:
        """Insert or update by ``(account_id, external_id)``.  Returns ``(trade_id, inserted)``."""
        row = self._conn.execute(
            "SELECT id FROM mt5_trades WHERE account_id = ? AND external_id = ?",
            (account_id, external_id),
        ).fetchone()
        if row is None:
            trade_id = self.insert_trade(
                account_id,
                symbol,
                profit_loss,
                close_time=close_time,
                fees=fees,
                open_time=open_time,
                volume=volume,
                external_id=external_id,
            )
            return trade_id, True

        self._conn.execute(
            """
            UPDATE mt5_trades
               SET symbol = ?, volume = ?, profit_loss = ?, fees = ?,
                   open_time = ?, close_time = ?, status = ?
             WHERE id = ?
            """,
            (
                symbol,
                volume,
                profit_loss,
                fees,
                _ts(open_time) if open_time is not None else None,
                _ts(close_time) if close_time is not None else None,
                "CLOSED" if close_time is not None else "OPEN",
                row["id"],
            ),
        )
        self._commit()
        return row["id"], False

    def get_trader_account_ids(self, trader_id: str) -> list[str]:
        rows = self._conn.execute(
            "SELECT id FROM mt5_trading_accounts WHERE trader_id = ?", (trader_id,)
        ).fetchall()
        return [r["id"] for r in rows]

    def get_closed_trades(
        self,
        trader_id: str,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[ClosedTrade]:
        """Closed trades across all of the trader's accounts, oldest close first."""
        query = """
            SELECT t.* FROM mt5_trades t
              JOIN mt5_trading_accounts a ON a.id = t.account_id
             WHERE a.trader_id = ? AND t.close_time IS NOT NULL
        """
        params: list = [trader_id]
        if from_date is not None:
            query += " AND t.close_time >= ?"
            params.append(_ts(from_date))
        if to_date is not None:
            query += " AND t.close_time <= ?"
            params.append(_ts(to_date))
        query += " ORDER BY t.close_time ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._conn.execute(query, params).fetchall()
        return [
            ClosedTrade(
                id=r["id"],
                account_id=r["account_id"],
                symbol=r["symbol"],
                profit_loss=r["profit_loss"],
                fees=abs(r["fees"] or 0.0),
                open_time=parse_timestamp(r["open_time"]) if r["open_time"] else None,
                close_time=parse_timestamp(r["close_time"]),
            )
            for r in rows
        ]

    def upsert_metrics(self, trader_id: str, metrics: TradingMetricsSnapshot) -> bool:
        """Insert or overwrite the trader's metrics; returns ``True`` on insert."""
        exists = self._conn.execute(
            "SELECT 1 FROM mt5_trader_metrics WHERE trader_id = ?", (trader_id,)
        ).fetchone()
        self._conn.execute(
            """
            INSERT INTO mt5_trader_metrics
                (trader_id, profit_factor, win_rate, drawdown, total_trading_days, total_trades, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(trader_id) DO UPDATE SET
                profit_factor = excluded.profit_factor,
                win_rate = excluded.win_rate,
                drawdown = excluded.drawdown,
                total_trading_days = excluded.total_trading_days,
                total_trades = excluded.total_trades,
                updated_at = excluded.updated_at
            """,
            (
                trader_id,
                metrics.profit_factor,
                metrics.win_rate_pct,
                metrics.drawdown_pct,
                metrics.trading_days,
                metrics.total_trades,
                _now(),
            ),
        )
        self._commit()
        return exists is None

    def get_metrics(self, trader_id: str) -> Optional[TradingMetricsSnapshot]:
        """MT5 metrics for a trader.  Win rate may be stored as 0-1 or 0-100."""
        row = self._conn.execute(
            "SELECT * FROM mt5_trader_metrics WHERE trader_id = ?", (trader_id,)
        ).fetchone()
        if row is None:
            return None
        return TradingMetricsSnapshot(
            profit_factor=row["profit_factor"],
            win_rate_pct=normalize_win_rate(row["win_rate"]),
            drawdown_pct=row["drawdown"],
            total_trades=row["total_trades"] or 0,
            trading_days=row["total_trading_days"],
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def insert_snapshot_run(self, entries: list[RankedEntry], status: str = "COMPLETED") -> int:
        """Write a whole ranking run in one transaction; returns the run id."""
        now = _now()
        with self.transaction():
            cur = self._conn.execute(
                "INSERT INTO snapshot_runs (started_at, completed_at, status) VALUES (?, ?, ?)",
                (now, now if status == "COMPLETED" else None, status),
            )
            run_id = cur.lastrowid
            self._conn.executemany(
                """
                INSERT INTO trader_snapshots
                    (run_id, trader_id, display_name, score, tier, rank, win_rate,
                     profit_factor, drawdown, total_trades, trading_days)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        run_id,
                        e.trader_id,
                        e.display_name,
                        e.score,
                        e.tier.value,
                        e.rank,
                        e.win_rate_pct,
                        e.profit_factor,
                        e.drawdown_pct,
                        e.total_trades,
                        e.trading_days,
                    )
                    for e in entries
                ],
            )
        return run_id

    def _latest_run(self) -> Optional[sqlite3.Row]:
        return self._conn.execute(
            """
            SELECT id, completed_at FROM snapshot_runs
             WHERE status = 'COMPLETED'
             ORDER BY id DESC
             LIMIT 1
            """
        ).fetchone()

    _SNAPSHOT_SELECT = """
        SELECT trader_id, display_name, score, tier, rank, win_rate, profit_factor,
               drawdown, total_trades, trading_days
          FROM trader_snapshots
    """

    def get_latest_leaderboard(self, limit: Optional[int] = 50) -> list[RankedEntry]:
        """Rows of the most recent completed run, by rank."""
        run = self._latest_run()
        if run is None:
            return []
        rows = self._conn.execute(
            self._SNAPSHOT_SELECT + " WHERE run_id = ? ORDER BY rank ASC LIMIT ?",
            (run["id"], -1 if limit is None else limit),
        ).fetchall()
        return [RankedEntry(**self._ranked_fields(row, fallback_rank=i)) for i, row in enumerate(rows, start=1)]

    def get_latest_profile(self, trader_id: str) -> Optional[TraderProfile]:
        run = self._latest_run()
        if run is None:
            return None
        row = self._conn.execute(
            self._SNAPSHOT_SELECT + " WHERE run_id = ? AND trader_id = ?",
            (run["id"], trader_id),
        ).fetchone()
        if row is None:
            return None
        return TraderProfile(
            **self._ranked_fields(row, fallback_rank=1),
            computed_at=parse_timestamp(run["completed_at"]) if run["completed_at"] else None,
        )

    # ------------------------------------------------------------------
    # Payouts
    # ------------------------------------------------------------------

    def seed_payout_tiers(self, bands: tuple[PayoutTierConfig, ...] = PAYOUT_BANDS) -> None:
        """Insert any payout tier that does not exist yet.  Existing rows are kept."""
        with self.transaction():
            self._conn.executemany(
                """
                INSERT OR IGNORE INTO payout_tiers
                    (tier, min_average, max_average, payout_percent, color, description, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        b.tier.value,
                        b.min_average,
                        b.max_average,
                        b.payout_percent,
                        b.color,
                        b.description,
                        b.order,
                    )
                    for b in bands
                ],
            )

    def get_payout_tiers(self) -> list[PayoutTierConfig]:
        rows = self._conn.execute("SELECT * FROM payout_tiers ORDER BY sort_order ASC").fetchall()
        return [
            PayoutTierConfig(
                tier=PayoutLevel(r["tier"]),
                min_average=r["min_average"],
                max_average=r["max_average"],
                payout_percent=r["payout_percent"],
                color=r["color"] or "",
                description=r["description"] or "",
                order=r["sort_order"] or 0,
            )
            for r in rows
        ]

    def upsert_payout(self, record: PayoutRecord) -> PayoutRecord:
        """Insert or overwrite the trader's payout row; ``created_at`` survives updates."""
        tier_row = self._conn.execute(
            "SELECT id FROM payout_tiers WHERE tier = ?", (record.payout_tier.value,)
        ).fetchone()
        if tier_row is None:
            raise ConfigurationError(f"Payout tier not found for tier: {record.payout_tier.value}")

        now = _now()
        self._conn.execute(
            """
            INSERT INTO trader_payouts
                (trader_id, payout_tier_id, payout_percent, average_trades_per_day,
                 total_trading_days, max_trades_per_day, next_update_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(trader_id) DO UPDATE SET
                payout_tier_id = excluded.payout_tier_id,
                payout_percent = excluded.payout_percent,
                average_trades_per_day = excluded.average_trades_per_day,
                total_trading_days = excluded.total_trading_days,
                max_trades_per_day = excluded.max_trades_per_day,
                next_update_at = excluded.next_update_at,
                updated_at = excluded.updated_at
            """,
            (
                record.trader_id,
                tier_row["id"],
                record.payout_percent,
                record.average_trades_per_day,
                record.total_trading_days,
                record.max_trades_per_day,
                _ts(record.next_update_at) if record.next_update_at else None,
                now,
                now,
            ),
        )
        self._commit()
        return self.get_payout(record.trader_id)

    def get_payout(self, trader_id: str) -> Optional[PayoutRecord]:
        row = self._conn.execute(
            """
            SELECT p.*, t.tier, t.color, t.description
              FROM trader_payouts p
              JOIN payout_tiers t ON t.id = p.payout_tier_id
             WHERE p.trader_id = ?
            """,
            (trader_id,),
        ).fetchone()
        if row is None:
            return None
        return PayoutRecord(
            trader_id=row["trader_id"],
            payout_tier=PayoutLevel(row["tier"]),
            payout_percent=row["payout_percent"],
            average_trades_per_day=row["average_trades_per_day"],
            total_trading_days=row["total_trading_days"],
            max_trades_per_day=row["max_trades_per_day"],
            color=row["color"],
            description=row["description"],
            next_update_at=parse_timestamp(row["next_update_at"]) if row["next_update_at"] else None,
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Entitlements
    # ------------------------------------------------------------------

    def add_entitlement(self, trader_id: str, reward_type: str, status: str = "PENDING") -> str:
        entitlement_id = _new_id()
        self._conn.execute(
            """
            INSERT INTO reward_entitlements (id, trader_id, reward_type, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (entitlement_id, trader_id, reward_type.upper(), status.upper(), _now()),
        )
        self._commit()
        return entitlement_id

    def get_active_entitlements(self, trader_id: str) -> list[Entitlement]:
        """PENDING entitlements only."""
        rows = self._conn.execute(
            """
            SELECT id, trader_id, reward_type, status FROM reward_entitlements
             WHERE trader_id = ? AND status = 'PENDING'
             ORDER BY created_at
            """,
            (trader_id,),
        ).fetchall()
        return [Entitlement(**dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Rewards catalogue
    # ------------------------------------------------------------------

    def add_reward(self, tier: str, reward_type: str, name: str, is_active: bool = True) -> str:
        reward_id = _new_id()
        self._conn.execute(
            """
            INSERT INTO rewards (id, tier, reward_type, name, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (reward_id, tier.upper(), reward_type.upper(), name, int(is_active), _now()),
        )
        self._commit()
        return reward_id

    def get_reward_configs(self) -> list[RewardConfig]:
        """Collapse the rewards catalogue into one flag set per tier.

        BONUS rewards whose name mentions "phoenix" drive the Phoenix add-on
        flag, any other BONUS drives the payout boost.  Flags take the row's
        ``is_active`` value.
        """
        rows = self._conn.execute(
            "SELECT tier, reward_type, name, is_active FROM rewards ORDER BY rowid"
        ).fetchall()
        names = {tier.value: name for tier, name, _, _ in TIER_PRESENTATION}
        order = {tier.value: i for i, (tier, _, _, _) in enumerate(TIER_PRESENTATION)}
        flags: dict[str, dict[str, bool]] = {}
        for r in rows:
            entry = flags.setdefault(
                r["tier"],
                {"phoenix_add_on": False, "payout_boost": False, "cashback": False, "merchandise": False},
            )
            active = bool(r["is_active"])
            if r["reward_type"] == "BONUS":
                key = "phoenix_add_on" if "phoenix" in r["name"].lower() else "payout_boost"
            elif r["reward_type"] == "CASH":
                key = "cashback"
            elif r["reward_type"] == "MERCHANDISE":
                key = "merchandise"
            else:
                continue
            entry[key] = active
        return [
            RewardConfig(tier_id=tier, tier_name=names.get(tier, tier), **entry)
            for tier, entry in sorted(flags.items(), key=lambda item: order.get(item[0], len(order)))
        ]

    # ------------------------------------------------------------------
    # Tier configs
    # ------------------------------------------------------------------

    def upsert_tier_config(self, config: TierConfig) -> None:
        self._conn.execute(
            """
            INSERT INTO tier_configs (tier_id, name, min_score, max_score, color, description)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(tier_id) DO UPDATE SET
                name = excluded.name,
                min_score = excluded.min_score,
                max_score = excluded.max_score,
                color = excluded.color,
                description = excluded.description
            """,
            (
                config.tier_id,
                config.name,
                config.min_score,
                config.max_score,
                config.color,
                config.description,
            ),
        )
        self._commit()

    def get_tier_configs(self) -> list[TierConfig]:
        rows = self._conn.execute("SELECT * FROM tier_configs ORDER BY min_score ASC").fetchall()
        return [
            TierConfig(
                tier_id=r["tier_id"],
                name=r["name"],
                min_score=r["min_score"],
                max_score=r["max_score"],
                badge=r["name"],
                color=r["color"],
                description=r["description"],
            )
            for r in rows
        ]
