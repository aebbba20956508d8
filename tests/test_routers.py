"""Integration tests for FastAPI router endpoints.

Uses httpx.AsyncClient with ASGITransport against the real FastAPI app.
ASGITransport does not run the lifespan, so every service getter is
overridden with real services built over an in-memory DataStore.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from httpx import ASGITransport

from backend.cache import CacheLayer
from backend.dependencies import (
    get_analytics_service,
    get_cache,
    get_datastore,
    get_leaderboard_service,
    get_payout_service,
    get_progress_service,
    get_rewards_service,
    get_scoring_service,
    get_tier_config_service,
)
from backend.main import app
from conftest import make_metrics
from hall_of_elite.analytics import AnalyticsService, ProgressService
from hall_of_elite.leaderboard import LeaderboardService
from hall_of_elite.models import RankedEntry, Tier, TierConfig
from hall_of_elite.payout import PayoutService
from hall_of_elite.rewards import RewardsService
from hall_of_elite.scoring import ScoringService
from hall_of_elite.tiering import TierConfigService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entry(trader_id: str, score: float, rank: int, tier: Tier = Tier.GOLD) -> RankedEntry:
    return RankedEntry(
        trader_id=trader_id,
        display_name=f"Trader {trader_id}",
        score=score,
        tier=tier,
        rank=rank,
        win_rate_pct=61.5,
        total_trades=80,
    )


def _override_store(store, static_fallback: bool = True) -> None:
    app.dependency_overrides[get_datastore] = lambda: store
    app.dependency_overrides[get_leaderboard_service] = lambda: LeaderboardService(
        store, static_fallback=static_fallback
    )
    app.dependency_overrides[get_scoring_service] = lambda: ScoringService(store)
    app.dependency_overrides[get_payout_service] = lambda: PayoutService(store)
    app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(store)
    app.dependency_overrides[get_progress_service] = lambda: ProgressService(store)
    app.dependency_overrides[get_rewards_service] = lambda: RewardsService(store)
    app.dependency_overrides[get_tier_config_service] = lambda: TierConfigService(store)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache():
    """Return a real CacheLayer (in-memory, no external deps)."""
    return CacheLayer()


@pytest.fixture
async def client(ds, cache):
    """Async httpx test client with dependency overrides."""
    _override_store(ds)
    app.dependency_overrides[get_cache] = lambda: cache

    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================================================
# 1. GET /api/v1/health and /
# ===========================================================================


class TestHealthEndpoint:
    async def test_health_ok(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["db_connected"] is True
        assert "static_fallback_enabled" in body

    async def test_health_degraded_when_db_fails(self, client):
        broken = MagicMock()
        broken.ping.side_effect = sqlite3.OperationalError("database is locked")
        app.dependency_overrides[get_datastore] = lambda: broken

        resp = await client.get("/api/v1/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"
        assert resp.json()["db_connected"] is False

    async def test_root(self, client):
        resp = await client.get("/")
        assert resp.json() == {"name": "Hall of Elite API", "version": "0.1.0"}


# ===========================================================================
# 2. GET /api/v1/leaderboard
# ===========================================================================


class TestLeaderboardEndpoint:
    async def test_snapshot_leaderboard(self, client, ds):
        ds.insert_snapshot_run([_entry("alice", 55.0, 1), _entry("bob", 45.0, 2)])

        resp = await client.get("/api/v1/leaderboard")

        assert resp.status_code == 200
        body = resp.json()
        assert body["source"] == "snapshot"
        assert body["total"] == 2
        first = body["traders"][0]
        assert first["trader_id"] == "alice"
        assert first["tier"] == "GOLD"
        assert first["win_rate"] == 61.5
        assert first["total_trades"] == 80

    async def test_legacy_when_snapshot_tables_fail(self, client):
        store = MagicMock()
        store.get_latest_leaderboard.side_effect = sqlite3.OperationalError("no such table: snapshot_runs")
        store.get_legacy_leaderboard.return_value = [_entry("acct-1", 72.0, 1, Tier.PLATINUM)]
        _override_store(store)

        resp = await client.get("/api/v1/leaderboard?limit=10")

        body = resp.json()
        assert body["source"] == "legacy"
        assert [t["trader_id"] for t in body["traders"]] == ["acct-1"]

    async def test_static_fallback(self, client):
        resp = await client.get("/api/v1/leaderboard")
        body = resp.json()
        assert body["source"] == "static"
        assert body["traders"][0]["display_name"] == "Elite Trader Alpha"

    async def test_empty_when_static_disabled(self, client, ds):
        _override_store(ds, static_fallback=False)
        resp = await client.get("/api/v1/leaderboard")
        assert resp.status_code == 200
        assert resp.json() == {"traders": [], "total": 0, "tier": None, "source": None}

    async def test_tier_filter(self, client, ds):
        ds.insert_snapshot_run([_entry("alice", 85.0, 1, Tier.DIAMOND), _entry("bob", 45.0, 2)])
        resp = await client.get("/api/v1/leaderboard?tier=DIAMOND")
        body = resp.json()
        assert body["tier"] == "DIAMOND"
        assert [t["trader_id"] for t in body["traders"]] == ["alice"]

    async def test_result_is_cached(self, client, ds):
        ds.insert_snapshot_run([_entry("alice", 55.0, 1)])
        await client.get("/api/v1/leaderboard")
        ds.insert_snapshot_run([_entry("carol", 65.0, 1)])

        resp = await client.get("/api/v1/leaderboard")

        assert resp.json()["traders"][0]["trader_id"] == "alice"

    @pytest.mark.parametrize("query", ["limit=0", "limit=201", "tier=NOPE"])
    async def test_invalid_query(self, client, query):
        resp = await client.get(f"/api/v1/leaderboard?{query}")
        assert resp.status_code == 422


# ===========================================================================
# 3. GET /api/v1/traders/{id} and /score
# ===========================================================================


class TestTraderEndpoints:
    async def test_profile_from_snapshot(self, client, ds):
        ds.insert_snapshot_run([_entry("alice", 55.0, 4)])
        resp = await client.get("/api/v1/traders/alice")
        assert resp.status_code == 200
        body = resp.json()
        assert body["source"] == "snapshot"
        assert body["rank"] == 4
        assert body["computed_at"] is not None

    async def test_static_profile(self, client):
        resp = await client.get("/api/v1/traders/unknown-trader")
        assert resp.status_code == 200
        assert resp.json()["source"] == "static"

    async def test_profile_not_found(self, client, ds):
        _override_store(ds, static_fallback=False)
        resp = await client.get("/api/v1/traders/ghost")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Trader not found"

    async def test_profile_not_found_is_not_cached(self, client, ds):
        _override_store(ds, static_fallback=False)
        missing = await client.get("/api/v1/traders/ghost")
        ds.insert_snapshot_run([_entry("ghost", 55.0, 1)])

        resp = await client.get("/api/v1/traders/ghost")

        assert missing.status_code == 404
        assert resp.status_code == 200
        assert resp.json()["rank"] == 1

    async def test_profile_is_cached(self, client, ds):
        ds.insert_snapshot_run([_entry("alice", 55.0, 4)])
        await client.get("/api/v1/traders/alice")
        ds.insert_snapshot_run([_entry("alice", 75.0, 1)])

        resp = await client.get("/api/v1/traders/alice")

        assert resp.json()["rank"] == 4

    async def test_score(self, client, ds, mt5_trader):
        ds.upsert_metrics(mt5_trader, make_metrics())

        resp = await client.get(f"/api/v1/traders/{mt5_trader}/score")

        assert resp.status_code == 200
        body = resp.json()
        assert body["score"] == pytest.approx(54.62)
        assert body["tier"] == "GOLD"
        assert set(body["components"]) == {"profit_factor", "win_rate", "drawdown"}

    async def test_score_without_metrics(self, client):
        resp = await client.get("/api/v1/traders/nobody/score")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No metrics available for trader"


# ===========================================================================
# 4. /api/v1/payout
# ===========================================================================


class TestPayoutEndpoints:
    async def test_payout_tiers(self, client):
        resp = await client.get("/api/v1/payout/tiers")
        tiers = resp.json()["tiers"]
        assert [t["tier"] for t in tiers] == ["BRONZE", "SILVER", "GOLD"]
        assert [t["payout_percent"] for t in tiers] == [30, 80, 95]
        assert tiers[0]["max_average"] is None

    async def test_calculate_with_counts(self, client):
        resp = await client.post(
            "/api/v1/payout/calculate",
            json={"trader_id": "t-1", "max_trades_per_day": 3, "total_trading_days": 10},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["payout_tier"] == "SILVER"
        assert body["payout_percent"] == 80
        assert body["average_trades_per_day"] == pytest.approx(0.3)
        assert body["path_to_next_tier"] == "Lower your daily average to reach 95% payout."

    async def test_zero_trading_days_rejected(self, client):
        resp = await client.post(
            "/api/v1/payout/calculate",
            json={"trader_id": "t-1", "max_trades_per_day": 3, "total_trading_days": 0},
        )
        assert resp.status_code == 400
        assert resp.json()["field"] == "total_trading_days"

    async def test_one_count_only_rejected(self, client):
        resp = await client.post(
            "/api/v1/payout/calculate",
            json={"trader_id": "t-1", "max_trades_per_day": 3},
        )
        assert resp.status_code == 400

    async def test_empty_trader_id_rejected(self, client):
        resp = await client.post("/api/v1/payout/calculate", json={"trader_id": ""})
        assert resp.status_code == 422

    async def test_recalculation_invalidates_cached_payout(self, client):
        await client.post(
            "/api/v1/payout/calculate",
            json={"trader_id": "t-1", "max_trades_per_day": 1, "total_trading_days": 10},
        )
        first = await client.get("/api/v1/payout/t-1")
        await client.post(
            "/api/v1/payout/calculate",
            json={"trader_id": "t-1", "max_trades_per_day": 5, "total_trading_days": 10},
        )
        second = await client.get("/api/v1/payout/t-1")

        assert first.json()["payout_tier"] == "GOLD"
        assert second.json()["payout_tier"] == "BRONZE"

    async def test_payout_not_found(self, client):
        resp = await client.get("/api/v1/payout/nobody")
        assert resp.status_code == 404

    async def test_stored_payout_is_cached(self, client, ds):
        PayoutService(ds).calculate("t-1", 1, 10)
        first = await client.get("/api/v1/payout/t-1")
        PayoutService(ds).calculate("t-1", 5, 10)

        second = await client.get("/api/v1/payout/t-1")

        assert first.json()["payout_tier"] == "GOLD"
        assert second.json()["payout_tier"] == "GOLD"

    async def test_fractional_counts_rejected(self, client):
        resp = await client.post(
            "/api/v1/payout/calculate",
            json={"trader_id": "t-1", "max_trades_per_day": 2.5, "total_trading_days": 10},
        )
        assert resp.status_code == 422

    async def test_calculate_from_trades(self, client, ds, mt5_trader):
        account = ds.get_trader_account_ids(mt5_trader)[0]
        ds.insert_trade(account, "EURUSD", 5.0, close_time="2025-03-03T09:00:00Z")
        ds.insert_trade(account, "EURUSD", 5.0, close_time="2025-03-03T15:00:00Z")
        ds.insert_trade(account, "EURUSD", 5.0, close_time="2025-03-04T09:00:00Z")

        resp = await client.post("/api/v1/payout/calculate", json={"trader_id": mt5_trader})

        body = resp.json()
        assert body["max_trades_per_day"] == 2
        assert body["total_trading_days"] == 2
        assert body["payout_tier"] == "BRONZE"

    async def test_calculate_from_trades_without_trades(self, client):
        resp = await client.post(
            "/api/v1/payout/calculate", json={"trader_id": "nobody", "from_trades": True}
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "data": None,
            "message": "Payout not calculated: no closed trades found for trader",
        }

    async def test_trader_without_trades_gets_no_stored_payout(self, client):
        await client.post("/api/v1/payout/calculate", json={"trader_id": "nobody"})
        resp = await client.get("/api/v1/payout/nobody")
        assert resp.status_code == 404

    async def test_unprovisioned_trades_give_503(self, client, ds_no_mt5):
        app.dependency_overrides[get_payout_service] = lambda: PayoutService(ds_no_mt5)
        resp = await client.post(
            "/api/v1/payout/calculate", json={"trader_id": "t-1", "from_trades": True}
        )
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Upstream store unavailable: closed_trades"


# ===========================================================================
# 5. /api/v1/users/{id}/progress and /analytics
# ===========================================================================


class TestUserEndpoints:
    async def test_progress_for_unlinked_user(self, client):
        resp = await client.get("/api/v1/users/stranger/progress")
        body = resp.json()
        assert body["current_points"] == 25
        assert body["next_reward_threshold"] == 75
        assert body["max_points_for_display"] == 100
        assert body["reward_targets"][0] == {"id": 1, "label": "Unlocked", "required_points": 0, "unlocked": True}

    async def test_progress_for_linked_user(self, client, ds, mt5_trader):
        ds.upsert_metrics(mt5_trader, make_metrics(trading_days=60))
        PayoutService(ds).calculate(mt5_trader, 1, 10)

        resp = await client.get("/api/v1/users/user-1/progress")

        assert resp.json()["current_points"] == 140

    async def test_analytics_for_unlinked_user(self, client):
        resp = await client.get("/api/v1/users/stranger/analytics")
        body = resp.json()
        assert body["win_rate"] == 0.0
        assert body["payout_percent"] is None
        assert body["equity_data"] == []
        assert body["recent_trades"] == []

    async def test_analytics_for_linked_user(self, client, ds, mt5_trader):
        account = ds.get_trader_account_ids(mt5_trader)[0]
        ds.upsert_metrics(mt5_trader, make_metrics(win_rate_pct=0.6))
        ds.insert_trade(account, "EURUSD", 12.0, fees=2.0, close_time="2025-03-03T09:00:00Z")
        ds.insert_trade(account, "XAUUSD", -4.0, close_time="2025-03-04T09:00:00Z")

        resp = await client.get("/api/v1/users/user-1/analytics")

        body = resp.json()
        assert body["win_rate"] == 60.0
        assert body["equity_data"] == [
            {"date": "2025-03-03", "cumulative_pnl": 10.0},
            {"date": "2025-03-04", "cumulative_pnl": 6.0},
        ]
        assert body["recent_trades"][0]["symbol"] == "XAUUSD"
        assert body["recent_trades"][1]["net_pnl"] == 10.0

    async def test_equity_days_validated(self, client):
        resp = await client.get("/api/v1/users/user-1/analytics?equity_days=0")
        assert resp.status_code == 422


# ===========================================================================
# 6. /api/v1/rewards and /api/v1/admin
# ===========================================================================


class TestRewardsEndpoint:
    async def test_tier_rewards_with_entitlement(self, client, ds):
        ds.insert_snapshot_run([_entry("alice", 30.0, 9, Tier.SILVER)])
        ds.add_entitlement("alice", "MERCHANDISE")

        resp = await client.get("/api/v1/rewards/traders/alice")

        body = resp.json()
        assert body["tier"] == "SILVER"
        assert body["rewards"] == {
            "phoenix_add_on": False,
            "payout_boost": False,
            "cashback": True,
            "merchandise": True,
        }

    async def test_unknown_trader(self, client):
        resp = await client.get("/api/v1/rewards/traders/ghost")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Trader tier not found"


class TestAdminEndpoints:
    async def test_static_tier_configs(self, client):
        resp = await client.get("/api/v1/admin/tiers")
        tiers = resp.json()["tiers"]
        assert len(tiers) == 6

    async def test_stored_tier_configs_take_precedence(self, client, ds):
        ds.upsert_tier_config(TierConfig(tier_id="GOLD", name="Gold", min_score=40, max_score=60, badge="Gold"))
        resp = await client.get("/api/v1/admin/tiers")
        assert [t["tier_id"] for t in resp.json()["tiers"]] == ["GOLD"]

    async def test_reward_configs(self, client):
        resp = await client.get("/api/v1/admin/rewards")
        rewards = {r["tier_id"]: r for r in resp.json()["rewards"]}
        assert rewards["BRONZE"]["cashback"] is False
        assert rewards["ELITE"]["phoenix_add_on"] is True

    async def test_tier_configs_are_cached(self, client, ds):
        first = await client.get("/api/v1/admin/tiers")
        ds.upsert_tier_config(TierConfig(tier_id="GOLD", name="Gold", min_score=40, max_score=60, badge="Gold"))
        second = await client.get("/api/v1/admin/tiers")
        assert len(first.json()["tiers"]) == 6
        assert second.json() == first.json()

    async def test_stored_reward_configs_take_precedence(self, client, ds):
        ds.add_reward("GOLD", "BONUS", "Phoenix Add-on")
        resp = await client.get("/api/v1/admin/rewards")
        rewards = resp.json()["rewards"]
        assert [r["tier_id"] for r in rewards] == ["GOLD"]
        assert rewards[0]["phoenix_add_on"] is True
        assert rewards[0]["cashback"] is False
