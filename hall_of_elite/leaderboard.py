"""Leaderboard and trader profile reads.

Both follow the same chain: latest completed snapshot run, then the
legacy per-account scores, then static data (when enabled).  The first
source with rows wins; rows are never merged across sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hall_of_elite.mock_data import static_leaderboard, static_profile
from hall_of_elite.models import RankedEntry, Tier, TraderProfile
from hall_of_elite.resolution import DataSource, resolve


@dataclass(frozen=True)
class LeaderboardResult:
    """Ranked rows plus the name of the source that produced them (``None`` if none did)."""

    source: str | None
    entries: list[RankedEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ProfileResult:
    source: str
    profile: TraderProfile


def _filter_tier(entries: list[RankedEntry], tier: Tier | None, limit: int) -> list[RankedEntry]:
    if tier is not None:
        entries = [e for e in entries if e.tier == tier]
    return entries[:limit]


class LeaderboardService:
    def __init__(self, store, static_fallback: bool = True) -> None:
        self._store = store
        self._static_fallback = static_fallback

    def get_leaderboard(self, limit: int = 50, tier: Tier | None = None) -> LeaderboardResult:
        """Top *limit* rows, optionally restricted to one tier.

        With a tier filter each source is read in full and filtered, so a
        source with no rows in that tier hands over to the next one.
        """
        fetch_limit = limit if tier is None else None
        sources = [
            DataSource(
                "snapshot",
                lambda: _filter_tier(self._store.get_latest_leaderboard(fetch_limit), tier, limit),
            ),
            DataSource(
                "legacy",
                lambda: _filter_tier(self._store.get_legacy_leaderboard(fetch_limit), tier, limit),
            ),
        ]
        if self._static_fallback:
            sources.append(
                DataSource("static", lambda: _filter_tier(static_leaderboard(), tier, limit))
            )

        result = resolve(sources, operation="leaderboard", limit=limit, tier=tier.value if tier else None)
        if not result:
            return LeaderboardResult(source=None, entries=[])
        return LeaderboardResult(source=result.source, entries=result.value)

    def get_profile(self, trader_id: str) -> ProfileResult | None:
        sources = [
            DataSource("snapshot", lambda: self._store.get_latest_profile(trader_id)),
            DataSource("legacy", lambda: self._store.get_legacy_profile(trader_id)),
        ]
        if self._static_fallback:
            sources.append(DataSource("static", lambda: static_profile(trader_id)))

        result = resolve(sources, operation="profile", trader_id=trader_id)
        if not result:
            return None
        return ProfileResult(source=result.source, profile=result.value)
