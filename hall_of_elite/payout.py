"""Payout Tier Engine

Maps trading activity to a payout level.

    average = max_trades_per_day / total_trading_days

A *lower* average means steadier trading and earns a *higher* payout:

    average < 0.20  -> GOLD   95 %
    average < 0.40  -> SILVER 80 %
    otherwise       -> BRONZE 30 %

Band boundaries resolve to the next (lower-payout) band, e.g. 0.2 is SILVER.
"""

from __future__ import annotations

import math

import structlog

from hall_of_elite.aggregation import derive_trade_stats
from hall_of_elite.config import PAYOUT_BANDS
from hall_of_elite.errors import InvalidArgument
from hall_of_elite.models import PayoutCalculation, PayoutRecord, PayoutTierConfig

log = structlog.get_logger(__name__)


def _validate_counts(max_trades_per_day: int, total_trading_days: int) -> tuple[int, int]:
    """Return both counts as ints.  Non-integral, non-finite or bool counts are rejected."""
    counts = []
    for name, value in (
        ("max_trades_per_day", max_trades_per_day),
        ("total_trading_days", total_trading_days),
    ):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidArgument(f"{name} must be a finite number, got {value!r}", field=name)
        if isinstance(value, float) and not value.is_integer():
            raise InvalidArgument(f"{name} must be a whole number, got {value!r}", field=name)
        counts.append(int(value))
    max_per_day, days = counts
    if days <= 0:
        raise InvalidArgument("total_trading_days must be greater than 0", field="total_trading_days")
    if max_per_day < 0:
        raise InvalidArgument("max_trades_per_day cannot be negative", field="max_trades_per_day")
    return max_per_day, days


def payout_band(
    average_trades_per_day: float,
    bands: tuple[PayoutTierConfig, ...] = PAYOUT_BANDS,
) -> PayoutTierConfig:
    """First band whose (exclusive) upper bound exceeds the average."""
    for band in bands:
        if band.max_average is None or average_trades_per_day < band.max_average:
            return band
    return bands[-1]


def compute_payout(max_trades_per_day: int, total_trading_days: int) -> PayoutCalculation:
    """Pure payout calculation.  Raises :class:`InvalidArgument` on bad counts."""
    max_trades_per_day, total_trading_days = _validate_counts(max_trades_per_day, total_trading_days)
    average = max_trades_per_day / total_trading_days
    band = payout_band(average)
    return PayoutCalculation(
        average_trades_per_day=average,
        payout_percent=band.payout_percent,
        payout_tier=band.tier,
        color=band.color,
        description=band.description,
    )


def path_to_next_tier(payout_percent: float | None) -> str | None:
    """Human-readable hint for moving up a payout band."""
    if payout_percent is None:
        return None
    if payout_percent <= 30:
        return "Lower your daily average to reach 80% payout."
    if payout_percent < 95:
        return "Lower your daily average to reach 95% payout."
    return "You're at the top payout tier."


class PayoutService:
    """Calculates payouts and upserts them through the payout store."""

    def __init__(self, store) -> None:
        self._store = store

    def get_payout_tiers(self) -> list[PayoutTierConfig]:
        return self._store.get_payout_tiers()

    def get_payout(self, trader_id: str) -> PayoutRecord | None:
        return self._store.get_payout(trader_id)

    def calculate(self, trader_id: str, max_trades_per_day: int, total_trading_days: int) -> PayoutRecord:
        """Compute the payout from caller-supplied counts and upsert it.

        Repeating the call with the same inputs overwrites the same row;
        concurrent writers for one trader resolve last-write-wins in the store.
        """
        if not trader_id or not trader_id.strip():
            raise InvalidArgument("trader_id is required", field="trader_id")
        max_trades_per_day, total_trading_days = _validate_counts(max_trades_per_day, total_trading_days)
        calculation = compute_payout(max_trades_per_day, total_trading_days)
        record = PayoutRecord(
            trader_id=trader_id,
            payout_tier=calculation.payout_tier,
            payout_percent=calculation.payout_percent,
            average_trades_per_day=calculation.average_trades_per_day,
            total_trading_days=total_trading_days,
            max_trades_per_day=max_trades_per_day,
        )
        saved = self._store.upsert_payout(record)
        log.info(
            "payout_calculated",
            trader_id=trader_id,
            average=calculation.average_trades_per_day,
            payout_percent=calculation.payout_percent,
            tier=calculation.payout_tier.value,
        )
        return saved

    def calculate_from_trades(self, trader_id: str) -> PayoutRecord | None:
        """Derive the counts from closed trades; ``None`` when there are none."""
        stats = derive_trade_stats(self._store, trader_id)
        if stats is None or stats.total_trading_days == 0:
            log.info("payout_no_trade_data", trader_id=trader_id)
            return None
        return self.calculate(trader_id, stats.max_trades_per_day, stats.total_trading_days)
