"""Composite Scoring Engine

Computes a weighted 0-100 score for a trader from normalised metric
components (profit factor, win rate and drawdown, plus Sharpe ratio,
consistency and risk management when the upstream run produced them),
then classifies the score into a ranking tier.
"""

from __future__ import annotations

import math

import structlog

from hall_of_elite.config import (
    DRAWDOWN_PENALTY_MULTIPLIER,
    ELIGIBILITY_RULES,
    PROFIT_FACTOR_MULTIPLIER,
    SCORE_PRECISION,
    SCORE_WEIGHTS,
    SHARPE_MULTIPLIER,
)
from hall_of_elite.errors import InvalidArgument
from hall_of_elite.models import ScoringResult, TradingMetricsSnapshot
from hall_of_elite.resolution import DataSource, resolve
from hall_of_elite.tiering import classify_tier

log = structlog.get_logger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def _check_finite(metrics: TradingMetricsSnapshot) -> None:
    for name in (
        "profit_factor",
        "win_rate_pct",
        "drawdown_pct",
        "sharpe_ratio",
        "consistency_score",
        "risk_score",
    ):
        value = getattr(metrics, name)
        if value is not None and not math.isfinite(value):
            raise InvalidArgument(f"{name} must be finite, got {value!r}", field=name)


# ---------------------------------------------------------------------------
# Component scores, each on a 0-100 scale
# ---------------------------------------------------------------------------


def profit_factor_component(profit_factor: float) -> float:
    """A profit factor of 5.0 or more maps to 100."""
    return _clamp(profit_factor * PROFIT_FACTOR_MULTIPLIER)


def win_rate_component(win_rate_pct: float) -> float:
    return _clamp(win_rate_pct)


def drawdown_component(drawdown_pct: float) -> float:
    """Each percentage point of drawdown costs five points; 20 % or worse scores 0."""
    return _clamp(100.0 - drawdown_pct * DRAWDOWN_PENALTY_MULTIPLIER)


def sharpe_component(sharpe_ratio: float) -> float:
    return _clamp(sharpe_ratio * SHARPE_MULTIPLIER)


def score_components(metrics: TradingMetricsSnapshot) -> dict[str, float]:
    """Return the available component scores keyed like ``SCORE_WEIGHTS``."""
    _check_finite(metrics)
    components = {
        "profit_factor": profit_factor_component(metrics.profit_factor),
        "win_rate": win_rate_component(metrics.win_rate_pct),
        "drawdown": drawdown_component(metrics.drawdown_pct),
    }
    if metrics.sharpe_ratio is not None:
        components["sharpe"] = sharpe_component(metrics.sharpe_ratio)
    if metrics.consistency_score is not None:
        components["consistency"] = _clamp(metrics.consistency_score)
    if metrics.risk_score is not None:
        components["risk"] = _clamp(metrics.risk_score)
    return components


def compute_score(
    metrics: TradingMetricsSnapshot,
    weights: dict[str, float] = SCORE_WEIGHTS,
) -> float:
    """Weighted sum of component scores, rounded to two decimals.

    When an auxiliary component is missing its weight is redistributed
    proportionally over the components that are present, so the result
    stays on the 0-100 scale.
    """
    components = score_components(metrics)
    available = {name: weights[name] for name in components if name in weights}
    total_weight = math.fsum(available.values())
    if total_weight <= 0:
        return 0.0
    weighted = math.fsum(components[name] * w for name, w in available.items())
    return round(weighted / total_weight, SCORE_PRECISION)


def check_eligibility(
    metrics: TradingMetricsSnapshot,
    rules: dict[str, float] = ELIGIBILITY_RULES,
) -> list[str]:
    """Return human-readable reasons the trader misses the ranking rules."""
    failures: list[str] = []
    if metrics.trading_days < rules["min_trading_days"]:
        failures.append(
            f"Needs at least {rules['min_trading_days']} trading days (has {metrics.trading_days})"
        )
    if metrics.total_trades < rules["min_total_trades"]:
        failures.append(
            f"Needs at least {rules['min_total_trades']} trades (has {metrics.total_trades})"
        )
    if metrics.profit_factor < rules["min_profit_factor"]:
        failures.append(f"Profit factor below {rules['min_profit_factor']}")
    if metrics.drawdown_pct > rules["max_drawdown_pct"]:
        failures.append(f"Drawdown above {rules['max_drawdown_pct']}%")
    if metrics.win_rate_pct < rules["min_win_rate_pct"]:
        failures.append(f"Win rate below {rules['min_win_rate_pct']}%")
    return failures


def score_trader(trader_id: str, metrics: TradingMetricsSnapshot) -> ScoringResult:
    """Full scoring pass for one trader: components, score, tier, eligibility."""
    components = score_components(metrics)
    score = compute_score(metrics)
    return ScoringResult(
        trader_id=trader_id,
        score=score,
        tier=classify_tier(score),
        components=components,
        eligibility_failures=check_eligibility(metrics),
        metrics=metrics,
    )


class ScoringService:
    """Scores a trader from whichever metrics source is available."""

    def __init__(self, store) -> None:
        self._store = store

    def score_trader(self, trader_id: str) -> ScoringResult | None:
        result = resolve(
            [
                DataSource("mt5_metrics", lambda: self._store.get_metrics(trader_id)),
                DataSource("legacy_metrics", lambda: self._store.get_legacy_metrics(trader_id)),
            ],
            operation="scoring_metrics",
            trader_id=trader_id,
        )
        if not result:
            return None
        scored = score_trader(trader_id, result.value)
        log.info("trader_scored", trader_id=trader_id, score=scored.score, tier=scored.tier.value, source=result.source)
        return scored
