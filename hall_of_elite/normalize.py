"""Normalization of raw external values into canonical numeric/string forms.

Broker feeds are inconsistent: win rates arrive as fractions or
percentages, balances carry float noise, timestamps come as ISO strings or
epoch seconds.  Everything downstream of this module sees one convention.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from hall_of_elite.errors import InvalidArgument

DEFAULT_CURRENCY = "USD"
DEFAULT_LEVERAGE = 100
DEFAULT_STATUS = "UNKNOWN"


def _require_finite(value: float, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{name} must be a number, got {value!r}", field=name)
    if not math.isfinite(number):
        raise InvalidArgument(f"{name} must be finite, got {value!r}", field=name)
    return number


def normalize_win_rate(value: float) -> float:
    """Return a win rate on the 0-100 scale.

    Values in [0, 1] are treated as fractions and scaled; values in (1, 100]
    are already percentages.  Anything else is passed through unchanged so
    a corrupt upstream value stays visible rather than being masked.
    """
    value = _require_finite(value, "win_rate")
    if 1 < value <= 100:
        return value
    if 0 <= value <= 1:
        # 0.65 * 100 is 65.00000000000001
        return round(value * 100, 6)
    return value


def normalize_percentage(value: float, name: str = "percentage") -> float:
    """Clamp a percentage to [0, 100]."""
    value = _require_finite(value, name)
    return min(100.0, max(0.0, value))


def normalize_ratio(value: float | None, default: float = 0.0) -> float:
    """Return a non-negative finite ratio, or *default* for missing/invalid input."""
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def round_money(value: float) -> float:
    """Round a currency amount to cents.  Non-finite amounts become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return round(number * 100) / 100


def sanitize_string(value: str | None) -> str | None:
    if not value:
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_status(status: str | None) -> str:
    cleaned = sanitize_string(status)
    return cleaned.upper() if cleaned else DEFAULT_STATUS


def normalize_currency(currency: str | None) -> str:
    cleaned = sanitize_string(currency)
    return cleaned.upper() if cleaned else DEFAULT_CURRENCY


def normalize_leverage(leverage: float | None) -> int:
    if leverage is None or isinstance(leverage, bool):
        return DEFAULT_LEVERAGE
    try:
        number = float(leverage)
    except (TypeError, ValueError):
        return DEFAULT_LEVERAGE
    if not math.isfinite(number) or number <= 0:
        return DEFAULT_LEVERAGE
    return round(number)


def normalize_login(login: str | int) -> str:
    return str(login).strip()


def parse_timestamp(value: datetime | str | int | float) -> datetime:
    """Coerce *value* into a timezone-aware UTC datetime.

    Accepts datetimes (naive ones are assumed UTC), ISO-8601 strings
    (including a trailing ``Z``) and epoch seconds.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise InvalidArgument(f"invalid timestamp {value!r}", field="timestamp")
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidArgument(f"invalid timestamp {value!r}", field="timestamp")
    else:
        raise InvalidArgument(f"invalid timestamp {value!r}", field="timestamp")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_day_key(value: datetime) -> str:
    """Return the UTC calendar date of *value* as ``YYYY-MM-DD``."""
    return parse_timestamp(value).strftime("%Y-%m-%d")
