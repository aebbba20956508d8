"""Data-source resolution policy.

Every read operation names an ordered list of candidate sources
(e.g. ``snapshot`` -> ``legacy`` -> ``static``).  :func:`resolve` tries them
in order and returns the first non-empty result, tagged with the source
that produced it.  A source that raises is logged and treated as empty;
the caller never sees the intermediate failure.  Results are never merged
across sources.

Usage::

    result = resolve(
        [
            DataSource("snapshot", lambda: store.get_latest_leaderboard(50)),
            DataSource("legacy", lambda: store.get_legacy_leaderboard(50)),
        ],
        operation="leaderboard",
    )
    if result:
        rows = result.value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DataSource(Generic[T]):
    """A named, zero-argument fetch strategy."""

    name: str
    fetch: Callable[[], T | None]


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A non-empty value and the name of the source that produced it."""

    source: str
    value: T

    def __bool__(self) -> bool:
        return True


class _Empty:
    """Sentinel returned when every source failed or came back empty."""

    source = None
    value = None

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = _Empty()


def is_empty_value(value: Any) -> bool:
    """``None`` and empty containers count as empty; ``0`` and ``False`` do not."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict, set, str)):
        return len(value) == 0
    return False


def resolve(
    sources: Iterable[DataSource[T]],
    *,
    operation: str = "read",
    is_empty: Callable[[Any], bool] = is_empty_value,
    **context: Any,
) -> Resolved[T] | _Empty:
    """Return the first non-empty source result, or :data:`EMPTY`.

    ``context`` is attached to the log events (e.g. ``trader_id``).
    Only ``Exception`` subclasses are swallowed.
    """
    for source in sources:
        try:
            value = source.fetch()
        except Exception as exc:
            log.warning(
                "data_source_failed",
                operation=operation,
                source=source.name,
                error=f"{type(exc).__name__}: {exc}",
                **context,
            )
            continue

        if is_empty(value):
            log.debug("data_source_empty", operation=operation, source=source.name, **context)
            continue

        log.debug("data_source_resolved", operation=operation, source=source.name, **context)
        return Resolved(source=source.name, value=value)

    log.info("data_sources_exhausted", operation=operation, **context)
    return EMPTY


def resolve_or_default(
    sources: Iterable[DataSource[T]],
    default: T,
    *,
    operation: str = "read",
    **context: Any,
) -> T:
    """Like :func:`resolve` but unwraps the value, returning *default* when empty."""
    result = resolve(sources, operation=operation, **context)
    return result.value if result else default
