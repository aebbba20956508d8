"""In-memory TTL cache for read endpoints.

Each namespace (``leaderboard``, ``trader``, ``tiers``...) is its own
``cachetools.TTLCache`` so namespaces can have different lifetimes.
"""
from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache


_DEFAULT_TTL = 300  # 5 minutes
_DEFAULT_MAXSIZE = 256


class CacheLayer:
    """Thread-safe, namespaced TTL cache."""

    def __init__(
        self,
        ttls: dict[str, int] | None = None,
        maxsize: int = _DEFAULT_MAXSIZE,
        default_ttl: int = _DEFAULT_TTL,
    ) -> None:
        self._maxsize = maxsize
        self._default_ttl = default_ttl
        self._ttls = dict(ttls or {})
        self._namespaces: dict[str, TTLCache[str, Any]] = {}
        self._lock = threading.Lock()

    def _namespace(self, name: str) -> TTLCache[str, Any]:
        cache = self._namespaces.get(name)
        if cache is None:
            cache = TTLCache(maxsize=self._maxsize, ttl=self._ttls.get(name, self._default_ttl))
            self._namespaces[name] = cache
        return cache

    def get(self, namespace: str, key: str) -> Any | None:
        """Return cached value or ``None`` on miss."""
        with self._lock:
            return self._namespace(namespace).get(key)

    def set(self, namespace: str, key: str, value: Any) -> None:
        with self._lock:
            self._namespace(namespace)[key] = value

    def get_or_compute(self, namespace: str, key: str, compute_fn: Callable[[], Any]) -> Any:
        """Return the cached value, or compute, store and return it.

        ``None`` results are not cached.
        """
        cached = self.get(namespace, key)
        if cached is not None:
            return cached
        value = compute_fn()
        if value is not None:
            self.set(namespace, key, value)
        return value

    def invalidate(self, namespace: str, key: str) -> None:
        """Remove a specific key from a namespace."""
        with self._lock:
            self._namespace(namespace).pop(key, None)

    def clear(self, namespace: str | None = None) -> None:
        """Drop one namespace, or everything."""
        with self._lock:
            if namespace is None:
                self._namespaces.clear()
            else:
                self._namespaces.pop(namespace, None)
