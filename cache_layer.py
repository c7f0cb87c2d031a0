from __future__ import annotations

import hashlib
import json
import threading
from typing import Any, Callable

from cachetools import TTLCache


def _sha256_16(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def make_cache_key(namespace: str, *, scope: list[str] | None = None, params: dict[str, Any] | None = None) -> str:
    ns = str(namespace or "").strip().upper()
    scope = scope or []
    params = params or {}
    try:
        blob = json.dumps(params, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        blob = str(params)
    digest = _sha256_16(blob)
    parts = [ns] + [str(s or "").strip() for s in scope if str(s or "").strip()] + [digest]
    return ":".join(parts)


class ResponseCache:
    """TTL cache for read-only catalogue responses (certification definitions)."""

    def __init__(self, *, ttl_seconds: int = 60, max_items: int = 1000):
        self.ttl_seconds = max(1, min(3600, int(ttl_seconds)))
        self._cache = TTLCache(maxsize=max(10, min(100_000, int(max_items))), ttl=self.ttl_seconds)
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get_or_set(self, key: str, factory: Callable[[], Any]) -> Any:
        """Cached value for ``key``, else ``factory()``. A raising factory caches nothing."""
        with self._lock:
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
            self._misses += 1
        # factory does network I/O; the lock is not held across it.
        computed = factory()
        with self._lock:
            return self._cache.setdefault(key, computed)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``; returns how many went."""
        pfx = str(prefix or "")
        if not pfx:
            return 0
        with self._lock:
            stale = [k for k in list(self._cache.keys()) if str(k).startswith(pfx)]
            for k in stale:
                self._cache.pop(k, None)
        return len(stale)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._cache),
                "maxEntries": int(self._cache.maxsize),
                "ttlSeconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hitRate": round(self._hits / lookups * 100, 2) if lookups else 0.0,
            }
