"""In-memory response cache for backend results.

Keys are derived from the manager, tool and parameters with a stable JSON
encoding and a truncated sha256 hash, so equal requests always share an entry.
Only successful results are stored. The cache is shared across concurrent
requests and guarded by a lock.
"""

import hashlib
import json
import threading
import time
from collections import OrderedDict
from typing import Any

from pkgrouter.models.package import BackendResult


def make_cache_key(manager_id: str, tool_name: str, params: dict[str, Any]) -> str:
    """Build the cache key for one backend call.

    Examples:
        >>> make_cache_key("npm", "get_package_info", {"package_name": "react"})[:4]
        'npm:'
    """
    encoded = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(encoded.encode()).hexdigest()[:16]
    return f"{manager_id}:{tool_name}:{digest}"


class ResponseCache:
    """TTL cache with least-recently-used eviction.

    Args:
        ttl_seconds: Entry lifetime. Zero disables the cache.
        max_entries: Capacity before the least recently used entry is evicted.
    """

    def __init__(self, ttl_seconds: float = 3600.0, max_entries: int = 1000) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: OrderedDict[str, tuple[float, BackendResult]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, manager_id: str, tool_name: str, params: dict[str, Any]) -> BackendResult | None:
        """Return a cached copy marked ``cached=True``, or None.

        The copy keeps the latency recorded when it was stored, so a hit
        scores the same as the original call.
        """
        if not self.enabled:
            return None

        key = make_cache_key(manager_id, tool_name, params)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            expires_at, result = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return result.model_copy(update={"cached": True}, deep=True)

    def put(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        result: BackendResult,
    ) -> None:
        """Store a successful result. Failures are ignored."""
        if not self.enabled or not result.success:
            return

        key = make_cache_key(manager_id, tool_name, params)
        with self._lock:
            self._entries[key] = (time.monotonic() + self.ttl_seconds, result.model_copy(deep=True))
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Entry count and hit/miss counters."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total else 0.0,
            }
