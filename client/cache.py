"""
client/cache.py -- In-memory cache for identity-scoped query results.

Holds data fetched on behalf of the signed-in user (profile, dashboards,
fleet lists...) so screens do not refetch on every read. Entries are keyed by
a tuple such as ("auth", "profile").

Two TTLs, as in the browser query client:
  stale_after -- an entry older than this is still returned by get() with
                 allow_stale=True, but get_or_fetch() refetches it.
  gc_after    -- an entry older than this is dropped.

invalidate() marks every entry stale so the next get_or_fetch() refetches.
clear() drops everything. Both are idempotent.

Usage:
    cache = QueryCache()
    profile = cache.get_or_fetch(("auth", "profile"), api.get_profile)
    cache.invalidate()      # after login: refetch under the new identity
    cache.clear()           # after logout: nothing from the old identity survives
    cache.purge_expired()   # call periodically to trim old entries
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

_DEFAULT_STALE = 30 * 60
_DEFAULT_GC = 60 * 60


@dataclass
class _Entry:
    data: Any
    cached_at: float
    invalidated: bool = False


class QueryCache:
    def __init__(
        self,
        stale_after: float = _DEFAULT_STALE,
        gc_after: float = _DEFAULT_GC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_after = stale_after
        self.gc_after = gc_after
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: Hashable, allow_stale: bool = True) -> Any | None:
        """Return cached data for key, or None if absent, expired or (with
        allow_stale=False) stale."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            age = self._clock() - entry.cached_at
            if age > self.gc_after:
                del self._entries[key]
                return None
            if not allow_stale and self._is_stale(entry, age):
                return None
            return entry.data

    def set(self, key: Hashable, data: Any) -> None:
        """Store data for key, replacing any existing entry."""
        with self._lock:
            self._entries[key] = _Entry(data=data, cached_at=self._clock())

    def get_or_fetch(self, key: Hashable, fetch: Callable[[], Any]) -> Any:
        """Return fresh cached data, or call fetch(), cache and return its result.

        Exceptions from fetch propagate and leave the cache untouched.
        """
        cached = self.get(key, allow_stale=False)
        if cached is not None:
            return cached
        data = fetch()
        self.set(key, data)
        return data

    def is_stale(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return True
            return self._is_stale(entry, self._clock() - entry.cached_at)

    def invalidate(self, prefix: tuple | None = None) -> int:
        """Mark entries stale. With prefix, only tuple keys starting with it.

        Returns the number of entries marked. Calling it twice is harmless.
        """
        marked = 0
        with self._lock:
            for key, entry in self._entries.items():
                if prefix is None or (isinstance(key, tuple) and key[: len(prefix)] == prefix):
                    entry.invalidated = True
                    marked += 1
        return marked

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Delete all entries older than gc_after. Returns number removed."""
        cutoff = self._clock() - self.gc_after
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.cached_at < cutoff]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def _is_stale(self, entry: _Entry, age: float) -> bool:
        return entry.invalidated or age > self.stale_after
