"""
Cleaning Result Cache

Per-file cleaning results keyed on
SHA-256(user, path, SHA-256(content), catalog version, hint flag).
Re-running a liberation on a mostly unchanged export skips the
rewriters for every file already seen; a catalog upgrade changes
every key, so stale rules are never served.

CleaningResult records are frozen, so a hit is interchangeable with a
fresh run. The pipeline cleans on a thread pool, hence the lock.
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from typing import NamedTuple, Optional

from inopay.config import settings
from inopay.patterns import CATALOG_VERSION
from inopay.rewriters import CleaningResult


class _Entry(NamedTuple):
    expires_at: float
    result: CleaningResult


def cache_key(path: str, content: str, user_id: str = "", flagged: bool = False) -> str:
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    parts = (user_id, path, digest, CATALOG_VERSION, "hint" if flagged else "")
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()


class CleaningCache:
    """TTL cache; the least recently stored entry goes first when full."""

    def __init__(self, ttl_seconds: int = 86400, max_entries: int = 5000):
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(
        self, path: str, content: str, user_id: str = "", flagged: bool = False,
    ) -> Optional[CleaningResult]:
        key = cache_key(path, content, user_id, flagged)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at < time.monotonic():
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.result

    def put(
        self,
        path: str,
        content: str,
        result: CleaningResult,
        user_id: str = "",
        flagged: bool = False,
    ) -> None:
        key = cache_key(path, content, user_id, flagged)
        with self._lock:
            self._entries.pop(key, None)
            while self._entries and len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(time.monotonic() + self._ttl, result)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = 0

    @property
    def stats(self) -> dict:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / lookups, 3) if lookups else 0.0,
            }


cleaning_cache = CleaningCache(
    ttl_seconds=settings.CACHE_TTL_SECONDS,
    max_entries=settings.CACHE_MAX_ENTRIES,
)
