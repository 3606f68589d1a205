from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

from nexus.config import DEFAULT_CACHE_TTL_SECONDS
from nexus.core.models import CacheEntry, PolicyRecord


class PolicyCache:
    """
    Thread-safe in-memory cache of connect params, keyed by extension id.

    Entries are overwritten on refresh and never evicted; an entry older than
    `ttl_seconds` is reported as absent by `get_fresh`.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            ttl_seconds: Age at which an entry becomes stale (default: 60)
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def is_stale(self, entry: CacheEntry) -> bool:
        return (self._clock() - entry.fetched_at) >= self._ttl

    def get(self, extension_id: str) -> Optional[CacheEntry]:
        """Return the raw entry (fresh or stale), if any."""
        with self._lock:
            return self._entries.get(extension_id)

    def get_fresh(self, extension_id: str) -> Optional[PolicyRecord]:
        entry = self.get(extension_id)
        if entry is None or self.is_stale(entry):
            return None
        return entry.record

    def put(self, extension_id: str, record: PolicyRecord) -> CacheEntry:
        entry = CacheEntry(record=record, fetched_at=self._clock())
        with self._lock:
            self._entries[extension_id] = entry
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
