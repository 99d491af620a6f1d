"""In-memory cache of computed analytics with wholesale invalidation."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Tuple

logger = logging.getLogger("multirater.cache")

CacheKey = Tuple[str, Optional[str], frozenset]


def make_key(
    organization_id: str,
    assessment_id: Optional[str] = None,
    filters: Optional[Mapping[str, Hashable]] = None,
) -> CacheKey:
    """Build a cache key; *filters* order does not matter."""
    return (organization_id, assessment_id, frozenset((filters or {}).items()))


class AnalyticsCache:
    """Thread-safe store of engine results.

    The cache never holds the source of truth: entries are dropped whole
    whenever new ratings arrive for their organization (or assessment).
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Any] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def get_or_compute(self, key: CacheKey, compute: Callable[[], Any]) -> Any:
        """Return the cached value for *key*, computing and storing it on a miss.

        *compute* runs outside the lock; concurrent misses may compute twice,
        the last writer wins.
        """

        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key[:2])
            return cached
        logger.debug("Cache miss for %s", key[:2])
        value = compute()
        self.put(key, value)
        return value

    def invalidate(self, organization_id: str, assessment_id: Optional[str] = None) -> int:
        """Drop every entry for *organization_id* (optionally one assessment).

        Entries cached without an assessment id cover all assessments of the
        organization, so they are dropped as well. Returns the number removed.
        """

        with self._lock:
            doomed = [
                key
                for key in self._entries
                if key[0] == organization_id
                and (assessment_id is None or key[1] is None or key[1] == assessment_id)
            ]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.info("Invalidated %d cached analytics for organization %s", len(doomed), organization_id)
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["AnalyticsCache", "CacheKey", "make_key"]
