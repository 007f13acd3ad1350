"""In-memory result cache for forward geocoding.

Entries map a normalized query signature to an immutable result tuple and
expire by TTL. The cache is bounded: once ``max_entries`` is reached the
least recently used entry is evicted.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from plottr.core.geocoding.constants import DEFAULT_CACHE_SIZE, DEFAULT_CACHE_TTL
from plottr.core.geocoding.types import Coordinates, GeocodeResult
from plottr.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached result set."""

    results: tuple[GeocodeResult, ...]
    created_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


def build_cache_key(
    provider: str,
    text: str,
    country: Optional[str],
    limit: int,
    proximity: Optional[Coordinates],
    language: Optional[str],
) -> str:
    """Generate the cache key for a forward-geocoding request.

    Text is trimmed and case-folded; internal whitespace is collapsed.

    Args:
        provider: Active provider name
        text: Query text
        country: Country bias
        limit: Effective result limit
        proximity: Proximity point (lon, lat)
        language: Language tag

    Returns:
        Cache key string
    """
    normalized = " ".join(text.split()).casefold()
    prox = f"{proximity[0]:.6f},{proximity[1]:.6f}" if proximity else ""
    signature = "|".join(
        [
            normalized,
            (country or "").lower(),
            str(limit),
            prox,
            (language or "").lower(),
        ]
    )
    digest = hashlib.sha256(signature.encode()).hexdigest()
    return f"geocode:{provider}:{digest}"


class ResultCache:
    """TTL + LRU cache of forward-geocoding results."""

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL,
        max_entries: int = DEFAULT_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[list[GeocodeResult]]:
        """Return cached results for ``key`` or None on a miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.expired(self._clock()):
                del self._entries[key]
                self.misses += 1
                return None

            self._entries.move_to_end(key)
            self.hits += 1
            return list(entry.results)

    def set(self, key: str, results: Sequence[GeocodeResult]) -> None:
        """Store ``results`` (possibly empty) under ``key``."""
        if self.ttl <= 0:
            return

        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(tuple(results), now, self.ttl)
            self._entries.move_to_end(key)
            if len(self._entries) > self.max_entries:
                self._evict(now)

    def _evict(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expired(now)]
        for k in expired:
            del self._entries[k]
        evicted = 0
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            evicted += 1
        logger.debug("geocode_cache_evicted", expired=len(expired), evicted=evicted)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop all entries and reset the statistics."""
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self.hits + self.misses
        return {
            "backend": "in-memory",
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl": self.ttl,
        }

    def __len__(self) -> int:
        return len(self._entries)
