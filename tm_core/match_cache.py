from __future__ import annotations

from collections import OrderedDict
from collections.abc import Hashable, Iterable
from dataclasses import dataclass
import logging
import threading
from typing import Generic, TypeVar

from tm_core.constants import MATCH_CACHE_CAPACITY
from tm_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(slots=True, frozen=True)
class CacheStatistics:
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float


class MatchCache(Generic[K, V]):
    """Bounded LRU map of recent lookups.

    Backed by an ``OrderedDict`` so touch-on-access and eviction are O(1).
    A single lock covers every operation, which keeps the get/evict/put
    sequence atomic when several batches share one cache. Entries are only a
    shortcut: a miss always falls back to the full computation.
    """

    def __init__(self, max_size: int = MATCH_CACHE_CAPACITY) -> None:
        if int(max_size) <= 0:
            raise ConfigurationError(f"Cache capacity must be positive, got {max_size}")
        self.max_size = int(max_size)
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: K) -> V | None:
        with self._lock:
            if key not in self._entries:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return self._entries[key]

    def put(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self._entries[key] = value
                return
            if len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least recently used cache key %r", evicted_key)
            self._entries[key] = value

    def preload(self, items: Iterable[tuple[K, V]]) -> int:
        """Insert ``items`` until the cache is full; return how many were added.

        Existing entries are never evicted and hit statistics are untouched.
        """

        added = 0
        with self._lock:
            for key, value in items:
                if len(self._entries) >= self.max_size:
                    break
                if key in self._entries:
                    continue
                self._entries[key] = value
                added += 1
        return added

    def invalidate(self, key: K) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_language(self, language_code: str) -> int:
        """Drop every key whose language component equals ``language_code``.

        Keys are expected to be tuples carrying the language as their second
        element, which is how the matching service builds them.
        """

        with self._lock:
            stale = [
                key
                for key in self._entries
                if isinstance(key, tuple) and len(key) > 1 and key[1] == language_code
            ]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def statistics(self) -> CacheStatistics:
        with self._lock:
            total = self._hits + self._misses
            return CacheStatistics(
                size=len(self._entries),
                max_size=self.max_size,
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / total if total else 0.0,
            )

    @property
    def is_full(self) -> bool:
        with self._lock:
            return len(self._entries) >= self.max_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
