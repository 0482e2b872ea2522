"""
Bounded memo cache for solver results.

Plain dicts keep insertion order, so the oldest entries are simply the
first keys. When the cache is full a fixed fraction of them is dropped
(FIFO, lookups do not refresh an entry). Losing an entry only costs a
recomputation since the solvers are pure functions of the candidate set.
"""

import logging
from dataclasses import dataclass
from itertools import islice
from typing import Dict, Hashable, Iterable, NamedTuple, Optional


log = logging.getLogger(__name__)


DEFAULT_CAPACITY = 8_000_000
DEFAULT_EVICT_FRACTION = 0.10


class MemoEntry(NamedTuple):
    expected_steps: float
    best_guess: int


@dataclass(frozen=True)
class CacheStats:
    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int
    eviction_events: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    @classmethod
    def combine(cls, stats: Iterable["CacheStats"]) -> "CacheStats":
        """Totals over several caches, e.g. one per worker process."""
        stats = list(stats)
        return cls(
            size=sum(s.size for s in stats),
            capacity=sum(s.capacity for s in stats),
            hits=sum(s.hits for s in stats),
            misses=sum(s.misses for s in stats),
            evictions=sum(s.evictions for s in stats),
            eviction_events=sum(s.eviction_events for s in stats),
        )


class BoundedMemoCache:
    """
    Capacity-limited key -> MemoEntry store with FIFO bulk eviction.

    Not thread-safe; give every worker its own instance.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY,
                 evict_fraction: float = DEFAULT_EVICT_FRACTION,
                 name: str = "memo"):
        """
        Args:
            capacity: maximum number of entries kept
            evict_fraction: share of ``capacity`` dropped when full (0 < f <= 1)
            name: label used in log messages
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if not 0.0 < evict_fraction <= 1.0:
            raise ValueError(f"evict_fraction must be in (0, 1], got {evict_fraction}")

        self.capacity = capacity
        self.evict_fraction = evict_fraction
        self.name = name
        self._store: Dict[Hashable, MemoEntry] = {}

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.eviction_events = 0

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._store

    def get(self, key: Hashable) -> Optional[MemoEntry]:
        entry = self._store.get(key)
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    def put(self, key: Hashable, entry: MemoEntry) -> None:
        """Store an entry, evicting the oldest ones first if the cache is full."""
        if key in self._store:
            self._store[key] = entry
            return
        if len(self._store) >= self.capacity:
            self._evict()
        self._store[key] = entry

    def _evict(self) -> None:
        to_remove = max(1, int(self.capacity * self.evict_fraction))
        for key in list(islice(self._store, to_remove)):
            del self._store[key]
        self.evictions += to_remove
        self.eviction_events += 1
        log.info("%s capacity hit: evicted %d entries, new size=%d",
                 self.name, to_remove, len(self._store))

    def clear(self) -> None:
        self._store.clear()

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._store),
            capacity=self.capacity,
            hits=self.hits,
            misses=self.misses,
            evictions=self.evictions,
            eviction_events=self.eviction_events,
        )
