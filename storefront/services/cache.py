"""Read-through cache for marketplace API snapshots.

Entries are keyed by tuples such as ``('item', 12)`` or
``('purchase', 12, 'uid-1')``. Mutations never write into the cache; they
invalidate the keys they affect once the server confirms them.

Every fetch takes a generation number when it is dispatched. A response is
stored only if nothing newer was stored first and no invalidation happened
after dispatch, so a slow stale response never replaces a fresh one.
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

MISSING = object()


@dataclass
class _Entry:
    value: Any
    generation: int
    stored_at: float


class Lookup(NamedTuple):
    value: Any
    fetched: bool


class QueryCache:

    def __init__(self, ttl=30, clock=time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries = {}
        self._floors = {}
        self._prefix_floors = {}
        self._generations = itertools.count(1)
        self._lock = threading.Lock()

    def begin(self, key) -> int:
        """Reserve a generation number for a fetch of ``key``."""
        with self._lock:
            return next(self._generations)

    def settle(self, key, generation, value) -> bool:
        """Store a fetched value unless it is already outdated."""
        with self._lock:
            if generation <= self._floor_for(key):
                logger.info(f"Dropping response for {key}: invalidated after dispatch")
                return False
            current = self._entries.get(key)
            if current is not None and current.generation > generation:
                logger.info(f"Dropping response for {key}: newer response already stored")
                return False
            self._entries[key] = _Entry(value, generation, self.clock())
            return True

    def peek(self, key):
        """Cached value for ``key`` or MISSING when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISSING
            if self.ttl is not None and self.clock() - entry.stored_at > self.ttl:
                del self._entries[key]
                return MISSING
            return entry.value

    def fetch(self, key, fetcher, refresh=False) -> Lookup:
        """Return the cached value or call ``fetcher`` and cache its result.

        ``Lookup.fetched`` is True when the value came from a fetch made by
        this call and is now the stored snapshot.
        """
        if not refresh:
            cached = self.peek(key)
            if cached is not MISSING:
                return Lookup(cached, False)

        generation = self.begin(key)
        value = fetcher()
        if self.settle(key, generation, value):
            return Lookup(value, True)

        newer = self.peek(key)
        if newer is not MISSING:
            return Lookup(newer, False)
        return Lookup(value, False)

    def invalidate(self, *keys):
        with self._lock:
            floor = next(self._generations)
            for key in keys:
                self._entries.pop(key, None)
                self._floors[key] = floor

    def invalidate_prefix(self, *prefix):
        """Invalidate every key starting with ``prefix``, cached or in flight."""
        with self._lock:
            floor = next(self._generations)
            size = len(prefix)
            for key in [k for k in self._entries if k[:size] == prefix]:
                del self._entries[key]
            self._prefix_floors[prefix] = floor

    def clear(self):
        """Drop every entry and every response still in flight."""
        with self._lock:
            floor = next(self._generations)
            self._entries.clear()
            self._floors.clear()
            self._prefix_floors = {(): floor}

    def _floor_for(self, key):
        floor = self._floors.get(key, 0)
        for prefix, prefix_floor in self._prefix_floors.items():
            if key[:len(prefix)] == prefix and prefix_floor > floor:
                floor = prefix_floor
        return floor
