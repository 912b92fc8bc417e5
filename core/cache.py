"""Time-to-live caches shared across concurrent pipeline tasks."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Iterable, Optional, Tuple, TypeVar

from core.logging import jlog

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(slots=True)
class CacheStats:
    hits: int = 0
    misses: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses


class TTLCache(Generic[T]):
    """In-memory cache whose entries expire a fixed time after insertion.

    Entries are ``(inserted_at, value)`` pairs replaced atomically; an entry
    whose age reached the TTL is treated as absent on read and removed by
    :meth:`sweep`. Concurrent loads of the same key are coalesced through a
    per-key ``asyncio.Lock`` so unrelated keys never wait on each other.
    """

    def __init__(self, ttl_seconds: float, *, name: str = "cache", clock: Clock = time.monotonic) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self.name = name
        self._store: Dict[Hashable, Tuple[float, T]] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[Hashable, asyncio.Lock] = {}
        self._loading: Dict[Hashable, int] = {}
        self.stats = CacheStats()

    @property
    def ttl(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _fresh(self, inserted_at: float, now: float) -> bool:
        return (now - inserted_at) < self._ttl

    def _lookup(self, key: Hashable) -> Optional[T]:
        now = self._clock()
        with self._lock:
            item = self._store.get(key)
        if item is None:
            return None
        inserted_at, value = item
        if not self._fresh(inserted_at, now):
            return None
        return value

    def get(self, key: Hashable) -> Optional[T]:
        value = self._lookup(key)
        if value is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
        return value

    def put(self, key: Hashable, value: T) -> None:
        entry = (self._clock(), value)
        with self._lock:
            self._store[key] = entry

    def put_many(self, items: Iterable[Tuple[Hashable, T]]) -> None:
        for key, value in items:
            self.put(key, value)

    async def get_or_load(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> Tuple[T, bool]:
        """Return ``(value, hit)``, calling ``loader`` at most once per key at a time."""

        value = self._lookup(key)
        if value is not None:
            self.stats.hits += 1
            return value, True

        lock = self._key_locks.setdefault(key, asyncio.Lock())
        self._loading[key] = self._loading.get(key, 0) + 1
        try:
            async with lock:
                value = self._lookup(key)
                if value is not None:
                    self.stats.hits += 1
                    return value, True
                self.stats.misses += 1
                value = await loader()
                self.put(key, value)
                return value, False
        finally:
            remaining = self._loading[key] - 1
            if remaining:
                self._loading[key] = remaining
            else:
                del self._loading[key]
                self._key_locks.pop(key, None)

    def sweep(self) -> int:
        """Drop expired entries, skipping keys with a load in flight."""

        now = self._clock()
        removed = 0
        with self._lock:
            expired = [
                key
                for key, (inserted_at, _) in self._store.items()
                if not self._fresh(inserted_at, now) and key not in self._loading
            ]
            for key in expired:
                del self._store[key]
                removed += 1
        if removed:
            jlog("cache.sweep", cache=self.name, removed=removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


async def sweep_forever(caches: Iterable[TTLCache], interval: float) -> None:
    """Periodically sweep ``caches`` until cancelled."""

    targets = list(caches)
    while True:
        await asyncio.sleep(interval)
        for cache in targets:
            cache.sweep()


__all__ = ["CacheStats", "TTLCache", "sweep_forever"]
