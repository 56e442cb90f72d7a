"""
Bounded in-memory cache with per-read freshness windows.

Each entry remembers when it was stored. Readers decide how old an entry may
be (`get(key, max_age)`), while `get_stale()` returns an entry regardless of
age so callers can degrade to the last known value when the source is down.

Memory is bounded by `max_entries` only: the least recently stored entry is
evicted first. Age never removes an entry, so a stale read works however old
the entry is.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[K, V]):
    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[K, CacheEntry[V]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def age(self, key: K) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.stored_at

    def get(self, key: K, max_age: float | None = None) -> V | None:
        """Return the value if it was stored within `max_age` seconds (default: ttl)."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        window = self.ttl_seconds if max_age is None else max_age
        if self._clock() - entry.stored_at < window:
            return entry.value
        return None

    def get_stale(self, key: K) -> V | None:
        """Return the value regardless of its age."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def set(self, key: K, value: V) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def delete(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

