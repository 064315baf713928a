from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import threading
import time
from typing import Callable, Generic, TypeVar

V = TypeVar("V")


@dataclass
class _CacheEntry(Generic[V]):
    expires_at: float
    value: V


class TTLCache(Generic[V]):
    """
    Process-local cache with a fixed TTL and a bounded size.

    Instances are created once at app startup and handed to the code that
    needs them; nothing in the app reads a module-level cache.
    Expired entries are dropped on access; when full, the least recently
    used entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 256,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, _CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                self._store.pop(key, None)
                return None
            self._store.move_to_end(key)
            return entry.value

    def set(self, key: str, value: V) -> None:
        if self.ttl_seconds <= 0:
            return
        with self._lock:
            self._store[key] = _CacheEntry(expires_at=self._clock() + self.ttl_seconds, value=value)
            self._store.move_to_end(key)
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
