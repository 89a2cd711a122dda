from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    data: T
    loaded_at: float


def _is_cold(data: object) -> bool:
    if data is None:
        return True
    try:
        return len(data) == 0  # type: ignore[arg-type]
    except TypeError:
        return False


class TimedCache(Generic[T]):
    """Keyed in-memory store where every entry expires a fixed TTL after loading.

    Entries holding ``None`` or an empty collection are always considered
    stale so the next access reloads them. Nothing is evicted; the key space
    is expected to stay small.
    """

    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = max(float(ttl), 0.0)
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[T]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None or _is_cold(entry.data):
            return None
        if self._clock() - entry.loaded_at >= self._ttl:
            return None
        return entry.data

    def set(self, key: Hashable, data: T) -> T:
        self._entries[key] = CacheEntry(data=data, loaded_at=self._clock())
        return data

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        return self.set(key, loader())

    async def get_or_load_async(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        return self.set(key, await loader())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheEntry", "TimedCache"]
