"""Key/value stores with per-entry expiry."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from cachetools import TLRUCache

log = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Minimal key/value store with a TTL per entry."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


def _expires_at(key: str, value: tuple[float, Any], now: float) -> float:
    return now + value[0]


class MemoryCacheStore:
    """In-process store; entries expire ``ttl`` seconds after being set.

    Values are kept as Python objects, not serialized.
    """

    def __init__(self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry[1]

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        self._cache[key] = (ttl, value)

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)
