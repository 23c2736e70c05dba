"""Result caching for repeated searches."""

from tablefuzz.cache.query_cache import QueryCache, canonical_payload
from tablefuzz.cache.store import CacheStore, MemoryCacheStore

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "QueryCache",
    "canonical_payload",
]
