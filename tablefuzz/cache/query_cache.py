"""Memoization of ranked search results keyed by query configuration."""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from tablefuzz.cache.store import CacheStore, MemoryCacheStore
from tablefuzz.search.query import SearchQuery

log = logging.getLogger(__name__)

DEFAULT_PREFIX = "tablefuzz_"

# Fields that never change the ranked output.
_TRANSIENT_FIELDS = frozenset({"debug", "cache_ttl"})


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        return dict(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {"__type__": type(obj).__name__, **dataclasses.asdict(obj)}
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if callable(obj):
        return f"{getattr(obj, '__module__', '')}.{getattr(obj, '__qualname__', repr(obj))}"
    return repr(obj)


def canonical_payload(query: SearchQuery) -> str:
    """Deterministic JSON of every output-affecting field of ``query``."""
    data = {
        f.name: getattr(query, f.name)
        for f in dataclasses.fields(query)
        if f.name not in _TRANSIENT_FIELDS
    }
    return json.dumps(data, sort_keys=True, default=_json_default, ensure_ascii=False)


class QueryCache:
    """Caches ranked results per query.

    A TTL of 0 or None turns every operation into a no-op for that call.
    Queries with a custom score hook are never cached.
    """

    def __init__(self, store: CacheStore | None = None, prefix: str = DEFAULT_PREFIX) -> None:
        self.store = store if store is not None else MemoryCacheStore()
        self.prefix = prefix

    def key_for(self, query: SearchQuery) -> str:
        digest = hashlib.sha256(canonical_payload(query).encode("utf-8")).hexdigest()
        return f"{self.prefix}{digest}"

    def cacheable(self, query: SearchQuery) -> bool:
        return bool(query.cache_ttl) and query.custom_score is None

    def get(self, query: SearchQuery) -> list[Any] | None:
        if not self.cacheable(query):
            return None
        key = self.key_for(query)
        results = self.store.get(key)
        log.debug("Cache %s for %r", "hit" if results is not None else "miss", query.term)
        return None if results is None else list(results)

    def put(self, query: SearchQuery, results: list[Any], ttl: float | None = None) -> None:
        ttl = query.cache_ttl if ttl is None else ttl
        if not ttl or query.custom_score is not None:
            return
        self.store.set(self.key_for(query), list(results), ttl)

    def forget(self, query: SearchQuery) -> None:
        self.store.delete(self.key_for(query))

    def clear(self) -> None:
        self.store.clear()
