"""Run one query across several engines and merge the ranked results."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from tablefuzz.search.engine import SearchEngine
from tablefuzz.search.query import SearchQuery
from tablefuzz.search.scoring import ScoredResult


@dataclass(frozen=True)
class SearchTarget:
    """A named engine, optionally with its own weighted columns."""

    name: str
    engine: SearchEngine
    columns: Mapping[str, float] | None = None


class FederatedSearch:
    """Searches every target and merges results by score.

    Each result is tagged with the name of the target it came from. Ties
    keep target order.
    """

    def __init__(self, targets: Sequence[SearchTarget]) -> None:
        self.targets = list(targets)

    def _query_for(self, target: SearchTarget, query: SearchQuery) -> SearchQuery:
        if target.columns is None:
            return query
        columns = tuple((c, float(w)) for c, w in target.columns.items())
        return dataclasses.replace(query, columns=columns)

    def _collect(self, query: SearchQuery) -> list[ScoredResult]:
        merged: list[ScoredResult] = []
        for target in self.targets:
            for result in target.engine.search(self._query_for(target, query)):
                merged.append(dataclasses.replace(result, source=target.name))
        if query.with_relevance:
            merged.sort(key=lambda r: -r.score)
        return merged

    def search(self, query: SearchQuery) -> list[ScoredResult]:
        return self._collect(query)[: query.limit]

    def grouped(self, query: SearchQuery) -> dict[str, list[ScoredResult]]:
        groups: dict[str, list[ScoredResult]] = {}
        for result in self.search(query):
            groups.setdefault(result.source, []).append(result)
        return groups

    def counts(self, query: SearchQuery) -> dict[str, int]:
        return {name: len(items) for name, items in self.grouped(query).items()}
