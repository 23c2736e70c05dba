"""Autocomplete and "did you mean" suggestions.

Both work on a bounded sample of records rather than a full vocabulary
scan, so they are approximations whose cost does not grow with the table.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from tablefuzz.db.backend import StorageBackend
from tablefuzz.search.ast_nodes import (
    AllOf,
    AnyOf,
    FieldFilter,
    MatchEverything,
    PatternClause,
    PredicateNode,
)
from tablefuzz.search.strategies import ANY, like
from tablefuzz.utils.matching import DEFAULT_COSTS, EditCosts, levenshtein_distance

log = logging.getLogger(__name__)

SPELLING_SAMPLE_SIZE = 200
MAX_SPELLING_DISTANCE = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class Suggestion:
    """A spelling alternative for a search term."""

    term: str
    distance: int
    confidence: float


def confidence(distance: int, query: str, candidate: str) -> float:
    """``1 - distance / max length``, rounded to two decimals."""
    longest = max(len(query), len(candidate))
    if not longest:
        return 0.0
    return round(1 - distance / longest, 2)


class SuggestionEngine:
    """Suggests completions and corrections from records in a backend."""

    def __init__(
        self,
        backend: StorageBackend,
        columns: Sequence[str],
        filters: Iterable[FieldFilter] = (),
        costs: EditCosts = DEFAULT_COSTS,
    ) -> None:
        self.backend = backend
        self.columns = list(columns)
        self.filters = tuple(filters)
        self.costs = costs

    def _with_filters(self, node: PredicateNode) -> PredicateNode:
        if not self.filters:
            return node
        if isinstance(node, MatchEverything):
            return AllOf(self.filters)
        return AllOf((node, *self.filters))

    def suggest(self, term: str, limit: int = 5) -> list[str]:
        """Complete ``term`` from words and values starting with it.

        Shorter candidates come first, then alphabetical order.
        """
        term = term.strip().lower()
        if len(term) < 2 or not self.columns or limit <= 0:
            return []

        prefix = AnyOf(tuple(PatternClause(c, like(term, ANY)) for c in self.columns))
        rows = self.backend.execute(self._with_filters(prefix), [], limit * 3, 0)

        found: dict[str, str] = {}

        def _add(candidate: str) -> None:
            key = candidate.lower()
            if key.startswith(term) and len(key) > len(term) and key not in found:
                found[key] = candidate

        for row in rows:
            for column in self.columns:
                value = row.get(column)
                if value is None:
                    continue
                value = str(value).strip()
                if not value:
                    continue
                for word in value.split():
                    _add(word)
                _add(value)
            if len(found) >= limit * 2:
                break

        ordered = sorted(found.values(), key=lambda s: (len(s), s.lower()))
        return ordered[:limit]

    def did_you_mean(self, term: str, limit: int = 3) -> list[Suggestion]:
        """Nearby spellings of ``term`` found in a sample of records."""
        term = term.strip().lower()
        if len(term) < 2 or not self.columns or limit <= 0:
            return []

        rows = self.backend.execute(
            self._with_filters(MatchEverything()), [], SPELLING_SAMPLE_SIZE, 0
        )

        candidates: dict[str, None] = {}
        for row in rows:
            for column in self.columns:
                value = row.get(column)
                if value is None:
                    continue
                for word in _NON_ALNUM.split(str(value).lower()):
                    if len(word) >= 2 and abs(len(word) - len(term)) <= 3:
                        candidates.setdefault(word)

        alternatives: list[Suggestion] = []
        for word in candidates:
            if word == term:
                continue
            distance = levenshtein_distance(term, word, self.costs)
            longest = max(len(term), len(word))
            if 0 < distance <= MAX_SPELLING_DISTANCE and distance < longest / 2:
                alternatives.append(Suggestion(word, distance, confidence(distance, term, word)))

        alternatives.sort(key=lambda s: (s.distance, -s.confidence))
        log.debug("did_you_mean(%r): %d candidates", term, len(alternatives))
        return alternatives[:limit]
