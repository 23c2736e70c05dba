"""Search pipeline: predicate building, execution, ranking, annotation."""

from __future__ import annotations

import dataclasses
import logging
import math
import time
from dataclasses import dataclass
from typing import Any

from tablefuzz.cache.query_cache import QueryCache
from tablefuzz.db.backend import StorageBackend
from tablefuzz.search.ast_nodes import MatchPattern, PredicateNode, count_leaves
from tablefuzz.search.conditions import ConditionBuilder
from tablefuzz.search.highlight import highlight_record
from tablefuzz.search.query import SearchQuery
from tablefuzz.search.scoring import RelevanceScorer, ScoredResult
from tablefuzz.search.suggestions import Suggestion, SuggestionEngine

log = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of ranked results."""

    items: list[ScoredResult]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1

    @property
    def has_more(self) -> bool:
        return self.page < self.pages


@dataclass
class Explanation:
    """What a query turns into, for debugging and the ``explain`` command."""

    query: SearchQuery
    processed_term: str
    patterns: list[MatchPattern]
    predicate: PredicateNode
    clause_count: int
    fallback_algorithms: tuple[str, ...]
    results: list[ScoredResult] = dataclasses.field(default_factory=list)
    elapsed: float = 0.0

    def analytics(self) -> dict[str, Any]:
        q = self.query
        return {
            "search_term": q.term,
            "processed_term": self.processed_term,
            "algorithm": q.algorithm,
            "columns_searched": q.column_names,
            "column_weights": q.weights,
            "typo_tolerance": q.typo_tolerance,
            "tokenized": q.tokenize,
            "token_mode": q.match_mode,
            "stop_words_active": bool(q.stop_words),
            "synonyms_active": bool(q.synonyms or q.synonym_groups),
            "accent_insensitive": q.accent_insensitive,
            "cached": bool(q.cache_ttl),
            "recency_boost": q.recency is not None,
            "pattern_count": len(self.patterns),
            "clause_count": self.clause_count,
            "fallback_algorithms": list(self.fallback_algorithms),
            "limit": q.limit,
            "offset": q.offset,
        }


class SearchEngine:
    """Runs queries against one storage backend."""

    def __init__(self, backend: StorageBackend, cache: QueryCache | None = None) -> None:
        self.backend = backend
        self.cache = cache

    def conditions(self, query: SearchQuery) -> ConditionBuilder:
        return ConditionBuilder(query, self.backend.native_operators)

    def search(self, query: SearchQuery) -> list[ScoredResult]:
        """Run ``query`` once with its primary algorithm.

        Debug queries bypass the cache so their breakdowns are always fresh.
        """
        use_cache = self.cache is not None and not query.debug
        if use_cache:
            cached = self.cache.get(query)
            if cached is not None:
                return cached

        builder = self.conditions(query)
        predicate = builder.build()
        rows = self.backend.execute(predicate, builder.order_by(), query.limit, query.offset)
        results = RelevanceScorer(query).rank(rows)

        if query.highlight is not None and builder.term:
            terms = [t for group in builder.search_terms() for t in group]
            for result in results:
                result.highlights = highlight_record(
                    result.record,
                    query.column_names,
                    terms,
                    query.highlight.open_tag,
                    query.highlight.close_tag,
                )

        if query.debug:
            for result in results:
                result.debug = {
                    "term": query.term,
                    "processed_term": builder.term,
                    "algorithm": query.algorithm,
                    "typo_tolerance": query.typo_tolerance,
                    "prefix_boost": query.prefix_boost,
                    "weights": query.weights,
                    "final_score": result.score,
                }

        if use_cache:
            self.cache.put(query, results)
        return results

    def search_with_fallback(self, query: SearchQuery) -> tuple[str, list[ScoredResult]]:
        """Try the primary algorithm, then each fallback, until one returns rows.

        Returns the algorithm that produced the results along with them.
        """
        results = self.search(query)
        if results:
            return query.algorithm, results
        for attempt in query.fallback_queries():
            log.debug("No results with %s, trying %s", query.algorithm, attempt.algorithm)
            results = self.search(attempt)
            if results:
                return attempt.algorithm, results
        return query.algorithm, []

    def first(self, query: SearchQuery) -> ScoredResult | None:
        results = self.search(dataclasses.replace(query, limit=1))
        return results[0] if results else None

    def count(self, query: SearchQuery) -> int:
        return self.backend.count(self.conditions(query).build())

    def paginate(self, query: SearchQuery, page: int = 1, per_page: int = 15) -> Page:
        """Results for a 1-based page, with the total match count."""
        page = max(1, page)
        per_page = max(1, per_page)
        paged = dataclasses.replace(query, limit=per_page, offset=(page - 1) * per_page)
        return Page(self.search(paged), self.count(query), page, per_page)

    def facets(self, query: SearchQuery) -> dict[str, dict[Any, int]]:
        """Value counts of each facet column over all matching records."""
        if not query.facets:
            return {}
        predicate = self.conditions(query).build()
        return {col: self.backend.facet_counts(predicate, col) for col in query.facets}

    def suggestions(self, query: SearchQuery) -> SuggestionEngine:
        return SuggestionEngine(self.backend, query.column_names, query.filters, query.costs)

    def suggest(self, query: SearchQuery, limit: int = 5) -> list[str]:
        return self.suggestions(query).suggest(query.processed_term, limit)

    def did_you_mean(self, query: SearchQuery, limit: int = 3) -> list[Suggestion]:
        return self.suggestions(query).did_you_mean(query.processed_term, limit)

    def explain(self, query: SearchQuery, execute: bool = True) -> Explanation:
        """Describe the patterns and predicate of a query, optionally running it in debug mode."""
        builder = self.conditions(query)
        predicate = builder.build()
        patterns: list[MatchPattern] = []
        if builder.term:
            patterns = builder.strategy.generate_patterns(builder.term, builder.options)
        explanation = Explanation(
            query=query,
            processed_term=builder.term,
            patterns=patterns,
            predicate=predicate,
            clause_count=count_leaves(predicate),
            fallback_algorithms=query.fallback_algorithms,
        )
        if execute:
            start = time.perf_counter()
            explanation.results = self.search(dataclasses.replace(query, debug=True))
            explanation.elapsed = time.perf_counter() - start
        return explanation
