"""Build predicate trees and ranking rules from a search query."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tablefuzz.exceptions import EmptySearchTermError
from tablefuzz.search.ast_nodes import (
    AllOf,
    AnyOf,
    LikePattern,
    MatchEverything,
    OrderBy,
    PatternClause,
    PredicateNode,
    RankingRule,
    SortKey,
)
from tablefuzz.search.query import SearchQuery
from tablefuzz.search.strategies import MatchStrategy, StrategyOptions, get_strategy
from tablefuzz.utils.text import expand_synonyms, tokenize

log = logging.getLogger(__name__)


def _combine(node: PredicateNode, filters: Iterable[PredicateNode]) -> PredicateNode:
    filters = tuple(filters)
    if not filters:
        return node
    if isinstance(node, MatchEverything):
        return filters[0] if len(filters) == 1 else AllOf(filters)
    return AllOf((node, *filters))


class ConditionBuilder:
    """Turns a ``SearchQuery`` into a predicate tree for a storage backend.

    The primary algorithm alone decides the tree; fallback algorithms are
    separate queries the caller may run (see ``SearchQuery.fallback_queries``).
    """

    def __init__(self, query: SearchQuery, backend_operators: Iterable[str] = ()) -> None:
        self.query = query
        self.strategy: MatchStrategy = get_strategy(query.algorithm)
        self.options: StrategyOptions = query.strategy_options(backend_operators)
        self.term = query.processed_term

    def search_terms(self) -> list[list[str]]:
        """Synonym-expanded terms, one list per token (or one list for the whole term)."""
        tokens = tokenize(self.term) if self.query.tokenize else [self.term]
        return [
            expand_synonyms(tok, self.query.synonyms, self.query.synonym_groups) for tok in tokens
        ]

    def _clauses(self, terms: Iterable[str]) -> list[PatternClause]:
        clauses: list[PatternClause] = []
        seen: set[PatternClause] = set()
        for term in terms:
            patterns = self.strategy.generate_patterns(term, self.options)
            for column in self.query.column_names:
                for pattern in patterns:
                    clause = PatternClause(column, pattern)
                    if clause not in seen:
                        seen.add(clause)
                        clauses.append(clause)
        return clauses

    def search_predicate(self) -> PredicateNode:
        """The search part of the predicate, without filters.

        Raises:
            EmptySearchTermError: The processed term is empty and empty
                searches are not allowed.
        """
        if not self.term:
            if not self.query.allow_empty:
                raise EmptySearchTermError(self.query.term)
            return MatchEverything()

        groups = self.search_terms()
        if self.query.match_mode == "all" and self.query.tokenize and len(groups) > 1:
            return AllOf(tuple(AnyOf(tuple(self._clauses(group))) for group in groups))

        terms = [term for group in groups for term in group]
        return AnyOf(tuple(self._clauses(terms)))

    def build(self) -> PredicateNode:
        """Search predicate ANDed with the query's filters, filters last."""
        predicate = _combine(self.search_predicate(), self.query.filters)
        log.debug("Predicate for %r: %s", self.term, type(predicate).__name__)
        return predicate

    def ranking_rules(self) -> list[RankingRule]:
        """Weighted score tiers for backend-side relevance ordering."""
        if not self.term or not self.query.with_relevance:
            return []
        rules: list[RankingRule] = []
        for column, weight in self.query.columns:
            if weight == 0:
                continue
            for rule in self.strategy.score_tiers(column, self.term, self.options):
                score = rule.score * weight
                if _is_prefix(rule.pattern):
                    score *= self.query.prefix_boost
                rules.append(RankingRule(column, rule.pattern, score))
        return rules

    def order_by(self) -> list[OrderBy]:
        """Full ordering for the backend: explicit sorts, relevance, then identity."""
        order: list[OrderBy] = list(self.query.sort_by)
        order.extend(self.ranking_rules())
        if self.query.stable_ranking:
            order.append(SortKey(self.query.identity_column))
        return order


def _is_prefix(pattern: object) -> bool:
    if not isinstance(pattern, LikePattern):
        return False
    t = pattern.template
    return t.endswith("%") and not t.startswith("%") and not t.endswith("\\%")
