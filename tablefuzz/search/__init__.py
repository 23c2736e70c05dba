"""Query building, matching strategies, ranking and execution."""

from tablefuzz.search.ast_nodes import (
    AllOf,
    AnyOf,
    FieldFilter,
    LikePattern,
    MatchEverything,
    NativeHint,
    PatternClause,
    RankingRule,
    SortKey,
)
from tablefuzz.search.engine import Explanation, Page, SearchEngine
from tablefuzz.search.federated import FederatedSearch, SearchTarget
from tablefuzz.search.query import SearchBuilder, SearchQuery
from tablefuzz.search.scoring import ScoredResult
from tablefuzz.search.strategies import SUPPORTED_ALGORITHMS, get_strategy
from tablefuzz.search.suggestions import Suggestion

__all__ = [
    # Predicate tree
    "AllOf",
    "AnyOf",
    "FieldFilter",
    "LikePattern",
    "MatchEverything",
    "NativeHint",
    "PatternClause",
    "RankingRule",
    "SortKey",
    # Queries
    "SearchBuilder",
    "SearchQuery",
    "SUPPORTED_ALGORITHMS",
    "get_strategy",
    # Execution
    "Explanation",
    "FederatedSearch",
    "Page",
    "ScoredResult",
    "SearchEngine",
    "SearchTarget",
    "Suggestion",
]
