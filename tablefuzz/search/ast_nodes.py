"""Data classes for match patterns, predicate trees and ordering rules.

Everything here is frozen: a predicate tree is built once per query and
handed to a storage backend which renders it in its own query language.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

NATIVE_OPERATORS: frozenset[str] = frozenset({"levenshtein", "soundex", "similarity"})

FILTER_OPERATORS: frozenset[str] = frozenset({"=", "!=", "<", "<=", ">", ">=", "in", "like"})


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Match patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LikePattern:
    """A case-insensitive LIKE template.

    ``%`` matches any run of characters and ``_`` exactly one; literal
    ``%``, ``_`` and ``\\`` are escaped with a backslash.
    """

    template: str

    def __str__(self) -> str:
        return self.template


@dataclass(frozen=True)
class NativeHint:
    """Request to use an engine's built-in operator instead of LIKE.

    Operators:
        - ``levenshtein``: edit distance to ``term`` <= ``argument``
        - ``soundex``: same phonetic code as ``term``
        - ``similarity``: trigram similarity to ``term`` >= ``argument``
    """

    operator: str
    term: str
    argument: float | int | None = None

    def __str__(self) -> str:
        if self.argument is None:
            return f"{self.operator}({self.term!r})"
        return f"{self.operator}({self.term!r}, {self.argument})"


MatchPattern = Union[LikePattern, NativeHint]


# ---------------------------------------------------------------------------
# Predicate tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternClause:
    """Leaf: ``column`` matches ``pattern`` (or does not, when negated)."""

    column: str
    pattern: MatchPattern
    negated: bool = False


@dataclass(frozen=True)
class FieldFilter:
    """Leaf: an externally supplied filter like ``status = 'active'``.

    Operators are those in ``FILTER_OPERATORS``; ``in`` expects a tuple value.
    """

    field: str
    operator: str
    value: Any
    negated: bool = False


@dataclass(frozen=True)
class AllOf:
    """Every child must match (AND)."""

    children: tuple[PredicateNode, ...]


@dataclass(frozen=True)
class AnyOf:
    """At least one child must match (OR)."""

    children: tuple[PredicateNode, ...]


@dataclass(frozen=True)
class MatchEverything:
    """Matches every record; used for empty searches."""


PredicateNode = Union[PatternClause, FieldFilter, AllOf, AnyOf, MatchEverything]


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankingRule:
    """Adds ``score`` to a row's backend-side relevance when ``column`` matches."""

    column: str
    pattern: MatchPattern
    score: float


@dataclass(frozen=True)
class SortKey:
    """Explicit column ordering."""

    column: str
    descending: bool = False


OrderBy = Union[RankingRule, SortKey]


def describe(node: PredicateNode, indent: int = 0) -> str:
    """Render a predicate tree as an indented, human-readable outline."""
    pad = "  " * indent
    if isinstance(node, MatchEverything):
        return f"{pad}MATCH ALL"
    if isinstance(node, PatternClause):
        op = "NOT MATCHES" if node.negated else "MATCHES"
        return f"{pad}{node.column} {op} {node.pattern}"
    if isinstance(node, FieldFilter):
        prefix = "NOT " if node.negated else ""
        return f"{pad}{prefix}{node.field} {node.operator} {node.value!r}"
    label = "AND" if isinstance(node, AllOf) else "OR"
    lines = [f"{pad}{label}"]
    lines.extend(describe(child, indent + 1) for child in node.children)
    return "\n".join(lines)


def count_leaves(node: PredicateNode) -> int:
    """Number of leaf clauses in a predicate tree."""
    if isinstance(node, (AllOf, AnyOf)):
        return sum(count_leaves(child) for child in node.children)
    if isinstance(node, MatchEverything):
        return 0
    return 1
