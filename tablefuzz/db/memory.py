"""Storage backend over an in-memory list of mappings.

Evaluates predicate trees in Python, including the native operators, so
it doubles as a reference for what SQL backends must produce.
"""

from __future__ import annotations

import functools
import logging
import operator
import re
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from tablefuzz.search.ast_nodes import (
    NATIVE_OPERATORS,
    AllOf,
    AnyOf,
    FieldFilter,
    LikePattern,
    MatchEverything,
    NativeHint,
    OrderBy,
    PatternClause,
    PredicateNode,
    RankingRule,
    SortKey,
)
from tablefuzz.utils.matching import levenshtein_distance
from tablefuzz.utils.phonetic import soundex, trigram_similarity

log = logging.getLogger(__name__)

_COMPARE: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@functools.lru_cache(maxsize=1024)
def like_to_regex(template: str) -> re.Pattern[str]:
    """Compile a backslash-escaped LIKE template into a case-insensitive regex."""
    parts: list[str] = []
    chars = iter(template)
    for c in chars:
        if c == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif c == "%":
            parts.append(".*")
        elif c == "_":
            parts.append(".")
        else:
            parts.append(re.escape(c))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def like_match(value: Any, template: str) -> bool:
    if value is None:
        return False
    return like_to_regex(template).fullmatch(str(value)) is not None


def native_match(value: Any, hint: NativeHint) -> bool:
    if value is None:
        return False
    text = str(value)
    if hint.operator == "levenshtein":
        return levenshtein_distance(text, hint.term) <= int(hint.argument or 0)
    if hint.operator == "soundex":
        code = soundex(text)
        return bool(code) and code == soundex(hint.term)
    if hint.operator == "similarity":
        return trigram_similarity(text, hint.term) >= float(hint.argument or 0)
    raise ValueError(f"Unknown native operator: {hint.operator}")


def pattern_match(value: Any, pattern: LikePattern | NativeHint) -> bool:
    if isinstance(pattern, NativeHint):
        return native_match(value, pattern)
    return like_match(value, pattern.template)


def _filter_match(record: Mapping[str, Any], flt: FieldFilter) -> bool:
    value = record.get(flt.field)
    if flt.value is None and flt.operator in ("=", "!="):
        # IS NULL / IS NOT NULL
        result = (value is None) == (flt.operator == "=")
        return not result if flt.negated else result
    if value is None:
        # comparisons with NULL are unknown, negated or not
        return False
    if flt.operator == "in":
        result = value in tuple(flt.value)
    elif flt.operator == "like":
        result = like_match(value, str(flt.value))
    elif flt.value is None:
        result = False
    else:
        try:
            result = _COMPARE[flt.operator](value, flt.value)
        except TypeError:
            result = False
    return not result if flt.negated else result


def evaluate(node: PredicateNode, record: Mapping[str, Any]) -> bool:
    """Whether ``record`` satisfies the predicate tree."""
    if isinstance(node, MatchEverything):
        return True
    if isinstance(node, PatternClause):
        value = record.get(node.column)
        if value is None:
            return False
        matched = pattern_match(value, node.pattern)
        return not matched if node.negated else matched
    if isinstance(node, FieldFilter):
        return _filter_match(record, node)
    if isinstance(node, AllOf):
        return all(evaluate(child, record) for child in node.children)
    if isinstance(node, AnyOf):
        return any(evaluate(child, record) for child in node.children)
    raise TypeError(f"Unknown predicate node: {node!r}")


def _sort_value(value: Any) -> tuple[int, Any]:
    # NULLs sort first, like SQLite
    if value is None:
        return (0, 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    return (2, str(value))


class InMemoryBackend:
    """Backend over a sequence of mappings (dicts, SQLAlchemy row mappings, ...)."""

    def __init__(
        self,
        records: Iterable[Mapping[str, Any]],
        native_operators: Iterable[str] = NATIVE_OPERATORS,
    ) -> None:
        self.records = list(records)
        self.native_operators = frozenset(native_operators)

    def _matching(self, predicate: PredicateNode) -> list[Mapping[str, Any]]:
        return [r for r in self.records if evaluate(predicate, r)]

    def _relevance(self, record: Mapping[str, Any], rules: Sequence[RankingRule]) -> float:
        return sum(r.score for r in rules if pattern_match(record.get(r.column), r.pattern))

    def _order(
        self, rows: list[Mapping[str, Any]], order_by: Sequence[OrderBy]
    ) -> list[Mapping[str, Any]]:
        # Consecutive ranking rules form a single descending relevance key.
        keys: list[tuple[Callable[[Mapping[str, Any]], Any], bool]] = []
        rules: list[RankingRule] = []
        for item in [*order_by, None]:
            if isinstance(item, RankingRule):
                rules.append(item)
                continue
            if rules:
                group = tuple(rules)
                keys.append((lambda r, g=group: self._relevance(r, g), True))
                rules = []
            if isinstance(item, SortKey):
                keys.append((lambda r, c=item.column: _sort_value(r.get(c)), item.descending))

        for key, descending in reversed(keys):
            rows.sort(key=key, reverse=descending)
        return rows

    def execute(
        self,
        predicate: PredicateNode,
        order_by: Sequence[OrderBy] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Mapping[str, Any]]:
        rows = self._order(self._matching(predicate), order_by)
        end = None if limit is None else offset + limit
        log.debug("In-memory execute: %d rows matched", len(rows))
        return rows[offset:end]

    def count(self, predicate: PredicateNode) -> int:
        return len(self._matching(predicate))

    def facet_counts(self, predicate: PredicateNode, column: str) -> dict[Any, int]:
        return dict(Counter(r.get(column) for r in self._matching(predicate)))
