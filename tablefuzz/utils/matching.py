"""Edit distance and similarity primitives.

Shared by relevance scoring, spell correction and the in-memory backend.
Both measures are case-insensitive: inputs are lowercased first.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from tablefuzz.exceptions import InvalidConfigurationError

# ---------------------------------------------------------------------------
# Edit costs
# ---------------------------------------------------------------------------

_COST_KEYS = ("cost_insert", "cost_replace", "cost_delete")


@dataclass(frozen=True)
class EditCosts:
    """Per-operation costs for weighted Levenshtein distance."""

    insert: int = 1
    replace: int = 1
    delete: int = 1

    @classmethod
    def from_mapping(cls, costs: Mapping[str, object] | None) -> EditCosts:
        """Build costs from a ``cost_insert``/``cost_replace``/``cost_delete`` map.

        Missing keys keep their default of 1.

        Raises:
            InvalidConfigurationError: On unknown keys, non-integer or
                negative costs.
        """
        if not costs:
            return cls()
        values: dict[str, int] = {}
        for key, value in costs.items():
            if key not in _COST_KEYS:
                raise InvalidConfigurationError(
                    key, value, f"unknown cost, expected one of {', '.join(_COST_KEYS)}"
                )
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfigurationError(key, value, "cost must be an integer")
            if value < 0:
                raise InvalidConfigurationError(key, value, "cost must be >= 0")
            values[key.removeprefix("cost_")] = value
        return cls(**values)

    def as_weights(self) -> tuple[int, int, int]:
        """Return the (insertion, deletion, substitution) tuple rapidfuzz expects."""
        return (self.insert, self.delete, self.replace)


DEFAULT_COSTS = EditCosts()


# ---------------------------------------------------------------------------
# Distance and similarity
# ---------------------------------------------------------------------------


def levenshtein_distance(a: str, b: str, costs: EditCosts = DEFAULT_COSTS) -> int:
    """Weighted edit distance between two strings, ignoring case."""
    return Levenshtein.distance(a.lower(), b.lower(), weights=costs.as_weights())


def _longest_common_substring(a: str, b: str) -> tuple[int, int, int]:
    """Return (pos_a, pos_b, length) of the first longest common substring."""
    best_a = best_b = best_len = 0
    for i in range(len(a)):
        for j in range(len(b)):
            k = 0
            while i + k < len(a) and j + k < len(b) and a[i + k] == b[j + k]:
                k += 1
            if k > best_len:
                best_a, best_b, best_len = i, j, k
    return best_a, best_b, best_len


def _similar_chars(a: str, b: str) -> int:
    """Count characters shared by the recursive longest-common-substring walk."""
    total = 0
    pending = [(a, b)]
    while pending:
        left, right = pending.pop()
        if not left or not right:
            continue
        pos_a, pos_b, length = _longest_common_substring(left, right)
        if not length:
            continue
        total += length
        pending.append((left[:pos_a], right[:pos_b]))
        pending.append((left[pos_a + length :], right[pos_b + length :]))
    return total


def similarity_percentage(a: str, b: str) -> float:
    """Similarity of two strings in percent (0-100).

    Finds the longest common substring, then recurses on the remainders
    to its left and right; the ratio is ``2 * matched / (len(a) + len(b))``.
    Two empty strings are identical (100); one empty side scores 0.
    """
    a = a.lower()
    b = b.lower()
    if not a and not b:
        return 100.0
    if not a or not b:
        return 0.0
    return _similar_chars(a, b) * 2 * 100.0 / (len(a) + len(b))


def word_distance(term: str, value: str, costs: EditCosts = DEFAULT_COSTS) -> int:
    """Smallest edit distance between ``term`` and ``value`` or any word in it."""
    best = levenshtein_distance(term, value, costs)
    for word in value.split():
        if best == 0:
            break
        best = min(best, levenshtein_distance(term, word, costs))
    return best


# ---------------------------------------------------------------------------
# Match tier classification
# ---------------------------------------------------------------------------


class MatchTier(enum.Enum):
    """Relevance tiers for a single column value, best first."""

    EXACT = "exact"
    PREFIX = "prefix"
    CONTAINS = "contains"
    FUZZY = "fuzzy"
    NONE = "none"


def classify_match(
    term: str,
    value: str,
    tolerance: int,
    costs: EditCosts = DEFAULT_COSTS,
) -> tuple[MatchTier, int | None]:
    """Classify how ``value`` matches ``term``.

    Both strings are expected to be lowercased already. Returns the tier and,
    for the fuzzy tier, the edit distance that qualified it.
    """
    if not term or not value:
        return MatchTier.NONE, None
    if value == term:
        return MatchTier.EXACT, None
    if value.startswith(term):
        return MatchTier.PREFIX, None
    if term in value:
        return MatchTier.CONTAINS, None
    distance = word_distance(term, value, costs)
    if distance <= tolerance:
        return MatchTier.FUZZY, distance
    return MatchTier.NONE, None
