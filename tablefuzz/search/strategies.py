"""Pattern generators for each matching algorithm.

A strategy turns a processed search term into an ordered, duplicate-free
list of match patterns (LIKE templates or native-operator hints), and into
score tiers a backend can use to order rows by relevance.

Generation is pure: the same term and options always give the same list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tablefuzz.exceptions import InvalidAlgorithmError
from tablefuzz.search.ast_nodes import (
    LikePattern,
    MatchPattern,
    NativeHint,
    RankingRule,
    escape_like,
)

log = logging.getLogger(__name__)

ANY = object()
ONE = object()


def like(*segments: object) -> LikePattern:
    """Build a LIKE pattern from literal strings and ``ANY``/``ONE`` wildcards.

    Literals are escaped; consecutive ``ANY`` wildcards collapse into one.
    """
    out: list[str] = []
    last_any = False
    for seg in segments:
        if seg is ANY:
            if not last_any:
                out.append("%")
            last_any = True
            continue
        if seg is ONE:
            out.append("_")
        else:
            text = str(seg)
            if not text:
                continue
            out.append(escape_like(text))
        last_any = False
    return LikePattern("".join(out))


def contains(s: str) -> LikePattern:
    return like(ANY, s, ANY)


def _unique(patterns: list[MatchPattern], limit: int) -> list[MatchPattern]:
    seen: set[MatchPattern] = set()
    result: list[MatchPattern] = []
    for p in patterns:
        if p in seen:
            continue
        seen.add(p)
        result.append(p)
    if len(result) > limit:
        log.debug("Truncating %d patterns to %d", len(result), limit)
        result = result[:limit]
    return result


@dataclass(frozen=True)
class StrategyOptions:
    """Knobs shared by all strategies.

    ``native_operators`` holds the operators the backend offers *and* the
    caller enabled; an empty set means LIKE patterns only.
    """

    max_distance: int = 2
    max_patterns: int = 100
    min_tolerant_length: int = 4
    trigram_limit: int = 10
    min_similarity: float = 0.3
    native_operators: frozenset[str] = frozenset()


DEFAULT_OPTIONS = StrategyOptions()


class MatchStrategy:
    """Base class for matching algorithms."""

    name: str = ""

    def generate_patterns(
        self, term: str, options: StrategyOptions = DEFAULT_OPTIONS
    ) -> list[MatchPattern]:
        """Return the match patterns for ``term``, capped at ``options.max_patterns``."""
        t = term.strip().lower()
        if not t:
            return []
        if len(t) < options.min_tolerant_length:
            patterns = self._short_patterns(t)
        else:
            patterns = self._patterns(t, options)
        return _unique(patterns, options.max_patterns)

    def score_tiers(
        self, column: str, term: str, options: StrategyOptions = DEFAULT_OPTIONS
    ) -> list[RankingRule]:
        """Return (pattern, score) tiers for ordering rows by relevance in the backend."""
        t = term.strip().lower()
        if not t:
            return []
        return [RankingRule(column, p, score) for p, score in self._tiers(t, options)]

    def _short_patterns(self, t: str) -> list[MatchPattern]:
        return [contains(t), like(t, ANY), like(t)]

    def _patterns(self, t: str, options: StrategyOptions) -> list[MatchPattern]:
        raise NotImplementedError

    def _tiers(self, t: str, options: StrategyOptions) -> list[tuple[MatchPattern, float]]:
        return [(like(t), 150), (like(t, ANY), 50), (contains(t), 10)]


class SimpleStrategy(MatchStrategy):
    """Plain case-insensitive substring containment."""

    name = "simple"

    def _short_patterns(self, t: str) -> list[MatchPattern]:
        return [contains(t)]

    def _patterns(self, t: str, options: StrategyOptions) -> list[MatchPattern]:
        return [contains(t)]


class FuzzyStrategy(MatchStrategy):
    """Typo-tolerant patterns: omissions, substitutions, transpositions."""

    name = "fuzzy"

    def _patterns(self, t: str, options: StrategyOptions) -> list[MatchPattern]:
        n = len(t)
        patterns: list[MatchPattern] = [contains(t), like(t, ANY)]

        # Omission of one character
        for i in range(n):
            patterns.append(like(ANY, t[:i], ANY, t[i + 1 :], ANY))

        # One character substituted
        for i in range(n):
            patterns.append(like(ANY, t[:i], ONE, t[i + 1 :], ANY))

        # Adjacent characters swapped
        for i in range(n - 1):
            patterns.append(contains(t[:i] + t[i + 1] + t[i] + t[i + 2 :]))

        if n > 4:
            for i in range(n - 1):
                if t[i] == t[i + 1]:
                    patterns.append(contains(t[:i] + t[i + 1 :]))

        if n > 3:
            patterns.append(like(t[0], ANY, t[-2:]))
            patterns.append(like(t[:2], ANY, t[-1]))

        words = t.split(" ")
        if len(words) > 1:
            patterns.extend(contains(w) for w in words if len(w) > 2)

        return patterns

    def _tiers(self, t: str, options: StrategyOptions) -> list[tuple[MatchPattern, float]]:
        return [
            (like(t), 300),
            (like(t, ANY), 200),
            (like(ANY, " ", t, ANY), 100),
            (like(ANY, t, " ", ANY), 50),
            (contains(t), 25),
        ]


class LevenshteinStrategy(MatchStrategy):
    """Edit-distance bounded patterns, tiered by ``max_distance`` (1-3)."""

    name = "levenshtein"

    def _patterns(self, t: str, options: StrategyOptions) -> list[MatchPattern]:
        k = min(max(options.max_distance, 1), 3)
        if "levenshtein" in options.native_operators:
            return [NativeHint("levenshtein", t, k)]

        n = len(t)
        patterns: list[MatchPattern] = [contains(t)]

        # Distance 1
        for i in range(n):
            patterns.append(contains(t[:i] + t[i + 1 :]))
        for i in range(n + 1):
            patterns.append(like(ANY, t[:i], ONE, t[i:], ANY))
        for i in range(n):
            patterns.append(like(ANY, t[:i], ONE, t[i + 1 :], ANY))

        if k >= 2:
            for i in range(n - 1):
                for j in range(i + 1, n):
                    rest = t[:i] + t[i + 1 : j] + t[j + 1 :]
                    if len(rest) >= 2:
                        patterns.append(contains(rest))
            for i in range(n - 1):
                patterns.append(contains(t[:i] + t[i + 1] + t[i] + t[i + 2 :]))

        if k >= 3 and n > 3:
            patterns.append(like(t[:2], ANY))
            patterns.append(like(ANY, t[-2:]))
            patterns.append(like(t[0], ANY, t[-1]))

        return patterns

    def _tiers(self, t: str, options: StrategyOptions) -> list[tuple[MatchPattern, float]]:
        one_off = t[:-1] if len(t) > 1 else t
        two_off = t[:-2] if len(t) > 2 else one_off
        return [(contains(t), 100), (contains(one_off), 50), (contains(two_off), 25)]


# Applied one at a time; both directions of a pair are kept.
PHONETIC_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("ph", "f"),
    ("f", "ph"),
    ("ck", "k"),
    ("k", "ck"),
    ("c", "k"),
    ("k", "c"),
    ("q", "k"),
    ("x", "ks"),
    ("z", "s"),
    ("s", "z"),
    ("j", "g"),
    ("g", "j"),
    ("v", "f"),
    ("w", "v"),
    ("tion", "shun"),
    ("sion", "shun"),
    ("ough", "off"),
    ("ight", "ite"),
    ("gh", ""),
    ("wr", "r"),
    ("kn", "n"),
    ("gn", "n"),
    ("pn", "n"),
    ("ae", "e"),
    ("oe", "e"),
    ("ie", "y"),
    ("ei", "i"),
    ("ai", "ay"),
    ("ey", "i"),
)

_VOWELS = frozenset("aeiou")


class SoundexStrategy(MatchStrategy):
    """Phonetic matching, natively or via sound-alike substitutions."""

    name = "soundex"

    def _patterns(self, t: str, options: StrategyOptions) -> list[MatchPattern]:
        if "soundex" in options.native_operators:
            return [NativeHint("soundex", t)]

        patterns: list[MatchPattern] = [contains(t), like(t[0], ANY)]
        if len(t) >= 3:
            patterns.append(like(t[:3], ANY))

        for src, dst in PHONETIC_SUBSTITUTIONS:
            if src in t:
                replaced = t.replace(src, dst)
                if replaced:
                    patterns.append(contains(replaced))

        skeleton = t[0] + "".join(c for c in t[1:] if c not in _VOWELS)
        if skeleton != t:
            patterns.append(contains(skeleton))
        return patterns

    def _tiers(self, t: str, options: StrategyOptions) -> list[tuple[MatchPattern, float]]:
        if "soundex" in options.native_operators:
            return [(NativeHint("soundex", t), 100)]
        return [(contains(t), 50)]


def term_trigrams(t: str) -> list[str]:
    """Ordered, unique, non-blank 3-character windows of the space-padded term."""
    padded = f" {t} "
    grams: list[str] = []
    for i in range(len(padded) - 2):
        gram = padded[i : i + 3].strip()
        if gram and gram not in grams:
            grams.append(gram)
    return grams


class TrigramStrategy(MatchStrategy):
    """N-gram overlap: any shared trigram qualifies a row."""

    name = "trigram"

    def _patterns(self, t: str, options: StrategyOptions) -> list[MatchPattern]:
        if "similarity" in options.native_operators:
            return [NativeHint("similarity", t, options.min_similarity)]
        patterns: list[MatchPattern] = [contains(t)]
        patterns.extend(contains(g) for g in term_trigrams(t))
        return _unique(patterns, options.trigram_limit)

    def _tiers(self, t: str, options: StrategyOptions) -> list[tuple[MatchPattern, float]]:
        if "similarity" in options.native_operators:
            return [(NativeHint("similarity", t, options.min_similarity), 100)]
        return [(contains(g), 20) for g in term_trigrams(t)[:5]]


STRATEGIES: dict[str, MatchStrategy] = {
    s.name: s
    for s in (
        FuzzyStrategy(),
        LevenshteinStrategy(),
        SoundexStrategy(),
        TrigramStrategy(),
        SimpleStrategy(),
    )
}

ALIASES: dict[str, str] = {"like": "simple"}

SUPPORTED_ALGORITHMS: tuple[str, ...] = (*STRATEGIES, *ALIASES)


def canonical_algorithm(name: str) -> str:
    """Resolve aliases and validate an algorithm name.

    Raises:
        InvalidAlgorithmError: If the name is unknown.
    """
    key = name.strip().lower()
    key = ALIASES.get(key, key)
    if key not in STRATEGIES:
        raise InvalidAlgorithmError(name, SUPPORTED_ALGORITHMS)
    return key


def get_strategy(name: str) -> MatchStrategy:
    """Look up a strategy by algorithm name or alias."""
    return STRATEGIES[canonical_algorithm(name)]
